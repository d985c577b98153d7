"""repowiki remove — delete a repository record and its document.

Usage:
  repowiki remove <id>
  repowiki remove <id> --yes

Clones under the workspace and generated Markdown are left on disk.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from repowiki.cli.common import console, open_existing_store, resolve_db
from repowiki.cli.errors import err_repository_not_found
from repowiki.db.models import RepositoryStatus
from repowiki.observability import sanitise_url


def remove_cmd(
    repository_id: Annotated[str, typer.Argument(help="Repository id to remove.")],
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the database."),
    ] = None,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
) -> None:
    """Remove a repository and its document record."""
    store = open_existing_store(resolve_db(db))

    with store.session() as repo:
        existing = repo.get_repository(repository_id)
        if existing is None:
            console.print(err_repository_not_found(repository_id))
            raise typer.Exit(1)

        documents = repo.count_documents_by_repository(repository_id)
        console.print(f"\nRemove repository: [bold]{sanitise_url(existing.address)}[/]")
        console.print(
            f"  Status: {existing.status.name.title()}  |  Documents: {documents}"
        )
        if existing.status == RepositoryStatus.PROCESSING:
            console.print("  [yellow]⚠[/] The record is Processing; a running worker may still write to it.")

        if not yes:
            if not typer.confirm("Confirm removal?", default=False):
                console.print("[dim]Cancelled.[/]")
                raise typer.Exit(0)

        repo.delete_repository(repository_id)

    console.print(f"\n[green]✓[/] Removed: {repository_id}")

"""repowiki status — table of registered repositories and their documents."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from repowiki.cli.common import console, open_existing_store, resolve_db
from repowiki.db.models import RepositoryStatus
from repowiki.observability import sanitise_url

_STATUS_STYLE: dict[RepositoryStatus, str] = {
    RepositoryStatus.PENDING: "dim",
    RepositoryStatus.PROCESSING: "cyan",
    RepositoryStatus.COMPLETED: "green",
    RepositoryStatus.CANCELLED: "yellow",
    RepositoryStatus.UNAUTHORIZED: "yellow",
    RepositoryStatus.FAILED: "red",
}


def status_cmd(
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the database."),
    ] = None,
) -> None:
    """Show every repository with its lifecycle status."""
    store = open_existing_store(resolve_db(db))

    with store.session() as repo:
        records = repo.list_repositories()
        documents = {r.id: repo.get_document_by_repository(r.id) for r in records}

    if not records:
        console.print("[dim]No repositories registered.[/]\n  Run:  repowiki add --address <url-or-path>")
        return

    table = Table(title="Repositories")
    table.add_column("ID", no_wrap=True)
    table.add_column("Kind")
    table.add_column("Address")
    table.add_column("Status")
    table.add_column("Resolved")
    table.add_column("Document")
    table.add_column("Error")

    for record in records:
        style = _STATUS_STYLE.get(record.status, "")
        resolved = ""
        if record.name:
            resolved = f"{record.organization}/{record.name}"
            if record.resolved_branch:
                resolved += f" @ {record.resolved_branch} {(record.revision or '')[:8]}"
        document = documents[record.id]
        table.add_row(
            record.id,
            record.kind,
            sanitise_url(record.address),
            f"[{style}]{record.status.name.title()}[/]" if style else record.status.name.title(),
            resolved,
            document.status.name.title() if document else "-",
            _error_summary(record.error),
        )

    console.print(table)

    counts: dict[RepositoryStatus, int] = {}
    for record in records:
        counts[record.status] = counts.get(record.status, 0) + 1
    summary = "  ".join(f"{s.name.title()}: {n}" for s, n in sorted(counts.items()))
    console.print(f"[dim]{summary}[/]")


def _error_summary(error: str) -> str:
    """Traceback texts end with the exception line; show that one."""
    lines = [ln for ln in error.strip().splitlines() if ln.strip()]
    return lines[-1] if lines else ""

"""repowiki requeue — send a finished repository back to Pending.

The pipeline never re-queues on its own; this is the administrative action
that makes a Completed / Failed / Cancelled / Unauthorized record eligible
for the next recovery scan.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from repowiki.cli.common import console, open_existing_store, resolve_db
from repowiki.cli.errors import err_not_requeueable, err_repository_not_found


def requeue_cmd(
    repository_id: Annotated[str, typer.Argument(help="Repository id (see repowiki status).")],
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the database."),
    ] = None,
) -> None:
    """Mark a repository Pending so the next run processes it again."""
    store = open_existing_store(resolve_db(db))
    with store.session() as repo:
        record = repo.get_repository(repository_id)
        if record is None:
            console.print(err_repository_not_found(repository_id))
            raise typer.Exit(1)
        if not repo.requeue(repository_id):
            console.print(err_not_requeueable(repository_id, record.status.name.title()))
            raise typer.Exit(0)

    console.print(f"[green]✓[/] {repository_id} re-queued (was {record.status.name.title()})")

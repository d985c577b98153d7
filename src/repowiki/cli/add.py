"""repowiki add — register a repository for processing.

Kind detection when --kind is omitted:
  https:// / http:// / git@   → git
  existing local directory    → file

Credentials are stored on the record and only used for ingestion. The secret
can come from REPOWIKI_GIT_SECRET instead of the command line.
"""

from __future__ import annotations

import uuid
from pathlib import Path
from typing import Annotated

import typer

from repowiki.cli.common import console, open_existing_store, resolve_db
from repowiki.cli.errors import err_missing_local_path, err_unsupported_kind
from repowiki.db.models import KIND_FILE, KIND_GIT, SUPPORTED_KINDS, RepositoryRecord
from repowiki.observability import sanitise_url


def add_cmd(
    address: Annotated[
        str,
        typer.Option("--address", "-a", help="Git URL or local directory."),
    ],
    kind: Annotated[
        str | None,
        typer.Option("--kind", "-k", help="Repository kind: git or file (detected if omitted)."),
    ] = None,
    branch: Annotated[
        str | None,
        typer.Option("--branch", "-b", help="Branch to check out (git only)."),
    ] = None,
    username: Annotated[
        str | None,
        typer.Option("--username", help="Git username for private repositories."),
    ] = None,
    secret: Annotated[
        str | None,
        typer.Option(
            "--secret",
            envvar="REPOWIKI_GIT_SECRET",
            help="Git password or token (prefer the REPOWIKI_GIT_SECRET env var).",
            show_default=False,
        ),
    ] = None,
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the database."),
    ] = None,
) -> None:
    """Register a repository as Pending."""
    resolved_kind = (kind or _detect_kind(address)).lower()
    if resolved_kind not in SUPPORTED_KINDS:
        console.print(err_unsupported_kind(resolved_kind))
        raise typer.Exit(1)
    if resolved_kind == KIND_FILE:
        if not Path(address).is_dir():
            console.print(err_missing_local_path(address))
            raise typer.Exit(1)
        address = str(Path(address).resolve())

    store = open_existing_store(resolve_db(db))
    record = RepositoryRecord(
        id=str(uuid.uuid4()),
        address=address,
        kind=resolved_kind,
        branch=branch,
        username=username,
        secret=secret,
    )
    with store.session() as repo:
        repo.add_repository(record)

    console.print(f"[green]✓[/] Registered {resolved_kind} repository {sanitise_url(address)}")
    console.print(record.id)


def _detect_kind(address: str) -> str:
    if address.startswith(("https://", "http://", "git@")):
        return KIND_GIT
    return KIND_FILE

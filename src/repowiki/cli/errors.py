"""repowiki rich error messages — actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from repowiki.cli.errors import err_no_db
    console.print(err_no_db(".repowiki.db"))
    raise typer.Exit(1)
"""

from __future__ import annotations

from repowiki.db.models import SUPPORTED_KINDS


def err_no_api_key(provider: str, env_var: str) -> str:
    """No API key for the generation model's provider."""
    return (
        f"[red]Error:[/] No API key for '{provider}'.\n"
        f"  Set:  export {env_var}=sk-..."
    )


def err_no_db(db_path: str = ".repowiki.db") -> str:
    """No database found at *db_path*."""
    return (
        f"[red]Error:[/] No database found at '{db_path}'.\n"
        "  Run:  repowiki init"
    )


def err_repository_not_found(repository_id: str) -> str:
    """Repository id not present in the database."""
    return (
        f"[yellow]Repository not found:[/] '{repository_id}' is not registered.\n"
        "  Run:  repowiki status  to see all repositories."
    )


def err_unsupported_kind(kind: str) -> str:
    """--kind is not one the pipeline can process."""
    kinds = ", ".join(sorted(SUPPORTED_KINDS))
    return (
        f"[red]Error:[/] Unsupported repository kind '{kind}'.\n"
        f"  Use one of: {kinds}"
    )


def err_missing_local_path(path: str) -> str:
    """A file-kind repository points at a path that does not exist."""
    return (
        f"[red]Error:[/] Local path does not exist: '{path}'\n"
        "  File repositories must point at an existing directory."
    )


def err_not_requeueable(repository_id: str, status: str) -> str:
    """Record is already waiting for (or in) processing."""
    return (
        f"[yellow]Nothing to do:[/] '{repository_id}' is already {status}.\n"
        "  It will be processed by the next  repowiki serve  run."
    )


def err_config(message: str) -> str:
    """Configuration file rejected."""
    return f"[red]Error:[/] {message}"


def err_db_unusable(db_path: str, detail: str) -> str:
    """Database exists but cannot be opened or migrated."""
    return (
        f"[red]Error:[/] Cannot use database '{db_path}': {detail}\n"
        "  Upgrade repowiki or use  --db  to point at another database."
    )

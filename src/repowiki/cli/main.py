"""repowiki CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from repowiki.cli.add import add_cmd
from repowiki.cli.init import init_cmd
from repowiki.cli.remove import remove_cmd
from repowiki.cli.requeue import requeue_cmd
from repowiki.cli.serve import serve_cmd
from repowiki.cli.status import status_cmd


def _installed_version() -> str:
    try:
        return importlib.metadata.version("repowiki")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"repowiki {_installed_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="repowiki",
    help=(
        "repowiki — repository ingestion and documentation pipeline.\n\n"
        "  repowiki add     Register a git URL or local directory (Pending).\n"
        "  repowiki serve   Recover pending work and run the worker pool."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """repowiki — repository ingestion and documentation pipeline."""


app.command("init")(init_cmd)
app.command("add")(add_cmd)
app.command("status")(status_cmd)
app.command("requeue")(requeue_cmd)
app.command("remove")(remove_cmd)
app.command("serve")(serve_cmd)


@app.command("version")
def version_cmd() -> None:
    """Show the installed repowiki version."""
    typer.echo(f"repowiki {_installed_version()}")


if __name__ == "__main__":
    app()

"""repowiki serve — run startup recovery and the worker pool.

Runs until SIGINT / SIGTERM. Workers finish the record they hold before
exiting; anything still queued stays Pending/Processing and is picked up by
the next start. With --once the service exits after the recovered backlog
has been processed.
"""

from __future__ import annotations

import asyncio
import signal
from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from repowiki.cli.common import console, load_cli_config, open_existing_store, resolve_db
from repowiki.cli.errors import err_no_api_key
from repowiki.config import parse_parallel_count
from repowiki.generate.generator import LlmDocumentGenerator
from repowiki.generate.llm_client import provider_of, required_env_var, validate_api_key
from repowiki.observability import get_logger, setup_logging
from repowiki.pipeline.orchestrator import Orchestrator
from repowiki.pipeline.results import Outcome
from repowiki.sources.git import GitSource

log = get_logger(__name__)


def serve_cmd(
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the database."),
    ] = None,
    workers: Annotated[
        int | None,
        typer.Option("--workers", "-w", help="Worker count (overrides pipeline.parallel_count)."),
    ] = None,
    once: Annotated[
        bool,
        typer.Option("--once", help="Process the recovered backlog, then exit."),
    ] = False,
) -> None:
    """Process pending repositories until interrupted."""
    cfg = load_cli_config()
    setup_logging(cfg.logging.level, cfg.logging.json)

    store = open_existing_store(resolve_db(db, cfg))

    try:
        validate_api_key(cfg.generation.model)
    except EnvironmentError:
        model = cfg.generation.model
        console.print(err_no_api_key(provider_of(model), required_env_var(model) or "API_KEY"))
        raise typer.Exit(1)

    parallel_count = cfg.pipeline.parallel_count
    if workers is not None:
        parallel_count = parse_parallel_count(workers, default=parallel_count)

    orchestrator = Orchestrator(
        store,
        GitSource(cfg.storage.workspace),
        LlmDocumentGenerator(cfg.generation.model, cfg.storage.output, cfg.generation.max_files),
        parallel_count=parallel_count,
        queue_capacity=cfg.pipeline.queue_capacity,
        startup_delay=cfg.pipeline.startup_delay,
    )

    console.print(
        f"[bold]repowiki[/] serving {store.db_path} with {orchestrator.parallel_count} worker(s)"
        + (" [dim](--once)[/]" if once else " [dim](Ctrl+C to stop)[/]")
    )
    outcomes = asyncio.run(_serve(orchestrator, until_idle=once))
    _print_summary(outcomes)


async def _serve(orchestrator: Orchestrator, until_idle: bool) -> list[Outcome]:
    cancel = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, cancel.set)
        except (NotImplementedError, RuntimeError):
            # Windows / non-main thread: Ctrl+C surfaces as KeyboardInterrupt instead.
            log.debug("signal_handler_unavailable", signal=sig.name)
    return await orchestrator.run(cancel, until_idle=until_idle)


def _print_summary(outcomes: list[Outcome]) -> None:
    if not outcomes:
        console.print("[dim]No repositories processed.[/]")
        return
    table = Table(title="Processed")
    table.add_column("Repository", no_wrap=True)
    table.add_column("Result")
    table.add_column("Error kind")
    for outcome in outcomes:
        if outcome.skipped:
            result = "[yellow]skipped[/]"
        elif outcome.ok:
            result = "[green]completed[/]"
        else:
            result = "[red]failed[/]"
        kind = outcome.error_kind.value if outcome.error_kind else ""
        table.add_row(outcome.repository_id, result, kind)
    console.print(table)


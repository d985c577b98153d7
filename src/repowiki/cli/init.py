"""repowiki init — create the record store and a starter repowiki.yaml.

Creates:
  .repowiki.db     — empty record store with schema (or --db path)
  repowiki.yaml    — project config with the defaults spelled out (unless present)
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from repowiki.cli.common import console, initialize_store, resolve_db
from repowiki.db.schema import CURRENT_VERSION

_CONFIG_TEMPLATE = """\
# repowiki project configuration.
# Repository credentials are stored per repository (repowiki add --username/--secret).
# LLM API keys belong in environment variables, e.g.  export OPENAI_API_KEY=sk-...

pipeline:
  parallel_count: 1     # concurrent workers (env: PARALLEL_COUNT)
  queue_capacity: 100
  startup_delay: 1.0    # seconds before the recovery scan

storage:
  db: .repowiki.db
  workspace: .repowiki/repositories
  output: .repowiki/docs

generation:
  model: openai/gpt-4o
  max_files: 200

logging:
  level: INFO
  json: false
"""


def init_cmd(
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the database (default: storage.db from config)."),
    ] = None,
    write_config: Annotated[
        bool,
        typer.Option("--config/--no-config", help="Write repowiki.yaml if missing."),
    ] = True,
) -> None:
    """Create (or migrate) the repowiki database."""
    db_path = resolve_db(db)
    existed = db_path.exists()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    initialize_store(db_path)
    if existed:
        console.print(f"[green]✓[/] {db_path} (schema v{CURRENT_VERSION}, up to date)")
    else:
        console.print(f"[green]✓[/] {db_path} (created)")

    config_path = Path("repowiki.yaml")
    if write_config and not config_path.exists():
        config_path.write_text(_CONFIG_TEMPLATE, encoding="utf-8")
        console.print(f"[green]✓[/] {config_path}")

    console.print("\nNext steps:")
    console.print("  1. repowiki add --address <url-or-path>   (register a repository)")
    console.print("  2. repowiki serve                          (process pending repositories)")

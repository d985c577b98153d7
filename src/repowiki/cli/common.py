"""Helpers shared by the CLI commands."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import typer
from rich.console import Console

from repowiki.cli.errors import err_config, err_db_unusable, err_no_db
from repowiki.config import ConfigError, RepowikiConfig, load_config
from repowiki.db.store import RecordStore

console = Console()


def load_cli_config() -> RepowikiConfig:
    """Load config or exit 1 with a readable message."""
    try:
        return load_config()
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1)


def resolve_db(db: Path | None, cfg: RepowikiConfig | None = None) -> Path:
    """--db wins; otherwise storage.db from the config."""
    if db is not None:
        return db
    return Path((cfg or load_cli_config()).storage.db)


def open_existing_store(db: Path) -> RecordStore:
    """Return an initialised store for an existing database, or exit 1."""
    if not db.exists():
        console.print(err_no_db(str(db)))
        raise typer.Exit(1)
    return initialize_store(db)


def initialize_store(db: Path) -> RecordStore:
    """Create or migrate the store at *db*; exit 1 if it cannot be used."""
    store = RecordStore(db)
    try:
        store.initialize()
    except sqlite3.DatabaseError as exc:
        console.print(err_db_unusable(str(db), str(exc)))
        raise typer.Exit(1)
    return store

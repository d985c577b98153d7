"""Database schema initialization."""

from __future__ import annotations

import sqlite3

from repowiki.db.migrations import MIGRATIONS, run_migrations

# Highest schema version this release knows how to use.
CURRENT_VERSION = MIGRATIONS[-1][0]


def initialize(conn: sqlite3.Connection) -> int:
    """Initialize the database schema via the migration runner (idempotent).

    Returns the schema version. A database migrated by a newer release is
    refused instead of being used with an unknown layout.
    """
    run_migrations(conn)
    version = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()[0]
    if version > CURRENT_VERSION:
        raise sqlite3.DatabaseError(
            f"database schema v{version} is newer than this repowiki (v{CURRENT_VERSION})"
        )
    return version

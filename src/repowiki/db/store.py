"""RecordStore: hands out one connection-scoped Repository per unit of work."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from repowiki.db.connection import Database
from repowiki.db.repository import Repository
from repowiki.db.schema import initialize


class RecordStore:
    """Durable store of repository and document records.

    The store itself holds no connection. Callers open a short-lived
    ``session()`` per record; the connection is opened in the calling thread
    and closed on every exit path, including exceptions.
    """

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = Path(db_path)

    def initialize(self) -> int:
        """Create the database file, apply pending migrations, return the schema version."""
        conn = Database(self.db_path).connect()
        try:
            return initialize(conn)
        finally:
            conn.close()

    @contextmanager
    def session(self) -> Iterator[Repository]:
        """Yield a Repository bound to a fresh connection, closed afterwards."""
        conn = Database(self.db_path).connect()
        try:
            yield Repository(conn)
        finally:
            conn.close()

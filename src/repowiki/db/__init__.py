"""repowiki record store."""

from repowiki.db.connection import Database
from repowiki.db.migrations import MIGRATIONS, run_migrations
from repowiki.db.models import DocumentRecord, RepositoryRecord, RepositoryStatus
from repowiki.db.repository import Repository
from repowiki.db.schema import initialize
from repowiki.db.store import RecordStore

__all__ = [
    "Database",
    "DocumentRecord",
    "MIGRATIONS",
    "RecordStore",
    "Repository",
    "RepositoryRecord",
    "RepositoryStatus",
    "initialize",
    "run_migrations",
]

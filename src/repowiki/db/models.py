"""Domain models for the repowiki record store."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum


class RepositoryStatus(IntEnum):
    """Lifecycle status of a repository (and, for a subset, of its document).

    Values are persisted as integers; ``Failed`` is 99 so new intermediate
    states can be added without renumbering.
    """

    PENDING = 0
    PROCESSING = 1
    COMPLETED = 2
    CANCELLED = 3
    UNAUTHORIZED = 4
    FAILED = 99


# Statuses picked up by the startup recovery scan.
RUNNABLE_STATUSES: tuple[RepositoryStatus, ...] = (
    RepositoryStatus.PENDING,
    RepositoryStatus.PROCESSING,
)

KIND_GIT = "git"
KIND_FILE = "file"
SUPPORTED_KINDS = frozenset({KIND_GIT, KIND_FILE})


@dataclass
class RepositoryRecord:
    id: str
    address: str
    kind: str
    status: RepositoryStatus = RepositoryStatus.PENDING
    username: str | None = None
    secret: str | None = field(default=None, repr=False)  # never logged
    branch: str | None = None
    error: str = ""
    name: str | None = None
    organization: str | None = None
    resolved_branch: str | None = None
    revision: str | None = None
    created_at: str | None = None

    @property
    def has_credentials(self) -> bool:
        return bool(self.username or self.secret)


@dataclass
class DocumentRecord:
    id: str
    repository_id: str
    local_path: str
    status: RepositoryStatus = RepositoryStatus.PENDING
    created_at: str | None = None
    last_updated_at: str | None = None

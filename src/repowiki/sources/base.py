"""RepositorySource contract shared by the pipeline and source implementations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


class IngestionError(RuntimeError):
    """Raised when a repository cannot be fetched, opened, or resolved.

    Messages must never contain credentials.
    """


@dataclass(frozen=True)
class ResolvedRepository:
    """Metadata of a repository materialised on local disk."""

    name: str
    branch: str
    revision: str
    organization: str
    local_path: str


class RepositorySource(Protocol):
    """Materialises repository content locally and reports what was resolved."""

    def resolve(
        self,
        address: str,
        username: str | None = None,
        secret: str | None = None,
        branch: str | None = None,
    ) -> ResolvedRepository:
        """Clone or open *address* and return its resolved metadata.

        Raises:
            IngestionError: On network, authentication or reference-resolution
                problems.
        """
        ...

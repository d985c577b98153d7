"""Explicit results of per-record processing.

Steps of the worker return either a value or a Failure; the worker stops at
the first Failure and turns it into an Outcome. Exceptions raised by the
collaborators are converted at the call site, so nothing unwinds through the
worker loop.
"""

from __future__ import annotations

import traceback
from dataclasses import dataclass
from enum import Enum

from repowiki.db.models import RepositoryStatus

UNSUPPORTED_KIND_ERROR = "unsupported repository type"


class ErrorKind(str, Enum):
    CONFIGURATION = "configuration"  # unsupported repository kind
    INGESTION = "ingestion"  # source unreachable / unauthorized / missing ref
    GENERATION = "generation"  # any failure of the document generator
    PERSISTENCE = "persistence"  # storage error while preparing the document


@dataclass(frozen=True)
class Failure:
    kind: ErrorKind
    message: str

    @classmethod
    def from_exception(cls, kind: ErrorKind, exc: BaseException) -> Failure:
        """Capture the full description of *exc*: type, message and traceback."""
        text = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        return cls(kind=kind, message=text.rstrip())


@dataclass(frozen=True)
class Outcome:
    """Final result of processing one repository record."""

    repository_id: str
    status: RepositoryStatus
    failure: Failure | None = None
    document_id: str | None = None
    skipped: bool = False

    @property
    def ok(self) -> bool:
        return self.failure is None and not self.skipped

    @property
    def error_kind(self) -> ErrorKind | None:
        return self.failure.kind if self.failure else None

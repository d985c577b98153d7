"""Worker: end-to-end processing of one repository record at a time.

Per record (Worker.process, run in a thread):
  1. open a unit of work (one connection, closed on every exit path)
  2. Pending|Processing → Processing, before any I/O
  3. unsupported kind (compared case-insensitively) → configuration failure
  4. git: resolve through the RepositorySource, store resolved metadata
     file: the address is already a local path
  5. get or create the single DocumentRecord
  6. run the DocumentGenerator on the normalized address
  7. success → record Completed, document Completed
     failure → record Failed with the full error text, documents deleted

Worker.run is the async loop around it: read, process, repeat until the
cancel event is set. Cancellation is only honoured between records.
"""

from __future__ import annotations

import asyncio
import sqlite3

from repowiki.db.models import (
    KIND_FILE,
    SUPPORTED_KINDS,
    DocumentRecord,
    RepositoryRecord,
    RepositoryStatus,
)
from repowiki.db.repository import Repository
from repowiki.db.store import RecordStore
from repowiki.generate.generator import DocumentGenerator
from repowiki.observability import get_logger, sanitise_url
from repowiki.pipeline.queue import WorkQueue
from repowiki.pipeline.results import UNSUPPORTED_KIND_ERROR, ErrorKind, Failure, Outcome
from repowiki.sources.base import RepositorySource

log = get_logger(__name__)


def normalize_address(address: str) -> str:
    """Strip a trailing ``.git`` from *address*."""
    return address.removesuffix(".git")


class Worker:
    """One record-processing loop of the worker pool.

    Collaborators are passed in explicitly; workers share nothing with each
    other except the queue.
    """

    def __init__(
        self,
        name: str,
        queue: WorkQueue,
        store: RecordStore,
        source: RepositorySource,
        generator: DocumentGenerator,
    ) -> None:
        self.name = name
        self._queue = queue
        self._store = store
        self._source = source
        self._generator = generator
        self.outcomes: list[Outcome] = []

    async def run(self, cancel: asyncio.Event) -> list[Outcome]:
        """Drain the queue until *cancel* is set; return this worker's outcomes."""
        wlog = log.bind(worker=self.name)
        wlog.info("worker_started")
        while not cancel.is_set():
            record = await self._queue.read(cancel)
            if record is None:
                break
            try:
                # A record already dequeued always runs to completion.
                outcome = await asyncio.to_thread(self.process, record)
            except Exception:
                # Only reachable when the store itself fails; the record
                # keeps its last persisted status until the next restart.
                wlog.exception("worker_record_aborted", repository_id=record.id)
            else:
                self.outcomes.append(outcome)
            finally:
                self._queue.done()
        wlog.info("worker_stopped", processed=len(self.outcomes))
        return self.outcomes

    # ------------------------------------------------------------------
    # Per-record processing
    # ------------------------------------------------------------------

    def process(self, record: RepositoryRecord) -> Outcome:
        """Process *record* fully and return the persisted outcome."""
        rlog = log.bind(
            worker=self.name,
            repository_id=record.id,
            kind=record.kind,
            address=sanitise_url(record.address),
        )
        with self._store.session() as repo:
            if not repo.mark_processing(record.id):
                rlog.warning("record_skipped", reason="no longer pending or processing")
                current = repo.get_repository(record.id)
                return Outcome(
                    repository_id=record.id,
                    status=current.status if current else record.status,
                    skipped=True,
                )
            rlog.info("record_started", credentials=record.has_credentials)

            result = self._run_steps(repo, record)
            if isinstance(result, Failure):
                return self._fail(repo, record, result, rlog)

            repo.mark_completed(record.id)
            repo.complete_document(result.id)
            rlog.info("record_completed", document_id=result.id)
            return Outcome(
                repository_id=record.id,
                status=RepositoryStatus.COMPLETED,
                document_id=result.id,
            )

    def _run_steps(self, repo: Repository, record: RepositoryRecord) -> DocumentRecord | Failure:
        if record.kind.lower() not in SUPPORTED_KINDS:
            return Failure(ErrorKind.CONFIGURATION, UNSUPPORTED_KIND_ERROR)

        local_path = self._ingest(repo, record)
        if isinstance(local_path, Failure):
            return local_path

        document = self._ensure_document(repo, record, local_path)
        if isinstance(document, Failure):
            return document

        failure = self._generate(record, document)
        return failure or document

    def _ingest(self, repo: Repository, record: RepositoryRecord) -> str | Failure:
        """Materialise the repository; return its local content path."""
        if record.kind.lower() == KIND_FILE:
            return record.address

        try:
            resolved = self._source.resolve(
                record.address, record.username, record.secret, record.branch
            )
        except Exception as exc:
            return Failure.from_exception(ErrorKind.INGESTION, exc)

        log.info(
            "repository_resolved",
            repository_id=record.id,
            name=resolved.name,
            branch=resolved.branch,
            revision=resolved.revision,
        )
        try:
            repo.update_resolved(
                record.id,
                name=resolved.name,
                organization=resolved.organization,
                branch=resolved.branch,
                revision=resolved.revision,
            )
        except sqlite3.Error as exc:
            return Failure.from_exception(ErrorKind.PERSISTENCE, exc)
        record.name = resolved.name
        record.organization = resolved.organization
        record.resolved_branch = resolved.branch
        record.revision = resolved.revision
        return resolved.local_path

    @staticmethod
    def _ensure_document(
        repo: Repository, record: RepositoryRecord, local_path: str
    ) -> DocumentRecord | Failure:
        try:
            return repo.get_or_create_document(record.id, local_path)
        except sqlite3.Error as exc:
            return Failure.from_exception(ErrorKind.PERSISTENCE, exc)

    def _generate(self, record: RepositoryRecord, document: DocumentRecord) -> Failure | None:
        try:
            self._generator.generate(document, record, normalize_address(record.address))
        except Exception as exc:
            return Failure.from_exception(ErrorKind.GENERATION, exc)
        return None

    @staticmethod
    def _fail(repo: Repository, record: RepositoryRecord, failure: Failure, rlog) -> Outcome:
        """Record the failure and drop the record's documents so a retry starts clean."""
        repo.mark_failed(record.id, failure.message)
        deleted = repo.delete_documents_by_repository(record.id)
        rlog.error(
            "record_failed",
            error_kind=failure.kind.value,
            error=failure.message.splitlines()[-1] if failure.message else "",
            documents_deleted=deleted,
        )
        return Outcome(
            repository_id=record.id,
            status=RepositoryStatus.FAILED,
            failure=failure,
        )

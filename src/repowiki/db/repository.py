"""Repository pattern for all repowiki record-store operations.

Single interface for repository records and their document records. Every
mutation is scoped to one identifier and committed immediately, so a crash
never leaves a half-applied multi-row change behind.
"""

from __future__ import annotations

import sqlite3
import uuid

from repowiki.db.models import (
    RUNNABLE_STATUSES,
    DocumentRecord,
    RepositoryRecord,
    RepositoryStatus,
)

_REPOSITORY_COLUMNS = (
    "id, address, username, secret, branch, kind, status, error, "
    "name, organization, resolved_branch, revision, created_at"
)
_DOCUMENT_COLUMNS = "id, repository_id, local_path, status, created_at, last_updated_at"

# Statuses an operator may send back to Pending.
_REQUEUEABLE_STATUSES: tuple[RepositoryStatus, ...] = (
    RepositoryStatus.COMPLETED,
    RepositoryStatus.FAILED,
    RepositoryStatus.CANCELLED,
    RepositoryStatus.UNAUTHORIZED,
)


class Repository:
    """Data access layer for repository and document records.

    Wraps an open sqlite3.Connection. The connection is owned by the caller
    (see repowiki.db.store.RecordStore.session) and must be closed after use.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Initialise with an open database connection.

        Args:
            conn: An open sqlite3.Connection with the schema initialised
                (see repowiki.db.schema.initialize).
        """
        self._conn = conn

    # ------------------------------------------------------------------
    # Repository records
    # ------------------------------------------------------------------

    def add_repository(self, record: RepositoryRecord) -> None:
        """Insert a new repository record.

        Args:
            record: RepositoryRecord to persist. Resolved metadata is ignored;
                it is only written by the pipeline after ingestion.
        """
        self._conn.execute(
            """
            INSERT INTO repositories (id, address, username, secret, branch, kind, status, error)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record.id,
                record.address,
                record.username,
                record.secret,
                record.branch,
                record.kind,
                int(record.status),
                record.error,
            ),
        )
        self._conn.commit()

    def get_repository(self, repository_id: str) -> RepositoryRecord | None:
        """Return a repository record by ID, or None if not found."""
        row = self._conn.execute(
            f"SELECT {_REPOSITORY_COLUMNS} FROM repositories WHERE id = ?",
            (repository_id,),
        ).fetchone()
        return _row_to_repository(row) if row else None

    def list_repositories(self) -> list[RepositoryRecord]:
        """Return all repository records, oldest registration first."""
        rows = self._conn.execute(
            f"SELECT {_REPOSITORY_COLUMNS} FROM repositories ORDER BY created_at, rowid"
        ).fetchall()
        return [_row_to_repository(r) for r in rows]

    def list_runnable(self) -> list[RepositoryRecord]:
        """Return Pending and Processing records, Processing first.

        Records left Processing by a crashed run come before new work; within
        each group the registration order is kept.
        """
        placeholders = ",".join("?" * len(RUNNABLE_STATUSES))
        rows = self._conn.execute(
            f"""
            SELECT {_REPOSITORY_COLUMNS} FROM repositories
            WHERE status IN ({placeholders})
            ORDER BY CASE status WHEN ? THEN 0 ELSE 1 END, created_at, rowid
            """,
            (*(int(s) for s in RUNNABLE_STATUSES), int(RepositoryStatus.PROCESSING)),
        ).fetchall()
        return [_row_to_repository(r) for r in rows]

    def mark_processing(self, repository_id: str) -> bool:
        """Move a Pending/Processing record to Processing.

        Returns:
            False if the record no longer exists or has left the runnable
            statuses (e.g. cancelled by an operator), True otherwise.
        """
        placeholders = ",".join("?" * len(RUNNABLE_STATUSES))
        cur = self._conn.execute(
            f"UPDATE repositories SET status = ? WHERE id = ? AND status IN ({placeholders})",
            (
                int(RepositoryStatus.PROCESSING),
                repository_id,
                *(int(s) for s in RUNNABLE_STATUSES),
            ),
        )
        self._conn.commit()
        return cur.rowcount == 1

    def update_resolved(
        self,
        repository_id: str,
        *,
        name: str,
        organization: str,
        branch: str,
        revision: str,
    ) -> None:
        """Store metadata resolved by ingestion; status stays Processing."""
        self._conn.execute(
            """
            UPDATE repositories
            SET name = ?, organization = ?, resolved_branch = ?, revision = ?, status = ?
            WHERE id = ?
            """,
            (
                name,
                organization,
                branch,
                revision,
                int(RepositoryStatus.PROCESSING),
                repository_id,
            ),
        )
        self._conn.commit()

    def mark_completed(self, repository_id: str) -> None:
        """Set the record Completed and clear any previous error."""
        self._set_status(repository_id, RepositoryStatus.COMPLETED, "")

    def mark_failed(self, repository_id: str, error: str) -> None:
        """Set the record Failed and store the full error text."""
        self._set_status(repository_id, RepositoryStatus.FAILED, error)

    def requeue(self, repository_id: str) -> bool:
        """Send a finished record back to Pending for another run.

        Returns:
            True if the record was re-queued, False if it does not exist or is
            already Pending/Processing.
        """
        placeholders = ",".join("?" * len(_REQUEUEABLE_STATUSES))
        cur = self._conn.execute(
            f"UPDATE repositories SET status = ?, error = '' WHERE id = ? AND status IN ({placeholders})",
            (
                int(RepositoryStatus.PENDING),
                repository_id,
                *(int(s) for s in _REQUEUEABLE_STATUSES),
            ),
        )
        self._conn.commit()
        return cur.rowcount == 1

    def delete_repository(self, repository_id: str) -> None:
        """Delete a repository record; its documents go with it (ON DELETE CASCADE)."""
        self._conn.execute("DELETE FROM repositories WHERE id = ?", (repository_id,))
        self._conn.commit()

    def _set_status(self, repository_id: str, status: RepositoryStatus, error: str) -> None:
        self._conn.execute(
            "UPDATE repositories SET status = ?, error = ? WHERE id = ?",
            (int(status), error, repository_id),
        )
        self._conn.commit()

    # ------------------------------------------------------------------
    # Document records
    # ------------------------------------------------------------------

    def get_document_by_repository(self, repository_id: str) -> DocumentRecord | None:
        """Return the document owned by *repository_id*, or None."""
        row = self._conn.execute(
            f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE repository_id = ?",
            (repository_id,),
        ).fetchone()
        return _row_to_document(row) if row else None

    def get_or_create_document(self, repository_id: str, local_path: str) -> DocumentRecord:
        """Return the existing document for *repository_id* or insert a Pending one.

        The unique index on documents.repository_id makes this safe to repeat:
        a second call never produces a second row.

        Args:
            repository_id: Owning repository record.
            local_path: Local content path stored on a newly created document.

        Returns:
            The persisted DocumentRecord.
        """
        self._conn.execute(
            """
            INSERT INTO documents (id, repository_id, local_path, status)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(repository_id) DO NOTHING
            """,
            (str(uuid.uuid4()), repository_id, local_path, int(RepositoryStatus.PENDING)),
        )
        self._conn.commit()
        document = self.get_document_by_repository(repository_id)
        if document is None:
            raise sqlite3.IntegrityError(f"document for repository {repository_id} was not stored")
        return document

    def complete_document(self, document_id: str) -> None:
        """Mark a document Completed and refresh its last-updated timestamp."""
        self._conn.execute(
            """
            UPDATE documents
            SET status = ?, last_updated_at = datetime('now')
            WHERE id = ?
            """,
            (int(RepositoryStatus.COMPLETED), document_id),
        )
        self._conn.commit()

    def count_documents_by_repository(self, repository_id: str) -> int:
        return self._conn.execute(
            "SELECT COUNT(*) FROM documents WHERE repository_id = ?", (repository_id,)
        ).fetchone()[0]

    def delete_documents_by_repository(self, repository_id: str) -> int:
        """Hard-delete every document of *repository_id*. Returns the row count."""
        cur = self._conn.execute(
            "DELETE FROM documents WHERE repository_id = ?", (repository_id,)
        )
        self._conn.commit()
        return cur.rowcount


# ------------------------------------------------------------------
# Row → model helpers
# ------------------------------------------------------------------

def _row_to_repository(row: sqlite3.Row) -> RepositoryRecord:
    return RepositoryRecord(
        id=row["id"],
        address=row["address"],
        username=row["username"],
        secret=row["secret"],
        branch=row["branch"],
        kind=row["kind"],
        status=RepositoryStatus(row["status"]),
        error=row["error"],
        name=row["name"],
        organization=row["organization"],
        resolved_branch=row["resolved_branch"],
        revision=row["revision"],
        created_at=row["created_at"],
    )


def _row_to_document(row: sqlite3.Row) -> DocumentRecord:
    return DocumentRecord(
        id=row["id"],
        repository_id=row["repository_id"],
        local_path=row["local_path"],
        status=RepositoryStatus(row["status"]),
        created_at=row["created_at"],
        last_updated_at=row["last_updated_at"],
    )

"""Tests for the Repository pattern."""

from __future__ import annotations

import sqlite3

import pytest

from conftest import make_record
from repowiki.db.models import KIND_FILE, RepositoryStatus
from repowiki.db.repository import Repository


@pytest.fixture
def repo(tmp_db):
    return Repository(tmp_db)


def _set_created(repo, repository_id, created_at):
    repo._conn.execute(
        "UPDATE repositories SET created_at = ? WHERE id = ?", (created_at, repository_id)
    )
    repo._conn.commit()


# ------------------------------------------------------------------
# Repository records
# ------------------------------------------------------------------

def test_add_and_get_repository(repo):
    repo.add_repository(make_record(id="r1", branch="dev", username="bot", secret="s3cret"))
    result = repo.get_repository("r1")
    assert result is not None
    assert result.address == "https://github.com/acme/widgets.git"
    assert result.kind == "git"
    assert result.status == RepositoryStatus.PENDING
    assert result.branch == "dev"
    assert result.username == "bot"
    assert result.secret == "s3cret"
    assert result.error == ""
    assert result.name is None
    assert result.created_at is not None


def test_secret_not_in_repr(repo):
    record = make_record(id="r1", secret="s3cret")
    assert "s3cret" not in repr(record)


def test_get_repository_not_found(repo):
    assert repo.get_repository("nonexistent") is None


def test_list_repositories_registration_order(repo):
    repo.add_repository(make_record(id="a"))
    repo.add_repository(make_record(id="b"))
    repo.add_repository(make_record(id="c"))
    assert [r.id for r in repo.list_repositories()] == ["a", "b", "c"]


def test_list_runnable_excludes_terminal_statuses(repo):
    for status in RepositoryStatus:
        repo.add_repository(make_record(id=status.name.lower(), status=status))
    ids = {r.id for r in repo.list_runnable()}
    assert ids == {"pending", "processing"}


def test_list_runnable_processing_before_pending(repo):
    repo.add_repository(make_record(id="p1"))
    repo.add_repository(make_record(id="x1", status=RepositoryStatus.PROCESSING))
    repo.add_repository(make_record(id="p2"))
    repo.add_repository(make_record(id="x2", status=RepositoryStatus.PROCESSING))
    assert [r.id for r in repo.list_runnable()] == ["x1", "x2", "p1", "p2"]


def test_list_runnable_orders_by_created_at_within_group(repo):
    repo.add_repository(make_record(id="late"))
    repo.add_repository(make_record(id="early"))
    _set_created(repo, "late", "2024-01-02 00:00:00")
    _set_created(repo, "early", "2024-01-01 00:00:00")
    assert [r.id for r in repo.list_runnable()] == ["early", "late"]


def test_list_runnable_empty(repo):
    assert repo.list_runnable() == []


def test_mark_processing_from_pending(repo):
    repo.add_repository(make_record(id="r1"))
    assert repo.mark_processing("r1") is True
    assert repo.get_repository("r1").status == RepositoryStatus.PROCESSING


def test_mark_processing_is_repeatable(repo):
    repo.add_repository(make_record(id="r1", status=RepositoryStatus.PROCESSING))
    assert repo.mark_processing("r1") is True


@pytest.mark.parametrize(
    "status",
    [
        RepositoryStatus.COMPLETED,
        RepositoryStatus.FAILED,
        RepositoryStatus.CANCELLED,
        RepositoryStatus.UNAUTHORIZED,
    ],
)
def test_mark_processing_refuses_finished_records(repo, status):
    repo.add_repository(make_record(id="r1", status=status))
    assert repo.mark_processing("r1") is False
    assert repo.get_repository("r1").status == status


def test_mark_processing_missing_record(repo):
    assert repo.mark_processing("missing") is False


def test_update_resolved(repo):
    repo.add_repository(make_record(id="r1"))
    repo.update_resolved("r1", name="widgets", organization="acme", branch="main", revision="abc123")
    result = repo.get_repository("r1")
    assert result.name == "widgets"
    assert result.organization == "acme"
    assert result.resolved_branch == "main"
    assert result.revision == "abc123"
    assert result.status == RepositoryStatus.PROCESSING


def test_mark_completed_clears_error(repo):
    repo.add_repository(make_record(id="r1", status=RepositoryStatus.PROCESSING, error="old"))
    repo.mark_completed("r1")
    result = repo.get_repository("r1")
    assert result.status == RepositoryStatus.COMPLETED
    assert result.error == ""


def test_mark_failed_stores_full_error(repo):
    repo.add_repository(make_record(id="r1", status=RepositoryStatus.PROCESSING))
    error = "Traceback (most recent call last):\n  ...\nRuntimeError: boom"
    repo.mark_failed("r1", error)
    result = repo.get_repository("r1")
    assert result.status == RepositoryStatus.FAILED
    assert result.status == 99
    assert result.error == error


@pytest.mark.parametrize(
    "status",
    [
        RepositoryStatus.COMPLETED,
        RepositoryStatus.FAILED,
        RepositoryStatus.CANCELLED,
        RepositoryStatus.UNAUTHORIZED,
    ],
)
def test_requeue_finished_records(repo, status):
    repo.add_repository(make_record(id="r1", status=status, error="boom"))
    assert repo.requeue("r1") is True
    result = repo.get_repository("r1")
    assert result.status == RepositoryStatus.PENDING
    assert result.error == ""


@pytest.mark.parametrize("status", [RepositoryStatus.PENDING, RepositoryStatus.PROCESSING])
def test_requeue_runnable_records_is_noop(repo, status):
    repo.add_repository(make_record(id="r1", status=status))
    assert repo.requeue("r1") is False
    assert repo.get_repository("r1").status == status


def test_delete_repository_cascades(repo):
    repo.add_repository(make_record(id="r1"))
    repo.get_or_create_document("r1", "/tmp/widgets")
    repo.delete_repository("r1")
    assert repo.get_repository("r1") is None
    assert repo.count_documents_by_repository("r1") == 0


# ------------------------------------------------------------------
# Document records
# ------------------------------------------------------------------

def test_get_or_create_document_creates_pending(repo):
    repo.add_repository(make_record(id="r1", kind=KIND_FILE, address="/srv/widgets"))
    document = repo.get_or_create_document("r1", "/srv/widgets")
    assert document.repository_id == "r1"
    assert document.local_path == "/srv/widgets"
    assert document.status == RepositoryStatus.PENDING


def test_get_or_create_document_is_idempotent(repo):
    repo.add_repository(make_record(id="r1"))
    first = repo.get_or_create_document("r1", "/clones/acme/widgets")
    second = repo.get_or_create_document("r1", "/somewhere/else")
    assert second.id == first.id
    assert second.local_path == "/clones/acme/widgets"
    assert repo.count_documents_by_repository("r1") == 1


def test_get_or_create_document_raises_when_row_vanishes(repo, monkeypatch):
    repo.add_repository(make_record(id="r1"))
    monkeypatch.setattr(repo, "get_document_by_repository", lambda repository_id: None)
    with pytest.raises(sqlite3.IntegrityError, match="was not stored"):
        repo.get_or_create_document("r1", "/clones/acme/widgets")


def test_get_document_by_repository_missing(repo):
    repo.add_repository(make_record(id="r1"))
    assert repo.get_document_by_repository("r1") is None


def test_complete_document(repo):
    repo.add_repository(make_record(id="r1"))
    document = repo.get_or_create_document("r1", "/tmp/widgets")
    repo._conn.execute(
        "UPDATE documents SET last_updated_at = '2000-01-01 00:00:00' WHERE id = ?", (document.id,)
    )
    repo.complete_document(document.id)
    result = repo.get_document_by_repository("r1")
    assert result.status == RepositoryStatus.COMPLETED
    assert result.last_updated_at > "2000-01-01 00:00:00"


def test_delete_documents_by_repository(repo):
    repo.add_repository(make_record(id="r1"))
    repo.add_repository(make_record(id="r2"))
    repo.get_or_create_document("r1", "/tmp/a")
    repo.get_or_create_document("r2", "/tmp/b")
    assert repo.delete_documents_by_repository("r1") == 1
    assert repo.count_documents_by_repository("r1") == 0
    assert repo.count_documents_by_repository("r2") == 1


def test_delete_documents_none_present(repo):
    repo.add_repository(make_record(id="r1"))
    assert repo.delete_documents_by_repository("r1") == 0

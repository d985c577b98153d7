"""Tests for repowiki requeue."""

from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from conftest import make_record
from repowiki.cli.main import app
from repowiki.db.models import RepositoryStatus
from repowiki.db.store import RecordStore

runner = CliRunner()


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    path = tmp_path / ".repowiki.db"
    RecordStore(path).initialize()
    return path


def _add(db_path: Path, status: RepositoryStatus) -> None:
    with RecordStore(db_path).session() as repo:
        repo.add_repository(make_record(id="r1", status=status, error="boom"))


def _status(db_path: Path) -> RepositoryStatus:
    with RecordStore(db_path).session() as repo:
        return repo.get_repository("r1").status


def test_requeue_failed_record(db_path: Path) -> None:
    _add(db_path, RepositoryStatus.FAILED)
    result = runner.invoke(app, ["requeue", "r1", "--db", str(db_path)])
    assert result.exit_code == 0
    assert "was Failed" in result.output
    assert _status(db_path) == RepositoryStatus.PENDING


def test_requeue_pending_is_noop(db_path: Path) -> None:
    _add(db_path, RepositoryStatus.PENDING)
    result = runner.invoke(app, ["requeue", "r1", "--db", str(db_path)])
    assert result.exit_code == 0
    assert "Nothing to do" in result.output
    assert _status(db_path) == RepositoryStatus.PENDING


def test_requeue_not_found(db_path: Path) -> None:
    result = runner.invoke(app, ["requeue", "missing", "--db", str(db_path)])
    assert result.exit_code == 1
    assert "not found" in result.output.lower()

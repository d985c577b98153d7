"""Shared pytest fixtures."""

from __future__ import annotations

import threading
import uuid

import pytest

from repowiki.db.connection import Database
from repowiki.db.models import KIND_GIT, RepositoryRecord, RepositoryStatus
from repowiki.db.schema import initialize
from repowiki.db.store import RecordStore
from repowiki.sources.base import IngestionError, ResolvedRepository


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path, monkeypatch):
    """Keep the user's global config and env overrides out of every test."""
    monkeypatch.setattr("repowiki.config._GLOBAL_CONFIG_PATH", tmp_path / "no-global-config.yaml")
    for name in ("PARALLEL_COUNT", "REPOWIKI_GENERATION_MODEL", "REPOWIKI_LOG_LEVEL", "GIT_TOKEN"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def tmp_db(tmp_path):
    """File-based DB in tmp_path with schema initialized, closed after test."""
    db = Database(tmp_path / ".repowiki.db")
    conn = db.connect()
    initialize(conn)
    yield conn
    conn.close()


@pytest.fixture
def store(tmp_path):
    """Initialised RecordStore backed by a file in tmp_path."""
    record_store = RecordStore(tmp_path / ".repowiki.db")
    record_store.initialize()
    return record_store


def make_record(
    address: str = "https://github.com/acme/widgets.git",
    kind: str = KIND_GIT,
    status: RepositoryStatus = RepositoryStatus.PENDING,
    **kwargs,
) -> RepositoryRecord:
    return RepositoryRecord(
        id=kwargs.pop("id", str(uuid.uuid4())),
        address=address,
        kind=kind,
        status=status,
        **kwargs,
    )


# ---------------------------------------------------------------------------
# Pipeline collaborators
# ---------------------------------------------------------------------------


class FakeSource:
    """RepositorySource stand-in: resolves to a directory under *root*."""

    def __init__(self, root, fail_for: set[str] | None = None) -> None:
        self.root = root
        self.fail_for = fail_for or set()
        self.calls: list[tuple] = []

    def resolve(self, address, username=None, secret=None, branch=None):
        self.calls.append((address, username, secret, branch))
        if address in self.fail_for:
            raise IngestionError(f"repository not found: {address}")
        name = address.rstrip("/").split("/")[-1].removesuffix(".git")
        local = self.root / name
        local.mkdir(parents=True, exist_ok=True)
        return ResolvedRepository(
            name=name,
            branch=branch or "main",
            revision="0123456789abcdef",
            organization="acme",
            local_path=str(local),
        )


class FakeGenerator:
    """DocumentGenerator stand-in that records its calls.

    *fail_for* holds normalized addresses whose generation raises.
    *barrier* (optional) makes every call wait until N calls are in flight.
    """

    def __init__(self, fail_for: set[str] | None = None, barrier: threading.Barrier | None = None) -> None:
        self.fail_for = fail_for or set()
        self.barrier = barrier
        self.calls: list[tuple[str, str, str]] = []
        self._lock = threading.Lock()

    def generate(self, document, repository, address) -> None:
        with self._lock:
            self.calls.append((repository.id, document.id, address))
        if self.barrier is not None:
            self.barrier.wait(timeout=10)
        if address in self.fail_for:
            raise RuntimeError(f"generation failed for {address}")


@pytest.fixture
def source(tmp_path):
    return FakeSource(tmp_path / "clones")


@pytest.fixture
def generator():
    return FakeGenerator()

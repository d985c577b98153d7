"""Tests for the LLM document generator."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from conftest import make_record
from repowiki.db.models import DocumentRecord
from repowiki.generate.generator import (
    LlmDocumentGenerator,
    build_messages,
    scan_repository,
)


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _repo_tree(root: Path) -> Path:
    (root / "src" / "widgets").mkdir(parents=True)
    (root / "src" / "widgets" / "__init__.py").write_text("", encoding="utf-8")
    (root / ".git").mkdir()
    (root / ".git" / "HEAD").write_text("ref: refs/heads/main\n", encoding="utf-8")
    (root / ".env").write_text("SECRET=1\n", encoding="utf-8")
    (root / "README.md").write_text("# Widgets\nMakes widgets.\n", encoding="utf-8")
    return root


def _document(local_path: Path, repository_id: str = "r1") -> DocumentRecord:
    return DocumentRecord(id="d1", repository_id=repository_id, local_path=str(local_path))


# ------------------------------------------------------------------
# scan_repository
# ------------------------------------------------------------------


def test_scan_repository_skips_hidden_entries(tmp_path):
    snapshot = scan_repository(_repo_tree(tmp_path))
    assert "README.md" in snapshot.tree
    assert "src/" in snapshot.tree
    assert "src/widgets/__init__.py" in snapshot.tree
    assert not any(entry.startswith(".") for entry in snapshot.tree)


def test_scan_repository_reads_readme(tmp_path):
    snapshot = scan_repository(_repo_tree(tmp_path))
    assert snapshot.readme is not None
    assert "Makes widgets." in snapshot.readme


def test_scan_repository_truncates(tmp_path):
    for i in range(5):
        (tmp_path / f"f{i}.txt").write_text("x", encoding="utf-8")
    snapshot = scan_repository(tmp_path, max_files=3)
    assert len(snapshot.tree) == 3
    assert snapshot.truncated is True


def test_scan_repository_missing_dir(tmp_path):
    with pytest.raises(FileNotFoundError):
        scan_repository(tmp_path / "missing")


# ------------------------------------------------------------------
# build_messages
# ------------------------------------------------------------------


def test_build_messages_wraps_content_in_context(tmp_path):
    record = make_record(id="r1", name="widgets", resolved_branch="main", revision="abc123")
    snapshot = scan_repository(_repo_tree(tmp_path))
    messages = build_messages(record, "https://github.com/acme/widgets", snapshot)

    assert messages[0]["role"] == "system"
    assert "untrusted" in messages[0]["content"]
    user = messages[1]["content"]
    assert "Repository: widgets" in user
    assert "Branch: main @ abc123" in user
    assert user.index("<context>") < user.index("README.md") < user.index("</context>")


def test_build_messages_falls_back_to_path_name(tmp_path):
    record = make_record(id="r1", kind="file", address=str(tmp_path / "gadgets"))
    snapshot = scan_repository(tmp_path)
    messages = build_messages(record, str(tmp_path / "gadgets"), snapshot)
    assert "Repository: gadgets" in messages[1]["content"]


# ------------------------------------------------------------------
# LlmDocumentGenerator
# ------------------------------------------------------------------


def test_generate_writes_document(tmp_path):
    repo_dir = _repo_tree(tmp_path / "clone")
    output = tmp_path / "docs"
    generator = LlmDocumentGenerator("openai/gpt-4o", output)
    record = make_record(id="r1", name="widgets")

    with patch("repowiki.generate.generator.complete", return_value="# Widgets overview") as mock_c:
        generator.generate(_document(repo_dir), record, "https://github.com/acme/widgets")

    assert mock_c.call_args.args[0] == "openai/gpt-4o"
    written = (output / "r1" / "README.md").read_text(encoding="utf-8")
    assert written == "# Widgets overview\n"


def test_generate_empty_response_raises(tmp_path):
    repo_dir = _repo_tree(tmp_path / "clone")
    generator = LlmDocumentGenerator("openai/gpt-4o", tmp_path / "docs")

    with patch("repowiki.generate.generator.complete", return_value="   "):
        with pytest.raises(RuntimeError, match="empty document"):
            generator.generate(_document(repo_dir), make_record(id="r1"), "x")

    assert not (tmp_path / "docs" / "r1" / "README.md").exists()


def test_generate_missing_local_path_raises(tmp_path):
    generator = LlmDocumentGenerator("openai/gpt-4o", tmp_path / "docs")
    with patch("repowiki.generate.generator.complete") as mock_c:
        with pytest.raises(FileNotFoundError):
            generator.generate(_document(tmp_path / "gone"), make_record(id="r1"), "x")
    mock_c.assert_not_called()


def test_generate_propagates_llm_errors(tmp_path):
    repo_dir = _repo_tree(tmp_path / "clone")
    generator = LlmDocumentGenerator("openai/gpt-4o", tmp_path / "docs")
    with patch("repowiki.generate.generator.complete", side_effect=RuntimeError("rate limited")):
        with pytest.raises(RuntimeError, match="rate limited"):
            generator.generate(_document(repo_dir), make_record(id="r1"), "x")

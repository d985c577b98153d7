"""Output writer: atomic Markdown writes confined to the output directory."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path


def document_path(output_dir: Path, repository_id: str) -> Path:
    """Return ``<output_dir>/<repository_id>/README.md``.

    Raises:
        ValueError: If *repository_id* would escape *output_dir*.
    """
    base = output_dir.resolve()
    resolved = (base / repository_id / "README.md").resolve()
    try:
        resolved.relative_to(base)
    except ValueError:
        raise ValueError(
            f"Repository id '{repository_id}' resolves outside the output directory "
            f"('{base}'). Path traversal is not permitted."
        )
    return resolved


def write_output(path: Path, content: str) -> None:
    """Write *content* to *path* atomically (temp → rename).

    Creates parent directories if needed.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    # Write to a temp file in the same directory, then rename
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp_path, path)
    except Exception:
        # Clean up temp file on error
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise

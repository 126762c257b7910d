"""Read and write board documents on disk."""
from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


class DocumentNotFoundError(FileNotFoundError):
    """The board document to sync does not exist."""


def read_document(path: Path) -> str:
    if not path.is_file():
        raise DocumentNotFoundError(f"Board document not found: {path}")
    return path.read_text(encoding="utf-8")


def write_document(path: Path, text: str) -> None:
    """Replace ``path`` with ``text`` in one step so readers never see a partial file."""

    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        "w",
        encoding="utf-8",
        newline="",
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp",
        delete=False,
    ) as fh:
        fh.write(text)
        temp_path = Path(fh.name)
    try:
        if path.exists():
            shutil.copymode(path, temp_path)
        os.replace(temp_path, path)
    except OSError:
        temp_path.unlink(missing_ok=True)
        raise
    logger.debug("Wrote %d characters to %s", len(text), path)

"""Per-ticket note files that board links point at."""
from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from string import Template

from .reconcile import ExternalRecord

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE = "# $key\n\n$summary\n\nStatus: $status\n"


def load_template(path: Path | None) -> str:
    if path is None:
        return DEFAULT_TEMPLATE
    if not path.is_file():
        logger.warning("Note template %s not found; using default", path)
        return DEFAULT_TEMPLATE
    return path.read_text(encoding="utf-8")


def render_note(record: ExternalRecord, template: str = DEFAULT_TEMPLATE) -> str:
    return Template(template).safe_substitute(
        key=record.key,
        summary=record.summary,
        status=record.status,
    )


def ensure_ticket_notes(
    records: Iterable[ExternalRecord],
    notes_dir: Path,
    template: str = DEFAULT_TEMPLATE,
) -> list[Path]:
    """Create ``<KEY>.md`` for records that have no note yet. Existing notes are left alone."""

    created: list[Path] = []
    notes_dir.mkdir(parents=True, exist_ok=True)
    for record in records:
        path = notes_dir / f"{record.key}.md"
        if path.exists():
            continue
        try:
            path.write_text(render_note(record, template), encoding="utf-8")
        except OSError as exc:
            logger.error("Failed to create note %s: %s", path, exc)
            continue
        created.append(path)
    if created:
        logger.info("Created %d ticket note(s) in %s", len(created), notes_dir)
    return created

"""Status to board column resolution."""
from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def resolve_section(status: str, placement: Mapping[str, str] | None = None) -> str:
    """Return the column for ``status``; unmapped statuses name their own column."""

    if placement and status in placement:
        return placement[status]
    return status


def coerce_placement_map(raw: Any) -> dict[str, str]:
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        logger.warning("Ignoring placement map of type %s", type(raw).__name__)
        return {}
    placement: dict[str, str] = {}
    for status, section in raw.items():
        if not isinstance(status, str) or not isinstance(section, str) or not section.strip():
            logger.warning("Skipping invalid placement entry %r -> %r", status, section)
            continue
        placement[status] = section.strip()
    return placement


def load_placement_map(path: Path) -> dict[str, str]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as fh:
        return coerce_placement_map(json.load(fh))

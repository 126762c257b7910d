"""Jira to markdown kanban board sync."""
from __future__ import annotations

from pathlib import Path

from . import (
    completion,
    config,
    frontmatter,
    normalize,
    notes,
    placement,
    reconcile,
    runner,
    sections,
    store,
    tasks,
    tracker,
)

__all__ = [
    "sections",
    "tasks",
    "placement",
    "reconcile",
    "normalize",
    "completion",
    "frontmatter",
    "tracker",
    "store",
    "notes",
    "config",
    "runner",
    "sync_board",
]


def sync_board(document: Path, config_path: Path | None = None) -> runner.SyncOutcome:
    """Convenience wrapper: load config from ``config_path`` and sync ``document``."""
    from .config import load_config

    return runner.run_sync(document, load_config(config_path))

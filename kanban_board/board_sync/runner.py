"""One sync run: read the board, fetch records, reconcile, write back."""
from __future__ import annotations

import difflib
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from . import frontmatter, notes, store, tracker
from .completion import mark_completed
from .config import SyncConfig
from .normalize import normalize_whitespace
from .reconcile import ExternalRecord, ReconcileResult, reconcile, unique_records
from .sections import DONE_MARKER

logger = logging.getLogger(__name__)

RecordFetcher = Callable[[SyncConfig], list[ExternalRecord]]


@dataclass
class SyncOutcome:
    status: str
    document: Path
    result: ReconcileResult | None = None
    diff: str = ""
    created_notes: list[Path] = field(default_factory=list)


def render_diff(before: str, after: str, name: str) -> str:
    return "".join(
        difflib.unified_diff(
            before.splitlines(keepends=True),
            after.splitlines(keepends=True),
            fromfile=f"a/{name}",
            tofile=f"b/{name}",
        )
    )


def fetch_from_config(config: SyncConfig) -> list[ExternalRecord]:
    if not config.query:
        logger.warning("No tracker query configured; syncing with zero records")
        return []
    return tracker.fetch_all(
        config.query,
        config.aliases,
        config.accounts,
        max_workers=config.max_workers,
    )


def run_sync(
    document: Path,
    config: SyncConfig,
    *,
    fetcher: RecordFetcher | None = None,
    dry_run: bool = False,
) -> SyncOutcome:
    """Run one reconciliation of ``document``.

    A missing document raises :class:`store.DocumentNotFoundError`. Everything
    else degrades: fetch failures mean zero records, and an engine failure
    leaves the document untouched.
    """

    text = store.read_document(document)
    flag = frontmatter.read_flag(text)
    if flag is None:
        updated = frontmatter.bootstrap_flag(text)
        diff = render_diff(text, updated, document.name)
        if dry_run:
            return SyncOutcome("dry-run", document, diff=diff)
        store.write_document(document, updated)
        logger.info("Enabled automatic sync for %s; records will sync on the next run", document)
        return SyncOutcome("bootstrapped", document, diff=diff)
    if not flag:
        logger.info("Automatic sync is disabled for %s", document)
        return SyncOutcome("disabled", document)

    try:
        records = (fetcher or fetch_from_config)(config)
    except Exception:
        logger.exception("Fetching records failed; syncing with zero records")
        records = []
    records = unique_records(records)

    created: list[Path] = []
    if config.notes_dir is not None and not dry_run:
        try:
            created = notes.ensure_ticket_notes(records, config.notes_dir, config.note_template)
        except OSError as exc:
            logger.error("Could not prepare ticket notes in %s: %s", config.notes_dir, exc)

    try:
        result = reconcile(text, records, config.placement, config.done_marker)
    except Exception:
        logger.exception("Reconciliation failed for %s; document left untouched", document)
        return SyncOutcome("error", document, created_notes=created)

    logger.info(
        "Added: %d, Moved: %d, Duplicates removed: %d",
        len(result.added),
        len(result.moved),
        len(result.removed),
    )
    diff = render_diff(text, result.text, document.name)
    if not result.changed:
        return SyncOutcome("unchanged", document, result=result, created_notes=created)
    if dry_run:
        return SyncOutcome("dry-run", document, result=result, diff=diff)
    store.write_document(document, result.text)
    return SyncOutcome("updated", document, result=result, diff=diff, created_notes=created)


def tidy_document(document: Path, marker: str = DONE_MARKER, *, dry_run: bool = False) -> SyncOutcome:
    """Normalize spacing and check off done blocks without contacting the tracker."""

    text = store.read_document(document)
    updated = mark_completed(normalize_whitespace(text, marker), marker)
    if updated == text:
        return SyncOutcome("unchanged", document)
    diff = render_diff(text, updated, document.name)
    if dry_run:
        return SyncOutcome("dry-run", document, diff=diff)
    store.write_document(document, updated)
    return SyncOutcome("updated", document, diff=diff)

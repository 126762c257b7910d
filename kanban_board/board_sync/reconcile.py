"""Reconcile a board document against a batch of tracker records.

Every helper takes the current document text and returns a new value. Section
and task offsets are recomputed from the returned text before the next edit;
offsets from a previous version are never reused.
"""
from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field

from .completion import mark_completed
from .normalize import normalize_whitespace
from .placement import resolve_section
from .sections import (
    DONE_MARKER,
    body_starts_with_marker,
    find_section,
    first_body_line,
    index_sections,
)
from .tasks import (
    TaskReference,
    group_by_key,
    is_valid_key,
    locate_tasks,
    preamble_keys,
    task_line,
)

logger = logging.getLogger(__name__)

SETTINGS_RE = re.compile(r"^%% kanban:settings", re.MULTILINE)


@dataclass(frozen=True)
class ExternalRecord:
    key: str
    status: str
    summary: str = ""


@dataclass
class ReconcileResult:
    text: str
    original: str
    added: list[str] = field(default_factory=list)
    moved: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.text != self.original


def unique_records(records: Iterable[ExternalRecord]) -> list[ExternalRecord]:
    """Drop malformed records and repeated keys, keeping the first of each."""

    seen: set[str] = set()
    result: list[ExternalRecord] = []
    for record in records:
        if not isinstance(record.key, str) or not isinstance(record.status, str):
            logger.warning("Rejecting malformed record %r", record)
            continue
        if not is_valid_key(record.key) or not record.status.strip():
            logger.warning("Rejecting malformed record %r", record)
            continue
        if record.key in seen:
            logger.debug("Ignoring repeated record for %s", record.key)
            continue
        seen.add(record.key)
        result.append(record)
    return result


def target_section(record: ExternalRecord, placement: Mapping[str, str] | None) -> str:
    return " ".join(resolve_section(record.status, placement).split())


def remove_spans(text: str, tasks: Iterable[TaskReference]) -> str:
    for task in sorted(tasks, key=lambda task: task.offset, reverse=True):
        text = text[: task.offset] + text[task.end :]
    return text


def append_section(text: str, name: str, line: str) -> str:
    settings = SETTINGS_RE.search(text)
    cut = settings.start() if settings else len(text)
    head = text[:cut].rstrip("\n")
    tail = text[cut:]
    block = f"## {name}\n{line}"
    if head:
        head += "\n\n"
    if tail:
        block += "\n"
    return head + block + tail


def insert_task_line(
    text: str,
    section_name: str,
    line: str,
    marker: str = DONE_MARKER,
) -> str:
    """Insert ``line`` at the top of ``section_name``, creating it if needed.

    The anchor is directly below the heading, or directly below the done
    marker when the section body opens with it.
    """

    if not line.endswith("\n"):
        line += "\n"
    section = find_section(index_sections(text), section_name)
    if section is None:
        logger.debug("Creating section %r", section_name)
        return append_section(text, section_name, line)
    anchor = section.start
    if body_starts_with_marker(text, section, marker):
        first = first_body_line(text, section)
        if first is not None:
            marker_line, marker_offset = first
            anchor = marker_offset + len(marker_line)
            if anchor < len(text) and text[anchor] == "\n":
                anchor += 1
    if anchor > 0 and text[anchor - 1] != "\n":
        line = "\n" + line
    return text[:anchor] + line + text[anchor:]


def deduplicate(text: str) -> tuple[str, list[str]]:
    doomed: list[TaskReference] = []
    for occurrences in group_by_key(locate_tasks(text)).values():
        doomed.extend(occurrences[1:])
    if not doomed:
        return text, []
    logger.debug("Removing %d duplicate task line(s)", len(doomed))
    return remove_spans(text, doomed), sorted(task.key for task in doomed)


def add_missing(
    text: str,
    records: Sequence[ExternalRecord],
    placement: Mapping[str, str] | None = None,
    marker: str = DONE_MARKER,
) -> tuple[str, list[str]]:
    present = {task.key for task in locate_tasks(text)} | preamble_keys(text)
    pending = [record for record in records if record.key not in present]
    # Each insert lands at the top of its column, so walk backwards to keep
    # record order within a column.
    for record in reversed(pending):
        text = insert_task_line(text, target_section(record, placement), task_line(record.key), marker)
    return text, [record.key for record in pending]


def reclassify(
    text: str,
    records: Sequence[ExternalRecord],
    placement: Mapping[str, str] | None = None,
    marker: str = DONE_MARKER,
) -> tuple[str, list[str]]:
    by_key = {task.key: task for task in locate_tasks(text)}
    moves: list[tuple[TaskReference, str, str]] = []
    for record in records:
        task = by_key.get(record.key)
        if task is None:
            continue
        target = target_section(record, placement)
        if task.section.name == target:
            continue
        logger.debug("Moving %s from %r to %r", record.key, task.section.name, target)
        moves.append((task, target, task.line(text)))
    if not moves:
        return text, []
    text = remove_spans(text, [task for task, _, _ in moves])
    for _, target, line in reversed(moves):
        text = insert_task_line(text, target, line, marker)
    return text, [task.key for task, _, _ in moves]


def reconcile(
    text: str,
    records: Iterable[ExternalRecord],
    placement: Mapping[str, str] | None = None,
    marker: str = DONE_MARKER,
) -> ReconcileResult:
    batch = unique_records(records)
    current, removed = deduplicate(text)
    current, added = add_missing(current, batch, placement, marker)
    current, moved = reclassify(current, batch, placement, marker)
    current = normalize_whitespace(current, marker)
    current = mark_completed(current, marker)
    return ReconcileResult(text=current, original=text, added=added, moved=moved, removed=removed)

"""Locate tracker task references inside board sections."""
from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from .sections import Section, index_sections

KEY_PATTERN = r"[A-Z][A-Z0-9]*-\d+"
KEY_RE = re.compile(rf"^{KEY_PATTERN}$")
CHECKBOX_RE = re.compile(r"^(?P<indent>[ \t]*[-*+][ \t]+)\[(?P<mark>[ xX])\]", re.MULTILINE)
TASK_RE = re.compile(
    rf"^[ \t]*[-*+][ \t]+\[(?P<mark>[ xX])\][ \t]+"
    rf"\[\[(?P<key>{KEY_PATTERN})(?:\|[^\]\n]*)?\]\](?P<rest>[^\n]*)(?:\n|\Z)",
    re.MULTILINE,
)


@dataclass(frozen=True)
class TaskReference:
    """One line naming a tracker key."""

    key: str
    checked: bool
    offset: int
    length: int
    section: Section

    @property
    def end(self) -> int:
        return self.offset + self.length

    def line(self, text: str) -> str:
        return text[self.offset : self.end]


def is_valid_key(value: str) -> bool:
    return bool(KEY_RE.match(value))


def task_line(key: str, *, checked: bool = False) -> str:
    mark = "x" if checked else " "
    return f"- [{mark}] [[{key}]]\n"


def is_checkbox_line(line: str) -> bool:
    return bool(CHECKBOX_RE.match(line))


def locate_tasks(text: str, sections: Sequence[Section] | None = None) -> list[TaskReference]:
    if sections is None:
        sections = index_sections(text)
    tasks: list[TaskReference] = []
    for section in sections:
        for match in TASK_RE.finditer(text, section.start, section.end):
            tasks.append(
                TaskReference(
                    key=match.group("key"),
                    checked=match.group("mark") in "xX",
                    offset=match.start(),
                    length=match.end() - match.start(),
                    section=section,
                )
            )
    return tasks


def group_by_key(tasks: Iterable[TaskReference]) -> dict[str, list[TaskReference]]:
    grouped: dict[str, list[TaskReference]] = {}
    for task in sorted(tasks, key=lambda task: task.offset):
        grouped.setdefault(task.key, []).append(task)
    return grouped


def keys_in(text: str) -> list[str]:
    return [task.key for task in locate_tasks(text)]


def preamble_keys(text: str, sections: Sequence[Section] | None = None) -> set[str]:
    """Keys referenced by task lines above the first heading."""

    if sections is None:
        sections = index_sections(text)
    end = sections[0].heading_offset if sections else len(text)
    return {match.group("key") for match in TASK_RE.finditer(text, 0, end)}

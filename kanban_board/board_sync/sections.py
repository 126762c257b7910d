"""Heading index for board documents."""
from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass

HEADING_RE = re.compile(r"^##[ \t]+(?P<name>[^\n]*?)[ \t]*$", re.MULTILINE)
FRONTMATTER_RE = re.compile(
    r"\A---[ \t]*\n(?P<body>.*?)^---[ \t]*$\n?", re.MULTILINE | re.DOTALL
)

DONE_MARKER = "**Complete**"


@dataclass(frozen=True)
class Section:
    """A level-2 heading and the half-open body range it owns."""

    name: str
    heading_offset: int
    start: int
    end: int

    def contains(self, offset: int) -> bool:
        return self.start <= offset < self.end

    def body(self, text: str) -> str:
        return text[self.start : self.end]


def preamble_end(text: str) -> int:
    match = FRONTMATTER_RE.match(text)
    return match.end() if match else 0


def index_sections(text: str) -> list[Section]:
    headings: list[tuple[str, int, int]] = []
    for match in HEADING_RE.finditer(text, preamble_end(text)):
        name = " ".join(match.group("name").split())
        if not name:
            continue
        body_start = match.end()
        if body_start < len(text) and text[body_start] == "\n":
            body_start += 1
        headings.append((name, match.start(), body_start))
    sections: list[Section] = []
    for index, (name, heading_offset, body_start) in enumerate(headings):
        if index + 1 < len(headings):
            body_end = headings[index + 1][1]
        else:
            body_end = len(text)
        sections.append(Section(name, heading_offset, body_start, body_end))
    return sections


def find_section(sections: Sequence[Section], name: str) -> Section | None:
    # Duplicate headings: the first one in document order is the target.
    wanted = " ".join(name.split())
    for section in sections:
        if section.name == wanted:
            return section
    return None


def section_at(sections: Sequence[Section], offset: int) -> Section | None:
    for section in sections:
        if section.contains(offset):
            return section
        if section.start > offset:
            break
    return None


def first_body_line(text: str, section: Section) -> tuple[str, int] | None:
    """Return the first non-blank body line of ``section`` and its offset."""

    cursor = section.start
    while cursor < section.end:
        newline = text.find("\n", cursor, section.end)
        line_end = section.end if newline == -1 else newline
        line = text[cursor:line_end]
        if line.strip():
            return line, cursor
        cursor = line_end + 1
    return None


def body_starts_with_marker(text: str, section: Section, marker: str) -> bool:
    first = first_body_line(text, section)
    return first is not None and first[0].strip() == marker.strip()

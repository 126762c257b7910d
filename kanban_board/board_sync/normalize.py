"""Canonical blank-line spacing for board documents."""
from __future__ import annotations

from .sections import DONE_MARKER, HEADING_RE
from .tasks import is_checkbox_line

BLANK = "blank"
HEADING = "heading"
MARKER = "marker"
TASK = "task"
OTHER = "other"

# Blank lines required between two adjacent non-blank line kinds. Pairs not
# listed keep whatever spacing the author used.
BLANK_LINES: dict[tuple[str, str], int] = {
    (TASK, TASK): 0,
    (MARKER, TASK): 0,
    (HEADING, MARKER): 1,
    (HEADING, TASK): 1,
    (HEADING, HEADING): 1,
    (TASK, HEADING): 1,
    (MARKER, HEADING): 1,
}


def classify_line(line: str, marker: str = DONE_MARKER) -> str:
    stripped = line.strip()
    if not stripped:
        return BLANK
    match = HEADING_RE.match(line)
    if match and match.group("name").strip():
        return HEADING
    if stripped == marker.strip():
        return MARKER
    if is_checkbox_line(line):
        return TASK
    return OTHER


def normalize_whitespace(text: str, marker: str = DONE_MARKER) -> str:
    output: list[str] = []
    pending_blanks: list[str] = []
    previous_kind: str | None = None
    for line in text.strip().split("\n"):
        kind = classify_line(line, marker)
        if kind == BLANK:
            pending_blanks.append(line)
            continue
        if previous_kind is not None:
            wanted = BLANK_LINES.get((previous_kind, kind))
            if wanted is None:
                output.extend(pending_blanks)
            else:
                output.extend([""] * wanted)
        pending_blanks = []
        output.append(line)
        previous_kind = kind
    return "\n".join(output) + "\n"

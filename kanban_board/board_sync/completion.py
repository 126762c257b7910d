"""Check off task lines that sit in a "done" block."""
from __future__ import annotations

import logging
import re

from .sections import DONE_MARKER, body_starts_with_marker, index_sections
from .tasks import CHECKBOX_RE

logger = logging.getLogger(__name__)


def mark_completed(text: str, marker: str = DONE_MARKER) -> str:
    """Return ``text`` with every checkbox under a done-marked heading checked."""

    def check(match: re.Match[str]) -> str:
        return f"{match.group('indent')}[x]" if match.group("mark") == " " else match.group(0)

    pieces: list[str] = []
    cursor = 0
    flipped = 0
    for section in index_sections(text):
        if not body_starts_with_marker(text, section, marker):
            continue
        body = section.body(text)
        updated = CHECKBOX_RE.sub(check, body)
        if updated == body:
            continue
        flipped += sum(1 for match in CHECKBOX_RE.finditer(body) if match.group("mark") == " ")
        pieces.append(text[cursor : section.start])
        pieces.append(updated)
        cursor = section.end
    if not flipped:
        return text
    pieces.append(text[cursor:])
    logger.debug("Checked %d task(s) under %s", flipped, marker)
    return "".join(pieces)

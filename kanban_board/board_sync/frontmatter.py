"""Front-matter switch that opts a board into automatic syncing."""
from __future__ import annotations

import logging
import re

from .sections import FRONTMATTER_RE

logger = logging.getLogger(__name__)

FLAG_KEY = "autoUpdateKanban"
FIELD_RE = re.compile(r"^(?P<key>[A-Za-z0-9_\-]+)[ \t]*:[ \t]*(?P<value>.*?)[ \t]*$")
TRUE_VALUES = {"true", "yes", "on"}


def read_frontmatter(text: str) -> dict[str, str]:
    match = FRONTMATTER_RE.match(text)
    if not match:
        return {}
    fields: dict[str, str] = {}
    for line in match.group("body").splitlines():
        field_match = FIELD_RE.match(line)
        if field_match:
            fields[field_match.group("key")] = field_match.group("value")
    return fields


def read_flag(text: str) -> bool | None:
    """Return the sync switch, or ``None`` when the board has never been opted in."""

    value = read_frontmatter(text).get(FLAG_KEY)
    if value is None:
        return None
    return value.strip().strip("\"'").lower() in TRUE_VALUES


def bootstrap_flag(text: str, enabled: bool = True) -> str:
    line = f"{FLAG_KEY}: {'true' if enabled else 'false'}\n"
    match = FRONTMATTER_RE.match(text)
    if match:
        insert_at = match.end("body")
        logger.info("Adding %s to existing front matter", FLAG_KEY)
        return text[:insert_at] + line + text[insert_at:]
    logger.info("Creating front matter with %s", FLAG_KEY)
    header = f"---\nkanban-plugin: board\n{line}---\n"
    body = text.lstrip("\n")
    return f"{header}\n{body}" if body else header

"""Sync settings loaded from a JSON file with environment overrides."""
from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, cast

from .notes import DEFAULT_TEMPLATE, load_template
from .placement import coerce_placement_map, load_placement_map
from .sections import DONE_MARKER
from .tracker import JiraAccount

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 4


@dataclass
class SyncConfig:
    query: str = ""
    aliases: list[str] = field(default_factory=list)
    accounts: dict[str, JiraAccount] = field(default_factory=dict)
    placement: dict[str, str] = field(default_factory=dict)
    done_marker: str = DONE_MARKER
    notes_dir: Path | None = None
    note_template: str = DEFAULT_TEMPLATE
    max_workers: int = DEFAULT_MAX_WORKERS


def split_aliases(value: str | None) -> list[str]:
    if not value:
        return []
    return [entry.strip() for entry in value.split(",") if entry.strip()]


def resolve_max_workers(value: Any, environ: Mapping[str, str]) -> int:
    env_value = environ.get("BOARD_SYNC_MAX_WORKERS")
    if env_value:
        try:
            return max(int(env_value), 1)
        except ValueError:
            logger.debug("Invalid BOARD_SYNC_MAX_WORKERS value: %s", env_value)
    if isinstance(value, int):
        return max(value, 1)
    return DEFAULT_MAX_WORKERS


def build_accounts(raw: Any, environ: Mapping[str, str]) -> dict[str, JiraAccount]:
    accounts: dict[str, JiraAccount] = {}
    if not isinstance(raw, Mapping):
        return accounts
    for alias, entry in raw.items():
        if not isinstance(entry, Mapping) or not entry.get("base_url"):
            logger.warning("Skipping tracker account %r without base_url", alias)
            continue
        token = entry.get("token")
        token_env = entry.get("token_env")
        if token_env:
            token = environ.get(str(token_env), token)
            if not token:
                logger.warning("Token variable %s for %r is not set", token_env, alias)
        accounts[str(alias)] = JiraAccount(
            alias=str(alias),
            base_url=str(entry["base_url"]),
            email=entry.get("email"),
            token=token or None,
            api_version=str(entry.get("api_version", "3")),
        )
    return accounts


def _resolve_path(value: Any, base_dir: Path) -> Path | None:
    if not value:
        return None
    path = Path(str(value)).expanduser()
    return path if path.is_absolute() else (base_dir / path)


def load_config(path: Path | None = None, environ: Mapping[str, str] | None = None) -> SyncConfig:
    env = os.environ if environ is None else environ
    raw: dict[str, Any] = {}
    base_dir = Path.cwd()
    if path is not None:
        base_dir = path.parent
        if path.exists():
            with path.open("r", encoding="utf-8") as fh:
                raw = cast(dict[str, Any], json.load(fh))
        else:
            logger.warning("Config file %s not found; using defaults", path)

    accounts = build_accounts(raw.get("accounts"), env)
    aliases = split_aliases(env.get("BOARD_SYNC_ALIASES"))
    if not aliases:
        configured = raw.get("aliases")
        aliases = [str(alias) for alias in configured] if isinstance(configured, list) else []
    if not aliases:
        aliases = list(accounts)

    placement = coerce_placement_map(raw.get("placement"))
    placement_file = _resolve_path(raw.get("placement_file"), base_dir)
    if placement_file is not None:
        placement = {**load_placement_map(placement_file), **placement}

    return SyncConfig(
        query=env.get("BOARD_SYNC_QUERY") or str(raw.get("query", "")),
        aliases=aliases,
        accounts=accounts,
        placement=placement,
        done_marker=str(raw.get("done_marker") or DONE_MARKER),
        notes_dir=_resolve_path(raw.get("notes_dir"), base_dir),
        note_template=load_template(_resolve_path(raw.get("note_template"), base_dir)),
        max_workers=resolve_max_workers(raw.get("max_workers"), env),
    )

#!/usr/bin/env python3
"""CLI entrypoint for syncing Jira issues into a kanban board note."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from kanban_board.board_sync import config, runner, store

logger = logging.getLogger("kanban_board.board_sync.cli")


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="[%(levelname)s] %(message)s",
    )


def resolve_document(path: str) -> Path:
    return Path(path).expanduser().resolve()


def resolve_config(path: str | None) -> Path | None:
    if not path:
        return None
    resolved = Path(path).expanduser().resolve()
    if not resolved.exists():
        raise SystemExit(f"Config file not found: {resolved}")
    return resolved


def load_settings(args: argparse.Namespace) -> config.SyncConfig:
    settings = config.load_config(resolve_config(args.config))
    if getattr(args, "query", None):
        settings.query = args.query
    aliases = config.split_aliases(getattr(args, "aliases", None))
    if aliases:
        settings.aliases = aliases
    return settings


def report(outcome: runner.SyncOutcome, *, show_diff: bool) -> None:
    logger.info("%s: %s", outcome.document, outcome.status)
    if show_diff and outcome.diff:
        print(outcome.diff, end="")


def command_sync(args: argparse.Namespace) -> int:
    outcome = runner.run_sync(resolve_document(args.document), load_settings(args))
    report(outcome, show_diff=args.verbose)
    return 1 if outcome.status == "error" else 0


def command_check(args: argparse.Namespace) -> int:
    outcome = runner.run_sync(resolve_document(args.document), load_settings(args), dry_run=True)
    report(outcome, show_diff=True)
    return 1 if outcome.status == "error" else 0


def command_tidy(args: argparse.Namespace) -> int:
    settings = config.load_config(resolve_config(args.config))
    outcome = runner.tidy_document(
        resolve_document(args.document),
        settings.done_marker,
        dry_run=args.dry_run,
    )
    report(outcome, show_diff=args.dry_run or args.verbose)
    return 0


def add_tracker_arguments(subparser: argparse.ArgumentParser) -> None:
    subparser.add_argument("document", help="Path to the kanban board markdown file")
    subparser.add_argument("--query", help="JQL query (overrides BOARD_SYNC_QUERY and config)")
    subparser.add_argument(
        "--aliases",
        help="Comma-separated account aliases (overrides BOARD_SYNC_ALIASES and config)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser_obj = argparse.ArgumentParser(description="Sync Jira issues into a kanban board")
    parser_obj.add_argument("--config", help="Path to the JSON sync configuration")
    parser_obj.add_argument("--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser_obj.add_subparsers(dest="command")

    sync_parser = subparsers.add_parser("sync", help="Reconcile the board with Jira")
    add_tracker_arguments(sync_parser)
    sync_parser.set_defaults(func=command_sync)

    check_parser = subparsers.add_parser("check", help="Dry-run sync and print the diff")
    add_tracker_arguments(check_parser)
    check_parser.set_defaults(func=command_check)

    tidy_parser = subparsers.add_parser("tidy", help="Normalize spacing and check off done items")
    tidy_parser.add_argument("document", help="Path to the kanban board markdown file")
    tidy_parser.add_argument("--dry-run", action="store_true", help="Print the diff only")
    tidy_parser.set_defaults(func=command_tidy)

    return parser_obj


def main(argv: list[str] | None = None) -> int:
    parser_obj = build_parser()
    args = parser_obj.parse_args(argv)
    if not getattr(args, "command", None):
        parser_obj.print_help()
        return 0
    configure_logging(args.verbose)
    try:
        return int(args.func(args))
    except store.DocumentNotFoundError as exc:
        logger.error("%s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())

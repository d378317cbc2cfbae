"""
``ran`` command-line interface.

    ran list [-n N] [--no-sync]
    ran search PATTERN [--regex] [--cwd DIR] [-n N] [--no-sync]
    ran stats
    ran sync
    ran onboard [--force]

``list`` and ``search`` index new transcript content before querying
unless ``--no-sync`` is given.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import replace
from pathlib import Path

from . import __version__
from .config import HistoryConfig
from .exceptions import ConfigError, PatternError, StoreIOError
from .formatting import format_command, format_stats
from .logging_utils import (
    PACKAGE_LOGGER,
    configure_console_logging,
    configure_structured_logging,
    get_history_logger,
)
from .onboarding import OnboardResult, onboard
from .service import CommandHistory

logger = get_history_logger("cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ran",
        description="Search shell commands run in previous Claude Code sessions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    ran list -n 50
    ran search docker
    ran search "docker (build|push)" --regex
    ran search "" --cwd /projects/myapp
        """,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--db", help="History database, or :memory: (default: ~/.ran/history.db)")
    parser.add_argument(
        "--projects-dir", type=Path, help="Transcript directory (default: ~/.claude/projects)"
    )
    parser.add_argument("--config", type=Path, help="YAML config file (default: ~/.ran/config.yaml)")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="More logging")
    parser.add_argument("--log-json", action="store_true", help="Log as single-line JSON")

    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser("list", help="Show recent commands")
    list_parser.add_argument("-n", "--limit", type=int, help="Number of commands to show")
    list_parser.add_argument("--no-sync", action="store_true", help="Skip indexing")

    search_parser = subparsers.add_parser("search", help="Search commands")
    search_parser.add_argument("pattern", help="Substring (or regex with --regex)")
    search_parser.add_argument("--regex", action="store_true", help="Treat pattern as a regex")
    search_parser.add_argument("--cwd", help="Only commands run in this directory")
    search_parser.add_argument("-n", "--limit", type=int, help="Maximum results to show")
    search_parser.add_argument("--no-sync", action="store_true", help="Skip indexing")

    subparsers.add_parser("stats", help="Show history statistics")
    subparsers.add_parser("sync", help="Index new transcript content")

    onboard_parser = subparsers.add_parser(
        "onboard", help="Add ran usage notes to ~/.claude/CLAUDE.md"
    )
    onboard_parser.add_argument("--force", action="store_true", help="Replace existing section")

    return parser


def _configure_logging(args: argparse.Namespace) -> None:
    level = {0: logging.WARNING, 1: logging.INFO}.get(args.verbose, logging.DEBUG)
    if args.log_json:
        configure_structured_logging(level, PACKAGE_LOGGER)
    else:
        configure_console_logging(level, PACKAGE_LOGGER)


def _load_config(args: argparse.Namespace) -> HistoryConfig:
    config = HistoryConfig.load(args.config)
    overrides = {}
    if args.db is not None:
        overrides["db_path"] = args.db
    if args.projects_dir is not None:
        overrides["projects_dir"] = args.projects_dir
    return replace(config, **overrides)


async def _sync(history: CommandHistory) -> None:
    report = await history.index_and_sync()
    for error in report.errors:
        print(f"Warning: {error.message}", file=sys.stderr)


async def cmd_list(args: argparse.Namespace, config: HistoryConfig) -> int:
    async with await CommandHistory.open(config) as history:
        if not args.no_sync:
            await _sync(history)

        limit = args.limit if args.limit is not None else config.default_limit
        results = await history.list(limit)

    if not results:
        print("No commands in history.")
        return 0

    print(f"Last {len(results)} command(s):\n")
    for command in results:
        print(format_command(command))
    return 0


async def cmd_search(args: argparse.Namespace, config: HistoryConfig) -> int:
    async with await CommandHistory.open(config) as history:
        if not args.no_sync:
            await _sync(history)

        result = await history.search(
            args.pattern, use_regex=args.regex, cwd=args.cwd, limit=args.limit
        )

    if not result.commands:
        print(f"No commands found matching: {args.pattern}")
        return 0

    showing = f" (showing {len(result.commands)})" if result.truncated else ""
    print(f"Found {result.total} command(s){showing}:\n")
    for command in result.commands:
        print(format_command(command))
    return 0


async def cmd_stats(args: argparse.Namespace, config: HistoryConfig) -> int:
    async with await CommandHistory.open(config) as history:
        stats = await history.stats()
    print(format_stats(stats, str(config.db_path)), end="")
    return 0


async def cmd_sync(args: argparse.Namespace, config: HistoryConfig) -> int:
    async with await CommandHistory.open(config) as history:
        report = await history.index_and_sync()

    print(
        f"Scanned {report.files_scanned} of {report.files_seen} transcript(s), "
        f"{report.records_inserted} new command(s)"
    )
    for error in report.errors:
        print(f"Warning: {error.message}", file=sys.stderr)
    return 0 if report.ok else 1


async def cmd_onboard(args: argparse.Namespace, config: HistoryConfig) -> int:
    target = config.onboard_target
    result = await onboard(target, force=args.force)
    if result is OnboardResult.SKIPPED:
        print(f"ran section already exists in {target}")
        print("Use --force to update it")
    else:
        print(f"{result.value.capitalize()} {target} with ran section")
    return 0


COMMANDS = {
    "list": cmd_list,
    "search": cmd_search,
    "stats": cmd_stats,
    "sync": cmd_sync,
    "onboard": cmd_onboard,
}


async def run(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    _configure_logging(args)

    try:
        config = _load_config(args)
        return await COMMANDS[args.command](args, config)
    except PatternError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    except (StoreIOError, ConfigError) as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e.message}", file=sys.stderr)
        return 1


def main() -> None:
    """CLI entry point."""
    try:
        sys.exit(asyncio.run(run()))
    except KeyboardInterrupt:
        print("\nCancelled.")
        sys.exit(130)


if __name__ == "__main__":
    main()

"""Sieve CLI entry points.
This module exposes commands for capture, import, inspection and purification.
It maps argparse commands onto SDK calls.
"""

from __future__ import annotations

import argparse
from dataclasses import replace
from pathlib import Path
import sys
from typing import Any, Sequence

from core.config import SieveConfig
from core.errors import SieveError
from store.sieve_store import SieveStore

_AUTO_STRATEGY = "auto"
_FORCEABLE_STRATEGIES = ("lightweight", "sectioned", "progressive")


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="sieve", description="Sieve snippet store CLI")
    parser.add_argument("--data-root", help="Override SIEVE_DATA_ROOT for this command")
    parser.add_argument("--settings", help="Override SIEVE_SETTINGS_FILE for this command")
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_append_command(subparsers)
    _add_import_command(subparsers)
    _add_entries_command(subparsers)
    _add_purify_command(subparsers)
    _add_stats_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the Sieve CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        with _build_store(args.data_root, args.settings) as store:
            return _dispatch(parser, store, args)
    except SieveError as error:
        print(f"error: {error}", file=sys.stderr)
        return 1


def _dispatch(parser: argparse.ArgumentParser, store: SieveStore, args: argparse.Namespace) -> int:
    if args.command == "append":
        return _run_append_command(store, args)
    if args.command == "import":
        return _run_import_command(store, args)
    if args.command == "entries":
        return _run_entries_command(store, args)
    if args.command == "purify":
        return _run_purify_command(store, args)
    if args.command == "stats":
        return _run_stats_command(store)
    parser.error(f"Unsupported command: {args.command}")
    return 2


def _build_store(data_root: str | None, settings_file: str | None) -> SieveStore:
    """Build the SDK store with optional data-root and settings overrides.

    Args:
        data_root: Optional override path.
        settings_file: Optional YAML settings path.

    Returns:
        Configured store.
    """
    config = SieveConfig.from_env()
    if data_root:
        config = replace(config, data_root=Path(data_root).expanduser().resolve())
    if settings_file:
        config = config.with_settings_file(settings_file)
    return SieveStore(config)


def _run_append_command(store: SieveStore, args: argparse.Namespace) -> int:
    """Handle append command.

    Args:
        store: SDK store.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    if args.raw:
        buffered = 1 if store.append(args.source, args.text) else 0
    else:
        buffered = store.capture(args.source, args.text)
    written = store.flush()
    print(f"buffered={buffered}")
    print(f"written={written}")
    return 0


def _run_import_command(store: SieveStore, args: argparse.Namespace) -> int:
    """Handle import command."""
    written = store.import_texts(args.path)
    print(f"written={written}")
    return 0


def _run_entries_command(store: SieveStore, args: argparse.Namespace) -> int:
    """Handle entries command.

    Args:
        store: SDK store.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    entries = [
        entry for entry in store.load() if args.source is None or entry.source == args.source
    ]
    if args.limit is not None:
        entries = entries[-args.limit :] if args.limit > 0 else []
    for entry in entries:
        print(f"{entry.captured_at.isoformat()}\t{entry.source}\t{entry.content}")
    return 0


def _run_purify_command(store: SieveStore, args: argparse.Namespace) -> int:
    """Handle purify command.

    Args:
        store: SDK store.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    strategy = None if args.strategy == _AUTO_STRATEGY else args.strategy
    report = store.purify(strategy)
    print(f"strategy={report.strategy}")
    print(f"entries_before={report.entries_before}")
    print(f"entries_after={report.entries_after}")
    print(f"removed={report.removed_count}")
    print(f"rewritten={str(report.rewritten).lower()}")
    if report.skip_reason:
        print(f"skip_reason={report.skip_reason}")
    return 0


def _run_stats_command(store: SieveStore) -> int:
    """Handle stats command."""
    statistics = store.statistics()
    print(f"total_entries={statistics.total_entries}")
    print(f"total_characters={statistics.total_characters}")
    print(f"duplicates={statistics.duplicate_count}")
    for source, count in statistics.entries_by_source:
        print(f"source\t{source}\t{count}")
    for script, count in statistics.characters_by_script.items():
        print(f"script\t{script}\t{count}")
    return 0


def _add_append_command(subparsers: Any) -> None:
    """Register append subcommand."""
    parser = subparsers.add_parser("append", help="Capture text into the log")
    parser.add_argument("text", help="Captured text; split into fragments unless --raw")
    parser.add_argument("--source", required=True, help="Capturing application or origin")
    parser.add_argument(
        "--raw",
        action="store_true",
        help="Store the text as a single entry without fragment splitting",
    )


def _add_import_command(subparsers: Any) -> None:
    """Register import subcommand."""
    parser = subparsers.add_parser("import", help="Import local .txt/.md files")
    parser.add_argument("path", help="Text file or directory")


def _add_entries_command(subparsers: Any) -> None:
    """Register entries subcommand."""
    parser = subparsers.add_parser("entries", help="List stored entries")
    parser.add_argument("--source", help="Only list entries from this source")
    parser.add_argument("--limit", type=int, help="Only list the most recent N entries")


def _add_purify_command(subparsers: Any) -> None:
    """Register purify subcommand."""
    parser = subparsers.add_parser("purify", help="Remove duplicate entries from the log")
    parser.add_argument(
        "--strategy",
        default=_AUTO_STRATEGY,
        choices=(_AUTO_STRATEGY,) + _FORCEABLE_STRATEGIES,
        help="Force a strategy; auto picks one from corpus size and memory",
    )


def _add_stats_command(subparsers: Any) -> None:
    """Register stats subcommand."""
    subparsers.add_parser("stats", help="Show corpus statistics")

"""Append-only JSONL log access.

Appends add whole lines and never touch existing records. Loads are
tolerant: a malformed line is skipped, counted, logged, and preserved
verbatim in a diagnostics side file for manual inspection.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Sequence

from core.errors import SieveStoreError
from core.logging_config import get_logger
from core.retry import retry_idempotent
from core.types import LoadResult, TextEntry
from store.entry_payload import entry_from_line, entry_to_line

_LOGGER = get_logger(__name__)


def append_entries(log_path: Path, entries: Sequence[TextEntry]) -> int:
    """Append entries to the end of the log.

    Args:
        log_path: JSONL log path, created when missing.
        entries: Entries to append in order.

    Returns:
        Number of lines appended.

    Raises:
        SieveStoreError: If the log cannot be written.
    """
    if not entries:
        return 0
    payload = "".join(entry_to_line(entry) + "\n" for entry in entries)
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        needs_separator = _missing_trailing_newline(log_path)
        with log_path.open("a", encoding="utf-8") as handle:
            if needs_separator:
                handle.write("\n")
            handle.write(payload)
            handle.flush()
            os.fsync(handle.fileno())
    except OSError as error:
        raise SieveStoreError(
            f"Failed to append {len(entries)} entries to {log_path}: {error}. "
            "Check free disk space and permissions on the data root."
        ) from error
    return len(entries)


def load_entries(log_path: Path, diagnostics_path: Path | None = None) -> LoadResult:
    """Read every well-formed entry from the log.

    Args:
        log_path: JSONL log path. A missing file yields no entries.
        diagnostics_path: Side file receiving raw malformed lines.

    Returns:
        Parsed entries in file order and the malformed line count.

    Raises:
        SieveStoreError: If the log exists but cannot be read.
    """
    try:
        raw = retry_idempotent(log_path.read_bytes, "read_log")
    except FileNotFoundError:
        return LoadResult(entries=())
    except OSError as error:
        raise SieveStoreError(
            f"Failed to read log at {log_path}: {error}. "
            "Check permissions on the data root and retry."
        ) from error
    entries: list[TextEntry] = []
    malformed: list[str] = []
    for line_number, raw_line in enumerate(raw.split(b"\n"), 1):
        if not raw_line.strip():
            continue
        try:
            entries.append(entry_from_line(raw_line.decode("utf-8")))
        except ValueError as error:
            _LOGGER.warning(
                "log_line_unreadable",
                log_path=str(log_path),
                line_number=line_number,
                error=str(error),
            )
            malformed.append(raw_line.decode("utf-8", errors="replace"))
    if malformed and diagnostics_path is not None:
        _write_diagnostics(diagnostics_path, malformed)
    return LoadResult(entries=tuple(entries), malformed_count=len(malformed))


def _missing_trailing_newline(log_path: Path) -> bool:
    if not log_path.exists() or log_path.stat().st_size == 0:
        return False
    with log_path.open("rb") as handle:
        handle.seek(-1, os.SEEK_END)
        return handle.read(1) != b"\n"


def _write_diagnostics(diagnostics_path: Path, lines: list[str]) -> None:
    """Overwrite the diagnostics file with the latest malformed lines."""
    try:
        diagnostics_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    except OSError as error:
        _LOGGER.error(
            "diagnostics_write_failed",
            diagnostics_path=str(diagnostics_path),
            error=str(error),
        )
        return
    _LOGGER.info(
        "diagnostics_written",
        diagnostics_path=str(diagnostics_path),
        malformed_count=len(lines),
    )

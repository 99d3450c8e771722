"""Crash-safe log rewrite protocol.

The log is copied to a timestamped backup, the retained entries are
written and fsynced to a temp file, and only then is the temp file
atomically swapped over the log. At no point is the log removed before
its replacement is durable on disk.
"""

from __future__ import annotations

import os
from pathlib import Path
import shutil
import time
from typing import Callable, Sequence

from core.constants import BACKUP_FILE_PREFIX, BACKUP_FILE_SUFFIX, REWRITE_TEMP_FILE_NAME
from core.errors import SieveStoreError
from core.logging_config import get_logger
from core.retry import retry_idempotent
from core.types import RewriteResult, TextEntry
from store.entry_payload import entry_to_line

_LOGGER = get_logger(__name__)


def rewrite_log(
    log_path: Path,
    entries: Sequence[TextEntry],
    clock: Callable[[], float] = time.time,
) -> RewriteResult:
    """Replace the log contents with the given entries.

    Args:
        log_path: JSONL log to replace.
        entries: Retained entries in order.
        clock: Epoch clock used for backup names and completion time.

    Returns:
        Rewrite result. ``replaced`` is False when nothing was written,
        in which case the log is left untouched.

    Raises:
        SieveStoreError: If the backup, temp write, or swap fails. The log
            is restored from backup when possible and the backup is kept.
    """
    data_dir = log_path.parent
    backup_path = data_dir / f"{BACKUP_FILE_PREFIX}{int(clock())}{BACKUP_FILE_SUFFIX}"
    temp_path = data_dir / REWRITE_TEMP_FILE_NAME
    try:
        shutil.copy2(log_path, backup_path)
    except OSError as error:
        raise SieveStoreError(
            f"Failed to back up {log_path} to {backup_path}: {error}. "
            "The log was not modified; check free disk space and retry."
        ) from error
    try:
        records_written = _write_temp_file(temp_path, entries)
        if records_written == 0:
            _remove_if_present(temp_path)
            _remove_if_present(backup_path)
            _LOGGER.info("rewrite_skipped_empty", log_path=str(log_path))
            return RewriteResult(records_written=0, replaced=False)
        os.replace(temp_path, log_path)
    except OSError as error:
        _remove_if_present(temp_path)
        restored = _restore_from_backup(backup_path, log_path)
        raise SieveStoreError(
            f"Failed to rewrite {log_path}: {error}. "
            f"Log restored from backup: {restored}. Backup kept at {backup_path}."
        ) from error
    _remove_if_present(backup_path)
    completed_at = clock()
    _LOGGER.info(
        "rewrite_completed",
        log_path=str(log_path),
        records_written=records_written,
    )
    return RewriteResult(records_written=records_written, replaced=True, completed_at=completed_at)


def _write_temp_file(temp_path: Path, entries: Sequence[TextEntry]) -> int:
    records_written = 0
    with temp_path.open("w", encoding="utf-8") as handle:
        for entry in entries:
            handle.write(entry_to_line(entry) + "\n")
            records_written += 1
        handle.flush()
        os.fsync(handle.fileno())
    return records_written


def _restore_from_backup(backup_path: Path, log_path: Path) -> bool:
    """Copy the backup over the log; return whether it succeeded."""
    try:
        shutil.copy2(backup_path, log_path)
    except OSError as error:
        _LOGGER.error(
            "rewrite_restore_failed",
            backup_path=str(backup_path),
            log_path=str(log_path),
            error=str(error),
        )
        return False
    return True


def _remove_if_present(file_path: Path) -> None:
    try:
        retry_idempotent(lambda: file_path.unlink(missing_ok=True), "remove_file")
    except OSError as error:
        _LOGGER.warning("file_remove_failed", file_path=str(file_path), error=str(error))

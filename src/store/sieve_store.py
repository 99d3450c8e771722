"""Python SDK for the snippet store.

This module exposes the high-level API used by capture integrations:
appending, loading, statistics, imports, and scheduled purification.
"""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path
import threading
from typing import Iterable

from core.config import SieveConfig
from core.errors import SievePurifyError, SieveStoreError
from core.logging_config import get_logger
from core.types import PurifyReport, PurifyStrategyName, TextEntry
from ingest.append_buffer import AppendBuffer
from ingest.text_import import read_import_entries
from ingest.text_normalization import build_capture_entries
from purify.checkpoint_store import PurifyCheckpointStore
from purify.scheduler import PurifyScheduler
from store.append_log import append_entries, load_entries
from store.corpus_statistics import CorpusStatistics, summarize_entries
from store.file_access import SerialFileAccess

_LOGGER = get_logger(__name__)


class SieveStore:
    """Primary SDK entry point for capture and purification."""

    def __init__(
        self,
        config: SieveConfig | None = None,
        scheduler: PurifyScheduler | None = None,
    ) -> None:
        """Create a store bound to one data root.

        Args:
            config: Optional runtime configuration.
            scheduler: Optional purification scheduler, mainly for tests.
        """
        self._config = config or SieveConfig.from_env()
        self._config.data_root.mkdir(parents=True, exist_ok=True)
        self._file_access = SerialFileAccess()
        self._purify_executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="sieve-purify")
        self._buffer = AppendBuffer(self._config.ingest)
        self._lock = threading.Lock()
        self._last_purify_at: float | None = None
        self._purify_in_flight = False
        self._scheduler = scheduler or PurifyScheduler(
            self._config,
            self._file_access,
            PurifyCheckpointStore(self._config.checkpoint_path),
        )

    @property
    def config(self) -> SieveConfig:
        return self._config

    @property
    def last_purify_at(self) -> float | None:
        """Epoch seconds of the last completed purification run."""
        with self._lock:
            return self._last_purify_at

    def append(self, source: str, content: str, captured_at: datetime | None = None) -> bool:
        """Buffer one entry, flushing in the background when due.

        Args:
            source: Capturing application or origin.
            content: Captured text.
            captured_at: Capture time, defaults to now in UTC.

        Returns:
            False when the entry repeats the previous content of its source.
        """
        entry = TextEntry(
            source=source,
            content=content,
            captured_at=captured_at or datetime.now(timezone.utc),
        )
        return self.append_entries([entry]) == 1

    def append_entries(self, entries: Iterable[TextEntry]) -> int:
        """Buffer entries, flushing in the background when due.

        Returns:
            Number of entries buffered after consecutive-repeat suppression.
        """
        added = self._buffer.add(entries)
        if self._buffer.flush_due():
            self._file_access.submit(self._flush_in_background)
        return added

    def capture(self, source: str, text: str, captured_at: datetime | None = None) -> int:
        """Split a raw captured text block into fragments and buffer them.

        Returns:
            Number of fragments buffered.
        """
        entries = build_capture_entries(
            source,
            text,
            self._config.retention,
            self._config.ingest,
            captured_at,
        )
        return self.append_entries(entries)

    def flush(self) -> int:
        """Write all buffered entries to the log and wait for completion.

        Returns:
            Number of entries written.

        Raises:
            SieveStoreError: If the log cannot be written. Entries stay buffered.
        """
        return self._file_access.run(self._flush_pending)

    def load(self) -> tuple[TextEntry, ...]:
        """Read all entries currently in the log.

        Returns:
            Entries in log order.

        Raises:
            SieveStoreError: If the log cannot be read.
        """
        config = self._config
        result = self._file_access.run(lambda: load_entries(config.log_path, config.diagnostics_path))
        if result.malformed_count:
            _LOGGER.warning("log_malformed_lines", malformed_count=result.malformed_count)
        return result.entries

    def statistics(self) -> CorpusStatistics:
        """Summarize flushed entries by source and script."""
        return summarize_entries(self.load(), self._config.retention.deny_sources)

    def import_texts(self, source_path: str | Path) -> int:
        """Append fragments of local text files straight to the log.

        Args:
            source_path: File or directory of ``.txt``/``.md`` files.

        Returns:
            Number of entries written.

        Raises:
            SieveIngestError: If no importable text is found.
            SieveStoreError: If the log cannot be written.
        """
        entries = read_import_entries(Path(source_path), self._config.ingest)
        accepted = [entry for entry in entries if self._config.retention.accepts(entry)]
        written = self._file_access.run(lambda: append_entries(self._config.log_path, accepted))
        _LOGGER.info("import_completed", source_path=str(source_path), entries_written=written)
        return written

    def purify(self, strategy: PurifyStrategyName | None = None) -> PurifyReport:
        """Flush pending entries and run purification now.

        Args:
            strategy: Forced strategy; None applies the tier table and its
                rate limits.

        Returns:
            Purification report.

        Raises:
            SievePurifyError: If a purification is already running.
            SieveStoreError: If the log cannot be read or rewritten.
        """
        if not self._begin_purify():
            raise SievePurifyError(
                "Purification is already running. Wait for it to finish and retry."
            )
        return self._run_purify(strategy)

    def schedule_purify(self) -> Future[PurifyReport] | None:
        """Queue a scheduled purification on the background worker.

        Returns:
            Future for the report, or None when a run is already in flight.
        """
        if not self._begin_purify():
            return None
        return self._purify_executor.submit(self._run_purify, None)

    def close(self) -> None:
        """Flush pending entries and stop background workers."""
        try:
            self.flush()
        except SieveStoreError as error:
            _LOGGER.error("close_flush_failed", pending=self._buffer.pending_count, error=str(error))
        self._purify_executor.shutdown(wait=True)
        self._file_access.close()

    def __enter__(self) -> "SieveStore":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _begin_purify(self) -> bool:
        with self._lock:
            if self._purify_in_flight:
                return False
            self._purify_in_flight = True
            return True

    def _run_purify(self, strategy: PurifyStrategyName | None) -> PurifyReport:
        try:
            self.flush()
            report = self._scheduler.run(self.last_purify_at, strategy)
        finally:
            with self._lock:
                self._purify_in_flight = False
        if report.completed_at is not None:
            with self._lock:
                self._last_purify_at = report.completed_at
        _LOGGER.info(
            "purify_completed",
            strategy=report.strategy,
            entries_before=report.entries_before,
            entries_after=report.entries_after,
            removed_count=report.removed_count,
            rewritten=report.rewritten,
        )
        return report

    def _flush_pending(self) -> int:
        """Write drained buffer entries; runs inside the serial file context."""
        drained = self._buffer.begin_flush()
        if drained is None:
            return 0
        accepted = [entry for entry in drained if self._config.retention.accepts(entry)]
        try:
            written = append_entries(self._config.log_path, accepted)
        except SieveStoreError:
            self._buffer.complete_flush(drained, succeeded=False)
            raise
        self._buffer.complete_flush(drained, succeeded=True)
        _LOGGER.debug("buffer_flushed", drained=len(drained), written=written)
        return written

    def _flush_in_background(self) -> None:
        try:
            self._flush_pending()
        except SieveStoreError as error:
            _LOGGER.error(
                "background_flush_failed",
                pending=self._buffer.pending_count,
                error=str(error),
            )

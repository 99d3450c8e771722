"""In-memory ingestion buffer.

Entries wait here until the buffer is large enough or old enough to be
flushed. Only one flush may be in flight; entries added meanwhile stay
buffered for the next cycle, and a failed flush puts its entries back
at the front so nothing captured is lost.
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Iterable

from core.types import IngestOptions, TextEntry


class AppendBuffer:
    """Thread-safe buffer with single-flight flush bookkeeping."""

    def __init__(
        self,
        options: IngestOptions,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._options = options
        self._clock = clock
        self._lock = threading.Lock()
        self._pending: list[TextEntry] = []
        self._last_content_by_source: dict[str, str] = {}
        self._last_flush_at = clock()
        self._flush_in_flight = False

    def add(self, entries: Iterable[TextEntry]) -> int:
        """Buffer entries, dropping consecutive repeats within a source.

        Args:
            entries: Entries in capture order.

        Returns:
            Number of entries actually buffered.
        """
        added = 0
        with self._lock:
            for entry in entries:
                if self._last_content_by_source.get(entry.source) == entry.content:
                    continue
                self._pending.append(entry)
                self._last_content_by_source[entry.source] = entry.content
                added += 1
        return added

    def flush_due(self) -> bool:
        """Return whether the size or age trigger has fired."""
        with self._lock:
            if not self._pending or self._flush_in_flight:
                return False
            if len(self._pending) >= self._options.flush_threshold:
                return True
            return self._clock() - self._last_flush_at > self._options.flush_interval_seconds

    def begin_flush(self) -> list[TextEntry] | None:
        """Take all pending entries for a flush.

        Returns:
            Drained entries, or None when a flush is already running or
            nothing is pending.
        """
        with self._lock:
            if self._flush_in_flight or not self._pending:
                return None
            drained = self._pending
            self._pending = []
            self._flush_in_flight = True
            return drained

    def complete_flush(self, drained: list[TextEntry], succeeded: bool) -> None:
        """Finish a flush started by ``begin_flush``.

        Args:
            drained: Entries returned by ``begin_flush``.
            succeeded: Whether the entries reached the log.
        """
        with self._lock:
            if succeeded:
                self._last_flush_at = self._clock()
            else:
                self._pending = drained + self._pending
            self._flush_in_flight = False

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    @property
    def flush_in_flight(self) -> bool:
        with self._lock:
            return self._flush_in_flight

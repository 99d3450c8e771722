"""Serial file-access context.

Every mutation of the log (flush, load, rewrite) runs on one dedicated
worker thread so no two of them ever interleave. Work submitted from
that thread itself runs inline instead of deadlocking on the queue.
"""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
import threading
from typing import Callable, TypeVar

T = TypeVar("T")


class SerialFileAccess:
    """Single-worker executor owning all log file operations."""

    def __init__(self, thread_name_prefix: str = "sieve-file-access") -> None:
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=thread_name_prefix)
        self._worker_ident: int | None = None

    def run(self, operation: Callable[[], T]) -> T:
        """Run an operation in the serial context and wait for its result.

        Raises:
            Exception: Whatever the operation raised.
        """
        if threading.get_ident() == self._worker_ident:
            return operation()
        return self._executor.submit(self._call, operation).result()

    def submit(self, operation: Callable[[], T]) -> Future[T]:
        """Queue an operation without waiting for it."""
        return self._executor.submit(self._call, operation)

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def _call(self, operation: Callable[[], T]) -> T:
        self._worker_ident = threading.get_ident()
        return operation()

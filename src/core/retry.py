"""Bounded retries for idempotent filesystem operations.

Reads and removals can be repeated safely, so transient ``OSError``
failures from contention are retried a few times with a short backoff.
Non-idempotent writes never go through this helper.
"""

from __future__ import annotations

import time
from typing import Callable, TypeVar

from core.constants import IO_RETRY_ATTEMPTS, IO_RETRY_BACKOFF_SECONDS
from core.logging_config import get_logger

_LOGGER = get_logger(__name__)

T = TypeVar("T")


def retry_idempotent(
    operation: Callable[[], T],
    description: str,
    attempts: int = IO_RETRY_ATTEMPTS,
    backoff_seconds: float = IO_RETRY_BACKOFF_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run an idempotent filesystem operation with bounded retries.

    Args:
        operation: Zero-argument callable performing the operation.
        description: Short label used in log events.
        attempts: Total attempts before giving up.
        backoff_seconds: Base delay, multiplied by the attempt number.
        sleep: Sleep function, injectable for tests.

    Returns:
        The operation result.

    Raises:
        OSError: The last failure once all attempts are exhausted.
    """
    attempt = 1
    while True:
        try:
            return operation()
        except FileNotFoundError:
            raise
        except OSError as error:
            if attempt >= attempts:
                raise
            _LOGGER.warning(
                "io_retry",
                operation=description,
                attempt=attempt,
                error=str(error),
            )
        sleep(backoff_seconds * attempt)
        attempt += 1

"""Exact entry deduplication transform.

This module removes entries whose ``(source, content)`` pair was
already seen. The seen set can be shared across calls so windows of a
large log are deduplicated against each other.
"""

from __future__ import annotations

from dataclasses import dataclass
import time
from typing import Callable, Iterable

from core.constants import LIGHTWEIGHT_DEADLINE_CHECK_INTERVAL
from core.types import TextEntry


@dataclass(frozen=True)
class ExactDedupResult:
    """Output of an exact deduplication pass.

    Attributes:
        unique: Entries kept, in input order.
        duplicate_count: Entries dropped as repeats.
        deadline_reached: Whether processing stopped at the deadline.
    """

    unique: list[TextEntry]
    duplicate_count: int
    deadline_reached: bool = False


def remove_exact_duplicates(
    entries: Iterable[TextEntry],
    seen_keys: set[tuple[str, str]] | None = None,
    deadline: float | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> ExactDedupResult:
    """Remove entries whose source and content were already seen.

    Args:
        entries: Entries to evaluate in order.
        seen_keys: Optional shared seen set, updated in place.
        deadline: Optional ``clock()`` value after which processing stops.
            Entries not reached by then are passed through unchanged.
        clock: Monotonic clock used for the deadline.

    Returns:
        Ordered unique entries and the duplicate count.
    """
    seen = seen_keys if seen_keys is not None else set()
    unique_entries: list[TextEntry] = []
    duplicate_count = 0
    entry_list = list(entries)
    for index, entry in enumerate(entry_list):
        if (
            deadline is not None
            and index % LIGHTWEIGHT_DEADLINE_CHECK_INTERVAL == 0
            and clock() > deadline
        ):
            unique_entries.extend(entry_list[index:])
            return ExactDedupResult(unique_entries, duplicate_count, deadline_reached=True)
        if entry.key in seen:
            duplicate_count += 1
            continue
        seen.add(entry.key)
        unique_entries.append(entry)
    return ExactDedupResult(unique_entries, duplicate_count)

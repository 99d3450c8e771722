"""Window sizing for sectioned purification.

Larger corpora are cut into smaller windows so that one window's
signatures and candidate lists stay small; hosts with plenty of memory
get larger windows on very large corpora.
"""

from __future__ import annotations

from typing import Sequence, TypeVar

from core.constants import LARGE_MEMORY_THRESHOLD_MB
from core.types import PurifyOptions

T = TypeVar("T")


def calculate_section_size(entry_count: int, total_memory_mb: int, options: PurifyOptions) -> int:
    """Choose a window size from corpus size and physical memory.

    Args:
        entry_count: Entries to purify.
        total_memory_mb: Physical memory of the host.
        options: Section size bounds.

    Returns:
        Window size clamped to ``[min_section_size, max_section_size]``.
    """
    if entry_count <= 1000:
        size = 500
    elif entry_count <= 5000:
        size = 300
    elif entry_count <= 20000:
        size = 200
    else:
        size = 200 if total_memory_mb > LARGE_MEMORY_THRESHOLD_MB else 100
    return max(options.min_section_size, min(size, options.max_section_size))


def divide_into_sections(items: Sequence[T], section_size: int) -> list[list[T]]:
    """Split items into contiguous windows of at most ``section_size``."""
    if section_size <= 0:
        raise ValueError(f"section_size must be positive, got {section_size}.")
    return [list(items[start : start + section_size]) for start in range(0, len(items), section_size)]

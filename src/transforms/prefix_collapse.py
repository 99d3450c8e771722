"""Prefix-collapse pass for incrementally captured text.

Capturing text while it is being typed produces a trail of growing
snapshots ("おは", "おはよ", "おはよう"). Within each source this pass
keeps the longest snapshot and drops shorter ones that are a prefix of
it, or that differ from it only in their final character.
"""

from __future__ import annotations

from typing import Sequence

from core.constants import (
    DEFAULT_PREFIX_COLLAPSE_RATIO,
    PARTIAL_INPUT_MIN_MATCH_CHARS,
    PARTIAL_INPUT_MIN_MATCH_RATIO,
)
from core.types import TextEntry


def collapse_prefixes(
    entries: Sequence[TextEntry],
    ratio: float = DEFAULT_PREFIX_COLLAPSE_RATIO,
) -> tuple[list[TextEntry], int]:
    """Drop shorter snapshots of growing text within each source.

    Args:
        entries: Entries in log order.
        ratio: Minimum shorter/longer length ratio for a collapse.

    Returns:
        Surviving entries in their original order and the number removed.
    """
    positions_by_source: dict[str, list[int]] = {}
    for position, entry in enumerate(entries):
        positions_by_source.setdefault(entry.source, []).append(position)
    kept_positions: set[int] = set()
    removed = 0
    for positions in positions_by_source.values():
        ordered = sorted(positions, key=lambda position: -len(entries[position].content))
        retained_by_initial: dict[str, list[str]] = {}
        for position in ordered:
            content = entries[position].content
            if not content:
                removed += 1
                continue
            neighbours = retained_by_initial.setdefault(content[0], [])
            if any(_is_collapsible(content, existing, ratio) for existing in neighbours):
                removed += 1
                continue
            neighbours.append(content)
            kept_positions.add(position)
    survivors = [entry for position, entry in enumerate(entries) if position in kept_positions]
    return survivors, removed


def is_partial_input(shorter: str, longer: str) -> bool:
    """Return whether ``shorter`` looks like ``longer`` caught mid-keystroke.

    The two must share a leading run covering all but at most the last
    character of ``shorter``, at least two characters, and at least 60%
    of ``shorter``.
    """
    if len(shorter) < PARTIAL_INPUT_MIN_MATCH_CHARS or len(longer) <= len(shorter):
        return False
    matching = _common_prefix_length(shorter, longer)
    if matching < len(shorter) - 1 or matching < PARTIAL_INPUT_MIN_MATCH_CHARS:
        return False
    return matching / len(shorter) >= PARTIAL_INPUT_MIN_MATCH_RATIO


def _is_collapsible(candidate: str, existing: str, ratio: float) -> bool:
    if existing.startswith(candidate) or is_partial_input(candidate, existing):
        return len(candidate) / len(existing) >= ratio
    return False


def _common_prefix_length(left: str, right: str) -> int:
    matching = 0
    for left_char, right_char in zip(left, right):
        if left_char != right_char:
            break
        matching += 1
    return matching

"""Corpus statistics over stored entries.

This module summarizes the log by source and by character script.
Exact duplicates are counted once and reported separately.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable

from core.types import TextEntry

SCRIPT_NAMES = ("japanese", "english", "number", "other")


@dataclass(frozen=True)
class CorpusStatistics:
    """Aggregate counts for one corpus.

    Attributes:
        total_entries: Unique entries from non-denied sources.
        total_characters: Sum of their content lengths.
        entries_by_source: Entry count per source, largest first.
        characters_by_source: Character count per source, largest first.
        characters_by_script: Character count per script name.
        duplicate_count: Entries skipped as exact repeats.
    """

    total_entries: int
    total_characters: int
    entries_by_source: tuple[tuple[str, int], ...] = ()
    characters_by_source: tuple[tuple[str, int], ...] = ()
    characters_by_script: dict[str, int] = field(default_factory=dict)
    duplicate_count: int = 0


def summarize_entries(
    entries: Iterable[TextEntry],
    deny_sources: frozenset[str] = frozenset(),
) -> CorpusStatistics:
    """Summarize entries by source and character script.

    Args:
        entries: Entries in log order.
        deny_sources: Sources excluded from the counts.

    Returns:
        Corpus statistics.
    """
    seen_keys: set[tuple[str, str]] = set()
    duplicate_count = 0
    entry_counts: Counter[str] = Counter()
    character_counts: Counter[str] = Counter()
    script_counts: Counter[str] = Counter({name: 0 for name in SCRIPT_NAMES})
    for entry in entries:
        if entry.key in seen_keys:
            duplicate_count += 1
            continue
        seen_keys.add(entry.key)
        if entry.source in deny_sources:
            continue
        entry_counts[entry.source] += 1
        character_counts[entry.source] += len(entry.content)
        for character in entry.content:
            script_counts[classify_character(character)] += 1
    return CorpusStatistics(
        total_entries=sum(entry_counts.values()),
        total_characters=sum(character_counts.values()),
        entries_by_source=tuple(entry_counts.most_common()),
        characters_by_source=tuple(character_counts.most_common()),
        characters_by_script={name: script_counts[name] for name in SCRIPT_NAMES},
        duplicate_count=duplicate_count,
    )


def classify_character(character: str) -> str:
    """Return the script bucket of one character."""
    if (
        "\u3041" <= character <= "\u3096"
        or "\u30a1" <= character <= "\u30fa"
        or "\u4e00" <= character <= "\u9faf"
    ):
        return "japanese"
    if "a" <= character <= "z" or "A" <= character <= "Z":
        return "english"
    if "0" <= character <= "9":
        return "number"
    return "other"

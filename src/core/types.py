"""Shared typed models.

This module defines immutable data models used by ingest, store,
transforms, and purification layers to keep interfaces explicit.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

from core.constants import (
    DEFAULT_CHECKPOINT_INTERVAL_SECTIONS,
    DEFAULT_FLUSH_INTERVAL_SECONDS,
    DEFAULT_FLUSH_THRESHOLD,
    DEFAULT_HASH_FUNCTION_COUNT,
    DEFAULT_HASH_SEED,
    DEFAULT_LIGHTWEIGHT_BUDGET_SECONDS,
    DEFAULT_LIGHTWEIGHT_MAX_ENTRIES,
    DEFAULT_LIGHTWEIGHT_MIN_INTERVAL_SECONDS,
    DEFAULT_LOW_MEMORY_THRESHOLD_MB,
    DEFAULT_LSH_ROWS_PER_BAND,
    DEFAULT_MAX_CONTENT_LENGTH,
    DEFAULT_MAX_SECTION_SIZE,
    DEFAULT_MIN_CONTENT_LENGTH,
    DEFAULT_MIN_FRAGMENT_LENGTH,
    DEFAULT_MIN_SECTION_SIZE,
    DEFAULT_PREFIX_COLLAPSE_RATIO,
    DEFAULT_SECTION_PAUSE_SECONDS,
    DEFAULT_SHINGLE_LENGTH,
    DEFAULT_SIGNATURE_CACHE_CAPACITY,
    DEFAULT_SIGNATURE_CACHE_FOLD_INTERVAL,
    DEFAULT_SIMILARITY_THRESHOLD,
    HUGE_CORPUS_INTERVAL_SECONDS,
    LARGE_CORPUS_INTERVAL_SECONDS,
    LARGE_CORPUS_LOW_MEMORY_INTERVAL_SECONDS,
    MEDIUM_CORPUS_INTERVAL_SECONDS,
    MEDIUM_CORPUS_LOW_MEMORY_INTERVAL_SECONDS,
    SMALL_CORPUS_INTERVAL_SECONDS,
)

PurifyStrategyName = Literal["skip", "lightweight", "sectioned", "progressive"]

Signature = tuple[int, ...]


@dataclass(frozen=True)
class TextEntry:
    """One captured text snippet.

    Equality and hashing use ``source`` and ``content`` only, so two
    captures of the same text from the same source are the same entry
    regardless of when they were observed.

    Attributes:
        source: Application or origin that produced the text.
        content: Captured text payload.
        captured_at: Capture timestamp, excluded from equality.
    """

    source: str
    content: str
    captured_at: datetime = field(compare=False)

    @property
    def key(self) -> tuple[str, str]:
        """Return the identity key used for exact deduplication."""
        return (self.source, self.content)


@dataclass(frozen=True)
class RetentionPolicy:
    """Filter deciding which entries may live in the log.

    Attributes:
        deny_sources: Sources whose entries are never stored.
        min_content_length: Minimum content length in characters.
    """

    deny_sources: frozenset[str] = frozenset()
    min_content_length: int = DEFAULT_MIN_CONTENT_LENGTH

    def accepts(self, entry: TextEntry) -> bool:
        """Return whether an entry passes the retention filter."""
        if entry.source in self.deny_sources:
            return False
        return len(entry.content) >= self.min_content_length


@dataclass(frozen=True)
class IngestOptions:
    """Buffering and capture normalization options.

    Attributes:
        flush_threshold: Buffered entry count that triggers a flush.
        flush_interval_seconds: Elapsed time since last flush that triggers one.
        max_content_length: Captured texts longer than this are ignored.
        min_fragment_length: Shortest fragment kept when splitting captures.
    """

    flush_threshold: int = DEFAULT_FLUSH_THRESHOLD
    flush_interval_seconds: float = DEFAULT_FLUSH_INTERVAL_SECONDS
    max_content_length: int = DEFAULT_MAX_CONTENT_LENGTH
    min_fragment_length: int = DEFAULT_MIN_FRAGMENT_LENGTH


@dataclass(frozen=True)
class SimilarityOptions:
    """MinHash similarity engine options.

    Attributes:
        hash_function_count: Signature length K.
        shingle_length: Character n-gram length L.
        similarity_threshold: Minimum estimated Jaccard score for a duplicate.
        hash_seed: Seed used to derive the fixed per-function seeds.
        signature_cache_capacity: Maximum cached signatures before LRU eviction.
        signature_cache_fold_interval: Processed entries between cache folds.
        lsh_rows_per_band: Signature rows grouped into one LSH band.
    """

    hash_function_count: int = DEFAULT_HASH_FUNCTION_COUNT
    shingle_length: int = DEFAULT_SHINGLE_LENGTH
    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD
    hash_seed: int = DEFAULT_HASH_SEED
    signature_cache_capacity: int = DEFAULT_SIGNATURE_CACHE_CAPACITY
    signature_cache_fold_interval: int = DEFAULT_SIGNATURE_CACHE_FOLD_INTERVAL
    lsh_rows_per_band: int = DEFAULT_LSH_ROWS_PER_BAND


@dataclass(frozen=True)
class TierIntervals:
    """Minimum seconds between scheduled runs per corpus-size tier."""

    small: float = SMALL_CORPUS_INTERVAL_SECONDS
    medium: float = MEDIUM_CORPUS_INTERVAL_SECONDS
    medium_low_memory: float = MEDIUM_CORPUS_LOW_MEMORY_INTERVAL_SECONDS
    large: float = LARGE_CORPUS_INTERVAL_SECONDS
    large_low_memory: float = LARGE_CORPUS_LOW_MEMORY_INTERVAL_SECONDS
    huge: float = HUGE_CORPUS_INTERVAL_SECONDS


@dataclass(frozen=True)
class PurifyOptions:
    """Purification scheduling and budget options.

    Attributes:
        lightweight_min_interval_seconds: Rate limit for lightweight runs.
        lightweight_max_entries: Most recent entries examined by lightweight runs.
        lightweight_budget_seconds: Wall-clock budget of one lightweight run.
        min_section_size: Lower bound for window sizes.
        max_section_size: Upper bound for window sizes.
        section_pause_seconds: Cooperative pause between windows.
        checkpoint_interval_sections: Windows between progressive checkpoints.
        low_memory_threshold_mb: Physical memory below which the host is constrained.
        prefix_collapse_ratio: Minimum shorter/longer length ratio to collapse.
        tier_intervals: Scheduler skip intervals per corpus size tier.
    """

    lightweight_min_interval_seconds: float = DEFAULT_LIGHTWEIGHT_MIN_INTERVAL_SECONDS
    lightweight_max_entries: int = DEFAULT_LIGHTWEIGHT_MAX_ENTRIES
    lightweight_budget_seconds: float = DEFAULT_LIGHTWEIGHT_BUDGET_SECONDS
    min_section_size: int = DEFAULT_MIN_SECTION_SIZE
    max_section_size: int = DEFAULT_MAX_SECTION_SIZE
    section_pause_seconds: float = DEFAULT_SECTION_PAUSE_SECONDS
    checkpoint_interval_sections: int = DEFAULT_CHECKPOINT_INTERVAL_SECTIONS
    low_memory_threshold_mb: int = DEFAULT_LOW_MEMORY_THRESHOLD_MB
    prefix_collapse_ratio: float = DEFAULT_PREFIX_COLLAPSE_RATIO
    tier_intervals: TierIntervals = field(default_factory=TierIntervals)


@dataclass(frozen=True)
class PurifyOutcome:
    """Result of running one strategy over an entry list.

    Attributes:
        retained: Surviving entries in their original relative order.
        exact_duplicates: Entries removed as exact duplicates.
        near_duplicates: Entries removed by MinHash similarity.
        collapsed_prefixes: Entries removed by the prefix-collapse pass.
        filtered: Entries dropped by the retention filter.
        budget_exceeded: Whether a time budget cut processing short.
    """

    retained: tuple[TextEntry, ...]
    exact_duplicates: int = 0
    near_duplicates: int = 0
    collapsed_prefixes: int = 0
    filtered: int = 0
    budget_exceeded: bool = False

    @property
    def removed_count(self) -> int:
        """Return the number of entries judged duplicates."""
        return self.exact_duplicates + self.near_duplicates + self.collapsed_prefixes


@dataclass(frozen=True)
class PurifyReport:
    """Summary of one scheduled purification.

    Attributes:
        strategy: Strategy that ran, or ``skip``.
        entries_before: Entry count loaded from the log.
        entries_after: Entry count in the log afterwards.
        removed_count: Duplicates removed.
        rewritten: Whether the log file was replaced.
        skip_reason: Why the run was skipped, when it was.
        completed_at: Epoch seconds at which a strategy run finished.
    """

    strategy: PurifyStrategyName
    entries_before: int
    entries_after: int
    removed_count: int
    rewritten: bool
    skip_reason: str | None = None
    completed_at: float | None = None


@dataclass(frozen=True)
class RewriteResult:
    """Outcome of the crash-safe rewrite protocol.

    Attributes:
        records_written: Entries serialized into the replacement file.
        replaced: Whether the log was swapped for the new file.
        completed_at: Epoch seconds at which the swap finished.
    """

    records_written: int
    replaced: bool
    completed_at: float | None = None


@dataclass(frozen=True)
class LoadResult:
    """Entries read from the log plus malformed line accounting.

    Attributes:
        entries: Parsed entries in file order.
        malformed_count: Lines that failed to parse.
    """

    entries: tuple[TextEntry, ...]
    malformed_count: int = 0

"""Unit tests for MinHash near-duplicate filtering."""

from __future__ import annotations

from datetime import datetime, timezone

from core.types import SimilarityOptions, TextEntry
from transforms.minhash import MinHashEngine
from transforms.near_duplicates import NearDuplicateFilter

_LONG_TEXT = "The meeting is scheduled for Tuesday afternoon in room 401 with the whole team"


def _entry(source: str, content: str) -> TextEntry:
    return TextEntry(source=source, content=content, captured_at=datetime(2024, 7, 5, tzinfo=timezone.utc))


def _filter() -> NearDuplicateFilter:
    options = SimilarityOptions()
    return NearDuplicateFilter(MinHashEngine(options), options)


def test_admit_rejects_near_duplicate_in_same_source() -> None:
    """A one-character edit of a retained entry should be rejected."""
    near_filter = _filter()
    near_filter.admit(_entry("app", _LONG_TEXT))

    admitted = near_filter.admit(_entry("app", _LONG_TEXT + "!"))

    assert not admitted


def test_admit_keeps_near_duplicate_from_other_source() -> None:
    """Sources are never compared with each other."""
    near_filter = _filter()
    near_filter.admit(_entry("mail", _LONG_TEXT))

    admitted = near_filter.admit(_entry("chat", _LONG_TEXT + "!"))

    assert admitted


def test_admit_keeps_unrelated_sentences() -> None:
    """Unrelated sentences should both be retained."""
    near_filter = _filter()
    near_filter.admit(_entry("app", "The quick brown fox jumps over the lazy dog"))

    admitted = near_filter.admit(_entry("app", "Quarterly revenue grew despite supply issues"))

    assert admitted


def test_admit_rejects_whitespace_variant() -> None:
    """Texts equal after whitespace normalization are near duplicates."""
    near_filter = _filter()
    near_filter.admit(_entry("app", "see you tomorrow"))

    admitted = near_filter.admit(_entry("app", "see  you tomorrow"))

    assert not admitted


def test_admit_keeps_blank_content() -> None:
    """Blank content has no signature and is never a near duplicate."""
    near_filter = _filter()
    near_filter.admit(_entry("app", "   "))

    admitted = near_filter.admit(_entry("app", "  "))

    assert admitted


def test_cache_stats_count_repeated_content_as_hits() -> None:
    """Repeated content should reuse the cached signature."""
    near_filter = _filter()
    near_filter.admit(_entry("mail", "see you tomorrow"))
    near_filter.admit(_entry("chat", "see you tomorrow"))

    stats = near_filter.cache_stats()

    assert (stats.hits, stats.misses) == (1, 1)

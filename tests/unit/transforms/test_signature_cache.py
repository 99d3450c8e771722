"""Unit tests for the bounded signature cache."""

from __future__ import annotations

import pytest

from transforms.signature_cache import SignatureCache


def _counting_compute(calls: list[str]):
    def compute(content: str) -> tuple[int, ...]:
        calls.append(content)
        return (len(content),)

    return compute


def test_get_computes_each_content_once() -> None:
    """Repeated lookups should hit the cache."""
    calls: list[str] = []
    cache = SignatureCache(_counting_compute(calls), capacity=10, fold_interval=100)

    cache.get("hello")
    cache.get("hello")

    assert (calls, cache.stats().hits) == (["hello"], 1)


def test_get_evicts_least_recently_used_entry() -> None:
    """Capacity overflow should evict the oldest signature."""
    calls: list[str] = []
    cache = SignatureCache(_counting_compute(calls), capacity=2, fold_interval=100)
    cache.get("a")
    cache.get("b")
    cache.get("a")
    cache.get("c")

    cache.get("b")

    assert calls == ["a", "b", "c", "b"]


def test_mark_processed_folds_on_cadence() -> None:
    """Every fold_interval entries the cache should be folded and cleared."""
    cache = SignatureCache(lambda content: (1,), capacity=10, fold_interval=2)
    cache.get("a")
    cache.mark_processed()
    cache.get("b")

    cache.mark_processed()
    stats = cache.stats()

    assert (stats.folds, stats.cached, stats.seen) == (1, 0, 2)


def test_cache_rejects_non_positive_capacity() -> None:
    """Capacity must be positive."""
    with pytest.raises(ValueError):
        SignatureCache(lambda content: (1,), capacity=0, fold_interval=1)

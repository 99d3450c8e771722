"""Bounded signature cache for one purification run.

Signatures are memoized per content string in an LRU map. Every
``fold_interval`` processed entries the cached keys are folded into a
plain "seen" set and the map is cleared, so signature memory never
grows past ``capacity`` no matter how large the corpus is.
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable

from core.types import Signature


@dataclass(frozen=True)
class SignatureCacheStats:
    """Counters describing cache effectiveness."""

    hits: int
    misses: int
    evictions: int
    folds: int
    cached: int
    seen: int


class SignatureCache:
    """LRU content-to-signature map with periodic folding."""

    def __init__(
        self,
        compute: Callable[[str], Signature],
        capacity: int,
        fold_interval: int,
    ) -> None:
        if capacity <= 0 or fold_interval <= 0:
            raise ValueError("Signature cache capacity and fold interval must be positive.")
        self._compute = compute
        self._capacity = capacity
        self._fold_interval = fold_interval
        self._entries: OrderedDict[str, Signature] = OrderedDict()
        self._seen: set[str] = set()
        self._processed = 0
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._folds = 0

    def get(self, content: str) -> Signature:
        """Return the signature for a content string, computing on a miss."""
        cached = self._entries.get(content)
        if cached is not None:
            self._entries.move_to_end(content)
            self._hits += 1
            return cached
        self._misses += 1
        signature = self._compute(content)
        self._entries[content] = signature
        if len(self._entries) > self._capacity:
            self._entries.popitem(last=False)
            self._evictions += 1
        return signature

    def mark_processed(self) -> None:
        """Count one processed entry and fold when the cadence is reached."""
        self._processed += 1
        if self._processed % self._fold_interval == 0:
            self.fold()

    def fold(self) -> None:
        """Move cached keys into the seen set and clear cached signatures."""
        self._seen.update(self._entries.keys())
        self._entries.clear()
        self._folds += 1

    def stats(self) -> SignatureCacheStats:
        return SignatureCacheStats(
            hits=self._hits,
            misses=self._misses,
            evictions=self._evictions,
            folds=self._folds,
            cached=len(self._entries),
            seen=len(self._seen),
        )

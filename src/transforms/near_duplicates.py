"""Near-duplicate detection with MinHash and LSH banding.

Entries are admitted one at a time in log order. Each admitted entry is
indexed under its source; a new entry is a near duplicate when some
previously admitted entry of the same source shares an LSH band, passes
the length pre-filter, and reaches the similarity threshold. Because the
check is sequential, re-running it over its own output removes nothing.
"""

from __future__ import annotations

from core.types import Signature, SimilarityOptions, TextEntry
from transforms.minhash import MinHashEngine, similarity, within_length_ratio
from transforms.signature_cache import SignatureCache, SignatureCacheStats

BandKey = tuple[int, Signature]


class NearDuplicateFilter:
    """Stateful per-source near-duplicate detector for one purification run."""

    def __init__(self, engine: MinHashEngine, options: SimilarityOptions) -> None:
        self._threshold = options.similarity_threshold
        self._cache = SignatureCache(
            engine.signature,
            capacity=options.signature_cache_capacity,
            fold_interval=options.signature_cache_fold_interval,
        )
        self._band_ranges = _band_ranges(options.hash_function_count, options.lsh_rows_per_band)
        self._buckets: dict[str, dict[BandKey, list[int]]] = {}
        self._indexed: list[tuple[int, Signature]] = []

    def admit(self, entry: TextEntry) -> bool:
        """Check one entry against retained entries of its source.

        Args:
            entry: Candidate entry.

        Returns:
            True when the entry is retained, False when it is a near duplicate.
        """
        signature = self._cache.get(entry.content)
        self._cache.mark_processed()
        if signature and self._has_similar(entry, signature):
            return False
        self._index(entry, signature)
        return True

    def cache_stats(self) -> SignatureCacheStats:
        return self._cache.stats()

    def _has_similar(self, entry: TextEntry, signature: Signature) -> bool:
        source_buckets = self._buckets.get(entry.source)
        if not source_buckets:
            return False
        checked: set[int] = set()
        length = len(entry.content)
        for band_key in self._band_keys(signature):
            for candidate_id in source_buckets.get(band_key, ()):
                if candidate_id in checked:
                    continue
                checked.add(candidate_id)
                candidate_length, candidate_signature = self._indexed[candidate_id]
                if not within_length_ratio(length, candidate_length):
                    continue
                if similarity(signature, candidate_signature) >= self._threshold:
                    return True
        return False

    def _index(self, entry: TextEntry, signature: Signature) -> None:
        if not signature:
            return
        entry_id = len(self._indexed)
        self._indexed.append((len(entry.content), signature))
        source_buckets = self._buckets.setdefault(entry.source, {})
        for band_key in self._band_keys(signature):
            source_buckets.setdefault(band_key, []).append(entry_id)

    def _band_keys(self, signature: Signature) -> list[BandKey]:
        return [
            (band_index, signature[start:end])
            for band_index, (start, end) in enumerate(self._band_ranges)
        ]


def _band_ranges(hash_function_count: int, rows_per_band: int) -> list[tuple[int, int]]:
    """Split signature positions into contiguous LSH bands.

    Trailing positions that do not fill a whole band are left out of the
    bucketing but still take part in the similarity verification.
    """
    rows = min(rows_per_band, hash_function_count)
    band_count = hash_function_count // rows
    return [(index * rows, (index + 1) * rows) for index in range(band_count)]

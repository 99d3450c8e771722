"""MinHash similarity engine.

This module turns text into fixed-size signatures and estimates the
Jaccard similarity of their character shingle sets. Signatures are
deterministic for a given seed set so they can be recomputed when a
purification run resumes from a checkpoint.
"""

from __future__ import annotations

import random
import re

from core.constants import DEFAULT_SHINGLE_LENGTH, MAX_RELATIVE_LENGTH_DIFFERENCE
from core.types import Signature, SimilarityOptions

_HASH_MULTIPLIER = 31
_UINT64_MODULUS = 1 << 64
_UINT64_MASK = _UINT64_MODULUS - 1
_INT64_LIMIT = 1 << 63
_SPLITMIX_GAMMA = 0x9E3779B97F4A7C15
_SPLITMIX_MULTIPLIER_A = 0xBF58476D1CE4E5B9
_SPLITMIX_MULTIPLIER_B = 0x94D049BB133111EB
_WHITESPACE_PATTERN = re.compile(r"[ \t\r\n\f\v\u3000]+")

EMPTY_SIGNATURE: Signature = ()


def normalize_whitespace(text: str) -> str:
    """Collapse whitespace runs, including full-width spaces, to one ASCII space.

    Args:
        text: Raw text.

    Returns:
        Trimmed text with single-space separators.
    """
    return _WHITESPACE_PATTERN.sub(" ", text).strip()


def shingle(text: str, shingle_length: int = DEFAULT_SHINGLE_LENGTH) -> list[str]:
    """Split normalized text into overlapping character n-grams.

    Args:
        text: Raw text.
        shingle_length: N-gram length.

    Returns:
        Ordered shingles. Text shorter than the n-gram length yields one
        shingle holding the whole normalized text; empty text yields none.
    """
    normalized = normalize_whitespace(text)
    if not normalized:
        return []
    if len(normalized) < shingle_length:
        return [normalized]
    return [
        normalized[start : start + shingle_length]
        for start in range(len(normalized) - shingle_length + 1)
    ]


def polynomial_hash(text: str, seed: int) -> int:
    """Order-dependent rolling hash ``hash = hash * 31 + codepoint``.

    Arithmetic wraps like a signed 64-bit integer.

    Args:
        text: Input string.
        seed: Initial hash value.

    Returns:
        Signed 64-bit hash value.
    """
    value = seed & _UINT64_MASK
    for character in text:
        value = (value * _HASH_MULTIPLIER + ord(character)) & _UINT64_MASK
    return _to_signed(value)


def seeded_hash(text: str, seed: int) -> int:
    """Hash one shingle for the MinHash function identified by ``seed``.

    The rolling hash alone shifts every shingle by the same seed-dependent
    offset, so all seeds would rank shingles alike. Finalizing with
    splitmix64 makes each seed an independent permutation.

    Args:
        text: Shingle.
        seed: Per-function seed.

    Returns:
        Signed 64-bit hash value.
    """
    return _to_signed(_splitmix64(polynomial_hash(text, seed) & _UINT64_MASK))


def derive_seeds(count: int, hash_seed: int) -> tuple[int, ...]:
    """Derive a fixed set of signed 64-bit seeds.

    Args:
        count: Number of hash functions.
        hash_seed: Master seed.

    Returns:
        Deterministic seed tuple.
    """
    generator = random.Random(hash_seed)
    return tuple(_to_signed(generator.getrandbits(64)) for _ in range(count))


def similarity(signature_a: Signature, signature_b: Signature) -> float:
    """Estimate Jaccard similarity as the fraction of agreeing positions.

    Args:
        signature_a: First signature.
        signature_b: Second signature.

    Returns:
        Score in [0, 1]; 0 when either signature is the empty sentinel.

    Raises:
        ValueError: If the signatures have different lengths.
    """
    if not signature_a or not signature_b:
        return 0.0
    if len(signature_a) != len(signature_b):
        raise ValueError(
            "Cannot compare signatures of different lengths: "
            f"{len(signature_a)} vs {len(signature_b)}."
        )
    matches = sum(1 for left, right in zip(signature_a, signature_b) if left == right)
    return matches / len(signature_a)


def within_length_ratio(length_a: int, length_b: int) -> bool:
    """Return whether two lengths differ by at most half of the longer one."""
    longest = max(length_a, length_b)
    if longest == 0:
        return False
    return abs(length_a - length_b) / longest <= MAX_RELATIVE_LENGTH_DIFFERENCE


class MinHashEngine:
    """Signature builder bound to one hash-function set."""

    def __init__(self, options: SimilarityOptions | None = None) -> None:
        self._options = options or SimilarityOptions()
        self._seeds = derive_seeds(self._options.hash_function_count, self._options.hash_seed)

    @property
    def seeds(self) -> tuple[int, ...]:
        return self._seeds

    @property
    def threshold(self) -> float:
        return self._options.similarity_threshold

    def signature(self, text: str) -> Signature:
        """Compute the MinHash signature of a text.

        Each shingle is hashed once without a seed; the rolling hash started
        at ``seed`` is then ``seed * 31**len(shingle) + unseeded`` modulo
        2**64, which is finalized exactly as in ``seeded_hash``.

        Args:
            text: Raw text.

        Returns:
            Signature of length K, or the empty sentinel for blank text.
        """
        shingles = set(shingle(text, self._options.shingle_length))
        if not shingles:
            return EMPTY_SIGNATURE
        hashed_shingles = [
            (polynomial_hash(item, 0) & _UINT64_MASK, pow(_HASH_MULTIPLIER, len(item), _UINT64_MODULUS))
            for item in shingles
        ]
        minimums: list[int] = []
        for seed in self._seeds:
            unsigned_seed = seed & _UINT64_MASK
            minimums.append(
                min(
                    _to_signed(_splitmix64((unsigned_seed * multiplier + base) & _UINT64_MASK))
                    for base, multiplier in hashed_shingles
                )
            )
        return tuple(minimums)

    def similarity(self, signature_a: Signature, signature_b: Signature) -> float:
        return similarity(signature_a, signature_b)

    def is_similar(self, text_a: str, text_b: str, threshold: float | None = None) -> bool:
        """Return whether two texts are near duplicates.

        Args:
            text_a: First text.
            text_b: Second text.
            threshold: Optional override of the configured threshold.

        Returns:
            True when the length pre-filter passes and the estimated
            similarity reaches the threshold.
        """
        if not within_length_ratio(len(text_a), len(text_b)):
            return False
        limit = self._options.similarity_threshold if threshold is None else threshold
        return similarity(self.signature(text_a), self.signature(text_b)) >= limit


def _to_signed(value: int) -> int:
    return value - _UINT64_MODULUS if value >= _INT64_LIMIT else value


def _splitmix64(value: int) -> int:
    value = (value + _SPLITMIX_GAMMA) & _UINT64_MASK
    value = ((value ^ (value >> 30)) * _SPLITMIX_MULTIPLIER_A) & _UINT64_MASK
    value = ((value ^ (value >> 27)) * _SPLITMIX_MULTIPLIER_B) & _UINT64_MASK
    return value ^ (value >> 31)

"""Public SDK surface for Sieve.

This module provides a stable import path for capture integrations.
It re-exports the store, configuration, and typed option models.
"""

from __future__ import annotations

from core.config import SieveConfig
from core.types import (
    IngestOptions,
    PurifyOptions,
    PurifyReport,
    RetentionPolicy,
    SimilarityOptions,
    TextEntry,
)
from purify.scheduler import plan_purification
from store.corpus_statistics import CorpusStatistics
from store.sieve_store import SieveStore
from transforms.minhash import MinHashEngine

__all__ = [
    "CorpusStatistics",
    "IngestOptions",
    "MinHashEngine",
    "PurifyOptions",
    "PurifyReport",
    "RetentionPolicy",
    "SieveConfig",
    "SieveStore",
    "SimilarityOptions",
    "TextEntry",
    "plan_purification",
]

"""Core constants used across Sieve modules.

This module centralizes file names and tuning defaults.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

from pathlib import Path

DEFAULT_DATA_ROOT = Path(".sieve")
LOG_FILE_NAME = "saved_texts.jsonl"
REWRITE_TEMP_FILE_NAME = "rewrite_saved_texts.tmp"
BACKUP_FILE_PREFIX = "backup_"
BACKUP_FILE_SUFFIX = ".jsonl"
DIAGNOSTICS_FILE_NAME = "unreadable_lines.txt"
CHECKPOINT_FILE_NAME = "purify_checkpoint.json"
CHECKPOINT_VERSION = 1
SUPPORTED_IMPORT_EXTENSIONS = (".txt", ".md", ".text")
IMPORT_SOURCE_PREFIX = "import:"

DEFAULT_FLUSH_THRESHOLD = 10
DEFAULT_FLUSH_INTERVAL_SECONDS = 30.0
DEFAULT_MIN_CONTENT_LENGTH = 3
DEFAULT_MAX_CONTENT_LENGTH = 1000
DEFAULT_MIN_FRAGMENT_LENGTH = 3

DEFAULT_HASH_FUNCTION_COUNT = 20
DEFAULT_SHINGLE_LENGTH = 3
DEFAULT_SIMILARITY_THRESHOLD = 0.8
DEFAULT_HASH_SEED = 20250308
DEFAULT_SIGNATURE_CACHE_CAPACITY = 2000
DEFAULT_SIGNATURE_CACHE_FOLD_INTERVAL = 100
DEFAULT_LSH_ROWS_PER_BAND = 2
MAX_RELATIVE_LENGTH_DIFFERENCE = 0.5

DEFAULT_LIGHTWEIGHT_MIN_INTERVAL_SECONDS = 30.0
DEFAULT_LIGHTWEIGHT_MAX_ENTRIES = 1000
DEFAULT_LIGHTWEIGHT_BUDGET_SECONDS = 5.0
LIGHTWEIGHT_DEADLINE_CHECK_INTERVAL = 50
DEFAULT_MIN_SECTION_SIZE = 100
DEFAULT_MAX_SECTION_SIZE = 500
DEFAULT_SECTION_PAUSE_SECONDS = 0.1
DEFAULT_CHECKPOINT_INTERVAL_SECTIONS = 5
DEFAULT_LOW_MEMORY_THRESHOLD_MB = 4096
LARGE_MEMORY_THRESHOLD_MB = 8192
DEFAULT_PREFIX_COLLAPSE_RATIO = 0.7
PARTIAL_INPUT_MIN_MATCH_RATIO = 0.6
PARTIAL_INPUT_MIN_MATCH_CHARS = 2

SMALL_CORPUS_MAX_ENTRIES = 500
MEDIUM_CORPUS_MAX_ENTRIES = 2000
LARGE_CORPUS_MAX_ENTRIES = 10000
SMALL_CORPUS_INTERVAL_SECONDS = 60.0
MEDIUM_CORPUS_INTERVAL_SECONDS = 120.0
MEDIUM_CORPUS_LOW_MEMORY_INTERVAL_SECONDS = 300.0
LARGE_CORPUS_INTERVAL_SECONDS = 300.0
LARGE_CORPUS_LOW_MEMORY_INTERVAL_SECONDS = 600.0
HUGE_CORPUS_INTERVAL_SECONDS = 1800.0

IO_RETRY_ATTEMPTS = 3
IO_RETRY_BACKOFF_SECONDS = 0.05

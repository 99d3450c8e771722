"""Runtime configuration model for Sieve.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path

from core.constants import (
    CHECKPOINT_FILE_NAME,
    DEFAULT_DATA_ROOT,
    DIAGNOSTICS_FILE_NAME,
    LOG_FILE_NAME,
)
from core.errors import SieveConfigError
from core.types import IngestOptions, PurifyOptions, RetentionPolicy, SimilarityOptions


@dataclass(frozen=True)
class SieveConfig:
    """Validated runtime configuration.

    Attributes:
        data_root: Directory holding the log, backups, and checkpoints.
        retention: Retention filter applied on flush and purification.
        ingest: Buffering and capture normalization options.
        similarity: MinHash engine options.
        purify: Scheduler and strategy options.
    """

    data_root: Path
    retention: RetentionPolicy = field(default_factory=RetentionPolicy)
    ingest: IngestOptions = field(default_factory=IngestOptions)
    similarity: SimilarityOptions = field(default_factory=SimilarityOptions)
    purify: PurifyOptions = field(default_factory=PurifyOptions)

    @classmethod
    def from_env(cls) -> "SieveConfig":
        """Build config from process environment variables.

        ``SIEVE_DATA_ROOT`` selects the storage directory and the optional
        ``SIEVE_SETTINGS_FILE`` points at a YAML file overriding option groups.

        Returns:
            A validated config object.

        Raises:
            SieveConfigError: If environment values or the settings file are invalid.
        """
        data_root_value = os.getenv("SIEVE_DATA_ROOT", str(DEFAULT_DATA_ROOT))
        config = cls(data_root=Path(data_root_value).expanduser().resolve())
        settings_path = os.getenv("SIEVE_SETTINGS_FILE")
        if settings_path:
            config = config.with_settings_file(settings_path)
        return config

    def with_settings_file(self, settings_path: str) -> "SieveConfig":
        """Return a copy with option groups overridden by a YAML settings file."""
        from core.settings_file import apply_settings_file

        return apply_settings_file(self, settings_path)

    @property
    def log_path(self) -> Path:
        """Path of the append-only JSONL log."""
        return self.data_root / LOG_FILE_NAME

    @property
    def diagnostics_path(self) -> Path:
        """Path of the side file collecting unreadable log lines."""
        return self.data_root / DIAGNOSTICS_FILE_NAME

    @property
    def checkpoint_path(self) -> Path:
        """Path of the progressive purification checkpoint."""
        return self.data_root / CHECKPOINT_FILE_NAME

    def __post_init__(self) -> None:
        _validate_config(self)


def _validate_config(config: SieveConfig) -> None:
    """Validate cross-field option constraints.

    Args:
        config: Config under construction.

    Raises:
        SieveConfigError: If any option is out of range.
    """
    similarity = config.similarity
    if similarity.hash_function_count <= 0:
        raise SieveConfigError(
            "Invalid similarity.hash_function_count: expected a positive integer, "
            f"got {similarity.hash_function_count}."
        )
    if similarity.shingle_length <= 0:
        raise SieveConfigError(
            "Invalid similarity.shingle_length: expected a positive integer, "
            f"got {similarity.shingle_length}."
        )
    if not 0.0 < similarity.similarity_threshold <= 1.0:
        raise SieveConfigError(
            "Invalid similarity.similarity_threshold: expected a value in (0, 1], "
            f"got {similarity.similarity_threshold}."
        )
    if similarity.signature_cache_capacity <= 0 or similarity.signature_cache_fold_interval <= 0:
        raise SieveConfigError(
            "Invalid signature cache settings: capacity and fold interval must be positive."
        )
    if similarity.lsh_rows_per_band <= 0:
        raise SieveConfigError(
            "Invalid similarity.lsh_rows_per_band: expected a positive integer, "
            f"got {similarity.lsh_rows_per_band}."
        )
    purify = config.purify
    if purify.min_section_size <= 0 or purify.min_section_size > purify.max_section_size:
        raise SieveConfigError(
            "Invalid section bounds: expected 0 < min_section_size <= max_section_size, "
            f"got {purify.min_section_size} and {purify.max_section_size}."
        )
    if purify.checkpoint_interval_sections <= 0:
        raise SieveConfigError(
            "Invalid purify.checkpoint_interval_sections: expected a positive integer, "
            f"got {purify.checkpoint_interval_sections}."
        )
    if not 0.0 < purify.prefix_collapse_ratio <= 1.0:
        raise SieveConfigError(
            "Invalid purify.prefix_collapse_ratio: expected a value in (0, 1], "
            f"got {purify.prefix_collapse_ratio}."
        )
    if config.ingest.flush_threshold <= 0:
        raise SieveConfigError(
            "Invalid ingest.flush_threshold: expected a positive integer, "
            f"got {config.ingest.flush_threshold}."
        )

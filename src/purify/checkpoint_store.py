"""Progressive purification checkpoint persistence.

This module stores the state of a long purification run so it can
resume after a restart. A missing or unreadable checkpoint is treated
as absent and the run starts over.
"""

from __future__ import annotations

from dataclasses import dataclass
import hashlib
import json
import os
from pathlib import Path
from typing import Any, Iterable, Sequence

from core.constants import CHECKPOINT_VERSION
from core.errors import SieveCheckpointError
from core.logging_config import get_logger
from core.retry import retry_idempotent
from core.types import TextEntry
from store.entry_payload import entry_from_payload, entry_to_payload

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class PurifyCheckpoint:
    """Checkpoint state after a number of processed windows.

    Attributes:
        next_section_index: First window not yet processed.
        seen_content: Exact-dedup keys seen so far.
        accumulated_unique: Entries retained by processed windows.
        section_size: Window size the run was cut with.
        entry_count: Filtered entry count when the checkpoint was written.
        prefix_digest: Digest of the keys of the processed windows.
        exact_duplicates: Exact duplicates removed so far.
    """

    next_section_index: int
    seen_content: frozenset[tuple[str, str]]
    accumulated_unique: tuple[TextEntry, ...]
    section_size: int
    entry_count: int
    prefix_digest: str
    exact_duplicates: int = 0


def compute_prefix_digest(sections: Iterable[Sequence[TextEntry]]) -> str:
    """Hash the ``(source, content)`` keys of processed windows in order."""
    digest = hashlib.sha256()
    for section in sections:
        for entry in section:
            digest.update(json.dumps(entry.key, ensure_ascii=False).encode("utf-8"))
            digest.update(b"\n")
    return digest.hexdigest()


class PurifyCheckpointStore:
    """Filesystem-backed checkpoint for progressive purification."""

    def __init__(self, checkpoint_path: Path) -> None:
        self._checkpoint_path = checkpoint_path

    @property
    def path(self) -> Path:
        return self._checkpoint_path

    def load(self) -> PurifyCheckpoint | None:
        """Read the checkpoint if present and well formed.

        Returns:
            Checkpoint, or None when missing or corrupt.
        """
        try:
            raw_text = retry_idempotent(
                lambda: self._checkpoint_path.read_text(encoding="utf-8"),
                "read_checkpoint",
            )
        except FileNotFoundError:
            return None
        except OSError as error:
            _LOGGER.warning(
                "checkpoint_unreadable",
                checkpoint_path=str(self._checkpoint_path),
                error=str(error),
            )
            return None
        try:
            return _checkpoint_from_payload(json.loads(raw_text))
        except (ValueError, KeyError, TypeError, OverflowError) as error:
            _LOGGER.warning(
                "checkpoint_corrupt",
                checkpoint_path=str(self._checkpoint_path),
                error=str(error),
            )
            return None

    def save(self, checkpoint: PurifyCheckpoint) -> None:
        """Atomically write the checkpoint.

        Raises:
            SieveCheckpointError: If the checkpoint cannot be written.
        """
        temp_path = self._checkpoint_path.with_name(self._checkpoint_path.name + ".tmp")
        payload = json.dumps(_checkpoint_to_payload(checkpoint), ensure_ascii=False)
        try:
            self._checkpoint_path.parent.mkdir(parents=True, exist_ok=True)
            with temp_path.open("w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(temp_path, self._checkpoint_path)
        except OSError as error:
            raise SieveCheckpointError(
                f"Failed to write purification checkpoint at {self._checkpoint_path}: {error}. "
                "The run will restart from the beginning next time."
            ) from error

    def clear(self) -> None:
        """Remove the checkpoint file if present."""
        try:
            retry_idempotent(lambda: self._checkpoint_path.unlink(missing_ok=True), "remove_checkpoint")
        except OSError as error:
            _LOGGER.warning(
                "checkpoint_remove_failed",
                checkpoint_path=str(self._checkpoint_path),
                error=str(error),
            )


def _checkpoint_to_payload(checkpoint: PurifyCheckpoint) -> dict[str, object]:
    return {
        "version": CHECKPOINT_VERSION,
        "nextSectionIndex": checkpoint.next_section_index,
        "seenContent": sorted([list(key) for key in checkpoint.seen_content]),
        "accumulatedUnique": [entry_to_payload(entry) for entry in checkpoint.accumulated_unique],
        "sectionSize": checkpoint.section_size,
        "entryCount": checkpoint.entry_count,
        "prefixDigest": checkpoint.prefix_digest,
        "exactDuplicates": checkpoint.exact_duplicates,
    }


def _checkpoint_from_payload(payload: Any) -> PurifyCheckpoint:
    if not isinstance(payload, dict):
        raise ValueError("checkpoint must be a JSON object")
    if payload.get("version") != CHECKPOINT_VERSION:
        raise ValueError(f"unsupported checkpoint version {payload.get('version')!r}")
    seen_content = frozenset(
        (str(source), str(content)) for source, content in payload["seenContent"]
    )
    accumulated_unique = tuple(entry_from_payload(item) for item in payload["accumulatedUnique"])
    checkpoint = PurifyCheckpoint(
        next_section_index=int(payload["nextSectionIndex"]),
        seen_content=seen_content,
        accumulated_unique=accumulated_unique,
        section_size=int(payload["sectionSize"]),
        entry_count=int(payload["entryCount"]),
        prefix_digest=str(payload["prefixDigest"]),
        exact_duplicates=int(payload.get("exactDuplicates", 0)),
    )
    if checkpoint.next_section_index < 0 or checkpoint.section_size <= 0:
        raise ValueError("checkpoint indices must be non-negative and section size positive")
    return checkpoint

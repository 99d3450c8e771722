"""Purification strategies.

Every strategy maps the loaded log to a ``PurifyOutcome``. Lightweight
runs do a bounded exact pass over the newest entries only. Sectioned
runs walk the whole log in windows removing exact duplicates, then
collapse typing-prefix variants and drop near duplicates. Progressive
runs are sectioned runs that checkpoint their progress so a restart
can resume.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import time
from typing import Callable, Protocol, Sequence

from core.errors import SieveCheckpointError
from core.logging_config import get_logger
from core.types import (
    PurifyOptions,
    PurifyOutcome,
    PurifyStrategyName,
    RetentionPolicy,
    SimilarityOptions,
    TextEntry,
)
from purify.checkpoint_store import PurifyCheckpoint, PurifyCheckpointStore, compute_prefix_digest
from purify.sectioning import calculate_section_size, divide_into_sections
from transforms.exact_deduplication import remove_exact_duplicates
from transforms.minhash import MinHashEngine
from transforms.near_duplicates import NearDuplicateFilter
from transforms.prefix_collapse import collapse_prefixes

_LOGGER = get_logger(__name__)


class PurifyStrategy(Protocol):
    """Common interface of purification strategies."""

    name: PurifyStrategyName

    def purify(self, entries: Sequence[TextEntry]) -> PurifyOutcome:
        """Return the entries to retain and duplicate counts."""


class LightweightStrategy:
    """Exact deduplication of the newest entries within a time budget."""

    name: PurifyStrategyName = "lightweight"

    def __init__(
        self,
        retention: RetentionPolicy,
        options: PurifyOptions,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._retention = retention
        self._options = options
        self._clock = clock

    def purify(self, entries: Sequence[TextEntry]) -> PurifyOutcome:
        accepted = [entry for entry in entries if self._retention.accepts(entry)]
        split_index = max(0, len(accepted) - self._options.lightweight_max_entries)
        older, recent = accepted[:split_index], accepted[split_index:]
        deadline = self._clock() + self._options.lightweight_budget_seconds
        result = remove_exact_duplicates(recent, deadline=deadline, clock=self._clock)
        if result.deadline_reached:
            _LOGGER.warning(
                "lightweight_budget_exceeded",
                budget_seconds=self._options.lightweight_budget_seconds,
                duplicates_found=result.duplicate_count,
            )
        return PurifyOutcome(
            retained=tuple(older + result.unique),
            exact_duplicates=result.duplicate_count,
            filtered=len(entries) - len(accepted),
            budget_exceeded=result.deadline_reached,
        )


@dataclass
class _WindowState:
    """Mutable progress shared by all windows of one run."""

    seen_keys: set[tuple[str, str]] = field(default_factory=set)
    retained: list[TextEntry] = field(default_factory=list)
    exact_duplicates: int = 0


class SectionedStrategy:
    """Windowed exact pass followed by prefix-collapse and near-duplicate passes."""

    name: PurifyStrategyName = "sectioned"

    def __init__(
        self,
        retention: RetentionPolicy,
        similarity_options: SimilarityOptions,
        options: PurifyOptions,
        total_memory_mb: int,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._retention = retention
        self._similarity_options = similarity_options
        self._options = options
        self._total_memory_mb = total_memory_mb
        self._sleep = sleep
        self._engine = MinHashEngine(similarity_options)

    def purify(self, entries: Sequence[TextEntry]) -> PurifyOutcome:
        accepted = [entry for entry in entries if self._retention.accepts(entry)]
        section_size = calculate_section_size(len(accepted), self._total_memory_mb, self._options)
        sections = divide_into_sections(accepted, section_size)
        state = _WindowState()
        for index, section in enumerate(sections):
            self._process_section(section, state)
            self._pause_between(index, len(sections))
        return self._finish(state, filtered=len(entries) - len(accepted))

    def _process_section(self, section: Sequence[TextEntry], state: _WindowState) -> None:
        exact_result = remove_exact_duplicates(section, seen_keys=state.seen_keys)
        state.exact_duplicates += exact_result.duplicate_count
        state.retained.extend(exact_result.unique)

    def _pause_between(self, index: int, section_count: int) -> None:
        if index < section_count - 1 and self._options.section_pause_seconds > 0:
            self._sleep(self._options.section_pause_seconds)

    def _finish(self, state: _WindowState, filtered: int) -> PurifyOutcome:
        """Collapse typing prefixes into their longest form, then drop near duplicates."""
        collapsed, collapsed_count = collapse_prefixes(
            state.retained, self._options.prefix_collapse_ratio
        )
        near_filter = NearDuplicateFilter(self._engine, self._similarity_options)
        survivors = [entry for entry in collapsed if near_filter.admit(entry)]
        cache_stats = near_filter.cache_stats()
        _LOGGER.debug(
            "signature_cache_stats",
            hits=cache_stats.hits,
            misses=cache_stats.misses,
            evictions=cache_stats.evictions,
            folds=cache_stats.folds,
        )
        return PurifyOutcome(
            retained=tuple(survivors),
            exact_duplicates=state.exact_duplicates,
            near_duplicates=len(collapsed) - len(survivors),
            collapsed_prefixes=collapsed_count,
            filtered=filtered,
        )


class ProgressiveStrategy(SectionedStrategy):
    """Sectioned purification that checkpoints every few windows."""

    name: PurifyStrategyName = "progressive"

    def __init__(
        self,
        retention: RetentionPolicy,
        similarity_options: SimilarityOptions,
        options: PurifyOptions,
        total_memory_mb: int,
        checkpoints: PurifyCheckpointStore,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        super().__init__(retention, similarity_options, options, total_memory_mb, sleep)
        self._checkpoints = checkpoints

    def purify(self, entries: Sequence[TextEntry]) -> PurifyOutcome:
        accepted = [entry for entry in entries if self._retention.accepts(entry)]
        filtered = len(entries) - len(accepted)
        if not accepted:
            self._checkpoints.clear()
            return PurifyOutcome(retained=(), filtered=filtered)
        sections, state, start_index = self._resume_or_start(accepted)
        if start_index == 0:
            self._save_checkpoint(sections, 0, state, len(accepted))
        for index in range(start_index, len(sections)):
            self._process_section(sections[index], state)
            processed = index + 1
            if (
                processed % self._options.checkpoint_interval_sections == 0
                and processed < len(sections)
            ):
                self._save_checkpoint(sections, processed, state, len(accepted))
            self._pause_between(index, len(sections))
        outcome = self._finish(state, filtered)
        self._checkpoints.clear()
        return outcome

    def _resume_or_start(
        self, accepted: list[TextEntry]
    ) -> tuple[list[list[TextEntry]], _WindowState, int]:
        """Restore state from a valid checkpoint or start from window zero."""
        checkpoint = self._checkpoints.load()
        if checkpoint is not None:
            sections = divide_into_sections(accepted, checkpoint.section_size)
            if self._is_valid(checkpoint, sections, len(accepted)):
                _LOGGER.info(
                    "progressive_resumed",
                    next_section_index=checkpoint.next_section_index,
                    section_count=len(sections),
                )
                state = _WindowState(
                    seen_keys=set(checkpoint.seen_content),
                    retained=list(checkpoint.accumulated_unique),
                    exact_duplicates=checkpoint.exact_duplicates,
                )
                return sections, state, checkpoint.next_section_index
            _LOGGER.warning("checkpoint_discarded", checkpoint_path=str(self._checkpoints.path))
            self._checkpoints.clear()
        section_size = calculate_section_size(len(accepted), self._total_memory_mb, self._options)
        return divide_into_sections(accepted, section_size), _WindowState(), 0

    @staticmethod
    def _is_valid(
        checkpoint: PurifyCheckpoint,
        sections: list[list[TextEntry]],
        entry_count: int,
    ) -> bool:
        """Return whether the log still starts with the windows the checkpoint covers.

        The log may have grown since, but a shorter log means it was
        rewritten underneath the checkpoint.
        """
        if checkpoint.entry_count > entry_count:
            return False
        if checkpoint.next_section_index > len(sections):
            return False
        digest = compute_prefix_digest(sections[: checkpoint.next_section_index])
        return digest == checkpoint.prefix_digest

    def _save_checkpoint(
        self,
        sections: list[list[TextEntry]],
        processed: int,
        state: _WindowState,
        entry_count: int,
    ) -> None:
        checkpoint = PurifyCheckpoint(
            next_section_index=processed,
            seen_content=frozenset(state.seen_keys),
            accumulated_unique=tuple(state.retained),
            section_size=len(sections[0]),
            entry_count=entry_count,
            prefix_digest=compute_prefix_digest(sections[:processed]),
            exact_duplicates=state.exact_duplicates,
        )
        try:
            self._checkpoints.save(checkpoint)
        except SieveCheckpointError as error:
            _LOGGER.warning("progressive_checkpoint_failed", error=str(error))
            return
        _LOGGER.info("progressive_checkpoint_saved", next_section_index=processed)

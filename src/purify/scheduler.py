"""Purification scheduling.

The scheduler picks a strategy from corpus size and host memory, rate
limits runs per tier, and rewrites the log only when a run actually
found duplicates. Entries appended while a run was in progress are
carried over into the rewritten log.
"""

from __future__ import annotations

from dataclasses import dataclass
import time
from typing import Callable

from core.config import SieveConfig
from core.constants import (
    LARGE_CORPUS_MAX_ENTRIES,
    MEDIUM_CORPUS_MAX_ENTRIES,
    SMALL_CORPUS_MAX_ENTRIES,
)
from core.errors import SievePurifyError
from core.logging_config import get_logger
from core.types import PurifyOptions, PurifyOutcome, PurifyReport, PurifyStrategyName, TextEntry
from purify.checkpoint_store import PurifyCheckpointStore
from purify.memory_probe import total_memory_mb
from purify.strategies import (
    LightweightStrategy,
    ProgressiveStrategy,
    PurifyStrategy,
    SectionedStrategy,
)
from store.append_log import load_entries
from store.file_access import SerialFileAccess
from store.rewrite import rewrite_log

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class PurifyPlan:
    """Scheduling decision for one purification request.

    Attributes:
        strategy: Strategy to run, or ``skip``.
        min_interval_seconds: Tier rate limit the decision was checked against.
        skip_reason: Why the run is skipped, when it is.
    """

    strategy: PurifyStrategyName
    min_interval_seconds: float = 0.0
    skip_reason: str | None = None


def plan_purification(
    entry_count: int,
    seconds_since_last: float | None,
    is_low_memory: bool,
    options: PurifyOptions,
) -> PurifyPlan:
    """Choose a strategy for the corpus size, memory class, and elapsed time.

    Args:
        entry_count: Entries currently in the log.
        seconds_since_last: Seconds since the last run, None if never run.
        is_low_memory: Whether the host is below the low-memory threshold.
        options: Tier intervals and lightweight rate limit.

    Returns:
        Purification plan.
    """
    if entry_count == 0:
        return PurifyPlan(strategy="skip", skip_reason="log is empty")
    strategy, interval = _tier_for(entry_count, is_low_memory, options)
    if strategy == "lightweight":
        interval = max(interval, options.lightweight_min_interval_seconds)
    if seconds_since_last is not None and seconds_since_last < interval:
        return PurifyPlan(
            strategy="skip",
            min_interval_seconds=interval,
            skip_reason=(
                f"{strategy} run rate limited: {seconds_since_last:.0f}s since last run, "
                f"minimum {interval:.0f}s"
            ),
        )
    return PurifyPlan(strategy=strategy, min_interval_seconds=interval)


def _tier_for(
    entry_count: int,
    is_low_memory: bool,
    options: PurifyOptions,
) -> tuple[PurifyStrategyName, float]:
    intervals = options.tier_intervals
    if entry_count <= SMALL_CORPUS_MAX_ENTRIES:
        return "lightweight", intervals.small
    if entry_count <= MEDIUM_CORPUS_MAX_ENTRIES:
        if is_low_memory:
            return "lightweight", intervals.medium_low_memory
        return "sectioned", intervals.medium
    if entry_count <= LARGE_CORPUS_MAX_ENTRIES:
        if is_low_memory:
            return "sectioned", intervals.large_low_memory
        return "sectioned", intervals.large
    return "progressive", intervals.huge


class PurifyScheduler:
    """Runs purification strategies against the log."""

    def __init__(
        self,
        config: SieveConfig,
        file_access: SerialFileAccess,
        checkpoints: PurifyCheckpointStore | None = None,
        memory_probe: Callable[[], int] = total_memory_mb,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._config = config
        self._file_access = file_access
        self._checkpoints = checkpoints or PurifyCheckpointStore(config.checkpoint_path)
        self._memory_probe = memory_probe
        self._clock = clock
        self._sleep = sleep

    def run(
        self,
        last_purify_at: float | None = None,
        strategy: PurifyStrategyName | None = None,
    ) -> PurifyReport:
        """Load the log, run a strategy, and rewrite when duplicates were found.

        Args:
            last_purify_at: Epoch seconds of the previous run, None if never run.
            strategy: Forced strategy; None lets the tier table decide and
                applies its rate limits.

        Returns:
            Report of the run.

        Raises:
            SievePurifyError: If the strategy name is unknown.
            SieveStoreError: If loading or rewriting the log fails.
        """
        entries = self._load()
        if not entries:
            self._checkpoints.clear()
            return _skip_report(len(entries), "log is empty")
        memory_mb = self._memory_probe()
        if strategy is None:
            seconds_since_last = None if last_purify_at is None else self._clock() - last_purify_at
            plan = plan_purification(
                len(entries),
                seconds_since_last,
                memory_mb < self._config.purify.low_memory_threshold_mb,
                self._config.purify,
            )
            if plan.skip_reason is not None:
                _LOGGER.info("purify_skipped", entry_count=len(entries), reason=plan.skip_reason)
                return _skip_report(len(entries), plan.skip_reason)
            strategy = plan.strategy
        if strategy == "skip":
            return _skip_report(len(entries), "skip requested")
        outcome = self.build_strategy(strategy, memory_mb).purify(entries)
        _LOGGER.info(
            "purify_strategy_finished",
            strategy=strategy,
            entries_before=len(entries),
            retained=len(outcome.retained),
            exact_duplicates=outcome.exact_duplicates,
            near_duplicates=outcome.near_duplicates,
            collapsed_prefixes=outcome.collapsed_prefixes,
        )
        if outcome.removed_count == 0:
            return PurifyReport(
                strategy=strategy,
                entries_before=len(entries),
                entries_after=len(entries),
                removed_count=0,
                rewritten=False,
                completed_at=self._clock(),
            )
        return self._file_access.run(lambda: self._rewrite(strategy, entries, outcome))

    def build_strategy(self, strategy: PurifyStrategyName, memory_mb: int) -> PurifyStrategy:
        """Instantiate a strategy by name.

        Raises:
            SievePurifyError: If the name is not a runnable strategy.
        """
        config = self._config
        if strategy == "lightweight":
            return LightweightStrategy(config.retention, config.purify)
        if strategy == "sectioned":
            return SectionedStrategy(
                config.retention, config.similarity, config.purify, memory_mb, sleep=self._sleep
            )
        if strategy == "progressive":
            return ProgressiveStrategy(
                config.retention,
                config.similarity,
                config.purify,
                memory_mb,
                self._checkpoints,
                sleep=self._sleep,
            )
        raise SievePurifyError(
            f"Unsupported purify strategy '{strategy}'. "
            "Use one of: lightweight, sectioned, progressive."
        )

    def _load(self) -> tuple[TextEntry, ...]:
        config = self._config
        result = self._file_access.run(lambda: load_entries(config.log_path, config.diagnostics_path))
        if result.malformed_count:
            _LOGGER.warning("log_malformed_lines", malformed_count=result.malformed_count)
        return result.entries

    def _rewrite(
        self,
        strategy: PurifyStrategyName,
        entries: tuple[TextEntry, ...],
        outcome: PurifyOutcome,
    ) -> PurifyReport:
        """Rewrite inside the serial file context, keeping entries appended meanwhile."""
        current = self._load()
        if current[: len(entries)] != entries:
            raise SievePurifyError(
                f"Log at {self._config.log_path} changed unexpectedly during purification. "
                "Retry purification."
            )
        appended_since = current[len(entries) :]
        retained = list(outcome.retained) + list(appended_since)
        result = rewrite_log(self._config.log_path, retained, clock=self._clock)
        return PurifyReport(
            strategy=strategy,
            entries_before=len(entries),
            entries_after=result.records_written if result.replaced else len(current),
            removed_count=outcome.removed_count,
            rewritten=result.replaced,
            completed_at=result.completed_at or self._clock(),
        )


def _skip_report(entry_count: int, reason: str) -> PurifyReport:
    return PurifyReport(
        strategy="skip",
        entries_before=entry_count,
        entries_after=entry_count,
        removed_count=0,
        rewritten=False,
        skip_reason=reason,
    )

"""Unit tests for purification scheduling."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from core.config import SieveConfig
from core.errors import SievePurifyError
from core.types import PurifyOptions, PurifyOutcome, TextEntry
from purify.checkpoint_store import PurifyCheckpointStore
from purify.scheduler import PurifyScheduler, plan_purification
from store.append_log import append_entries, load_entries
from store.file_access import SerialFileAccess


def _entry(content: str) -> TextEntry:
    return TextEntry(source="app", content=content, captured_at=datetime(2024, 7, 5, tzinfo=timezone.utc))


@pytest.mark.parametrize(
    ("entry_count", "is_low_memory", "expected"),
    [
        (1, False, "lightweight"),
        (500, False, "lightweight"),
        (501, False, "sectioned"),
        (501, True, "lightweight"),
        (2000, True, "lightweight"),
        (2001, False, "sectioned"),
        (2001, True, "sectioned"),
        (10000, False, "sectioned"),
        (10001, False, "progressive"),
        (10001, True, "progressive"),
    ],
)
def test_plan_purification_picks_strategy_by_tier(
    entry_count: int, is_low_memory: bool, expected: str
) -> None:
    """A first run should pick the strategy of the corpus size tier."""
    plan = plan_purification(entry_count, None, is_low_memory, PurifyOptions())

    assert plan.strategy == expected


@pytest.mark.parametrize(
    ("entry_count", "is_low_memory", "elapsed", "expected"),
    [
        (100, False, 59.0, "skip"),
        (100, False, 61.0, "lightweight"),
        (1000, False, 119.0, "skip"),
        (1000, False, 121.0, "sectioned"),
        (1000, True, 299.0, "skip"),
        (1000, True, 301.0, "lightweight"),
        (5000, False, 299.0, "skip"),
        (5000, False, 301.0, "sectioned"),
        (5000, True, 599.0, "skip"),
        (5000, True, 601.0, "sectioned"),
        (20000, False, 1799.0, "skip"),
        (20000, False, 1801.0, "progressive"),
    ],
)
def test_plan_purification_rate_limits_each_tier(
    entry_count: int, is_low_memory: bool, elapsed: float, expected: str
) -> None:
    """Runs closer together than the tier interval should be skipped."""
    plan = plan_purification(entry_count, elapsed, is_low_memory, PurifyOptions())

    assert plan.strategy == expected


def test_plan_purification_skips_empty_log() -> None:
    """There is nothing to purify in an empty log."""
    plan = plan_purification(0, None, False, PurifyOptions())

    assert (plan.strategy, plan.skip_reason) == ("skip", "log is empty")


@pytest.fixture
def file_access():
    access = SerialFileAccess()
    yield access
    access.close()


def _scheduler(tmp_path, file_access: SerialFileAccess) -> PurifyScheduler:
    config = SieveConfig(data_root=tmp_path)
    return PurifyScheduler(
        config,
        file_access,
        PurifyCheckpointStore(config.checkpoint_path),
        memory_probe=lambda: 16384,
        sleep=lambda _: None,
    )


def test_run_on_empty_log_clears_checkpoint(tmp_path, file_access) -> None:
    """An empty log should skip and delete any stale checkpoint."""
    scheduler = _scheduler(tmp_path, file_access)
    checkpoint_path = tmp_path / "purify_checkpoint.json"
    checkpoint_path.write_text("{}", encoding="utf-8")

    report = scheduler.run()

    assert (report.strategy, checkpoint_path.exists()) == ("skip", False)


def test_run_rewrites_only_when_duplicates_found(tmp_path, file_access) -> None:
    """A clean log should not be rewritten."""
    scheduler = _scheduler(tmp_path, file_access)
    append_entries(tmp_path / "saved_texts.jsonl", [_entry("hello"), _entry("world")])

    report = scheduler.run()

    assert (report.strategy, report.rewritten) == ("lightweight", False)


def test_run_rewrites_log_with_duplicates(tmp_path, file_access) -> None:
    """Duplicates should be removed from the log on disk."""
    scheduler = _scheduler(tmp_path, file_access)
    log_path = tmp_path / "saved_texts.jsonl"
    append_entries(log_path, [_entry("hello"), _entry("hello"), _entry("world")])

    report = scheduler.run(strategy="sectioned")

    assert (report.removed_count, report.entries_after) == (1, 2)
    assert len(load_entries(log_path).entries) == 2


def test_run_keeps_entries_appended_during_purification(tmp_path, file_access, monkeypatch) -> None:
    """Entries flushed while a strategy runs must survive the rewrite."""
    scheduler = _scheduler(tmp_path, file_access)
    log_path = tmp_path / "saved_texts.jsonl"
    append_entries(log_path, [_entry("hello"), _entry("hello")])

    class _AppendingStrategy:
        name = "sectioned"

        def purify(self, entries):
            append_entries(log_path, [_entry("late arrival")])
            return PurifyOutcome(retained=tuple(entries[:1]), exact_duplicates=len(entries) - 1)

    monkeypatch.setattr(scheduler, "build_strategy", lambda strategy, memory_mb: _AppendingStrategy())

    scheduler.run(strategy="sectioned")

    assert [entry.content for entry in load_entries(log_path).entries] == ["hello", "late arrival"]


def test_build_strategy_rejects_unknown_name(tmp_path, file_access) -> None:
    """Unknown strategy names should fail with a purify error."""
    scheduler = _scheduler(tmp_path, file_access)

    with pytest.raises(SievePurifyError):
        scheduler.build_strategy("turbo", 16384)

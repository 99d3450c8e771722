"""Unit tests for purification strategies."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from core.types import PurifyOptions, RetentionPolicy, SimilarityOptions, TextEntry
from purify.checkpoint_store import PurifyCheckpoint, PurifyCheckpointStore, compute_prefix_digest
from purify.strategies import LightweightStrategy, ProgressiveStrategy, SectionedStrategy

_MEMORY_MB = 16384


def _entry(source: str, content: str) -> TextEntry:
    return TextEntry(source=source, content=content, captured_at=datetime(2024, 7, 5, tzinfo=timezone.utc))


def _contents(entries) -> list[str]:
    return [entry.content for entry in entries]


def _mixed_corpus() -> list[TextEntry]:
    return [
        _entry("app", "おはよ"),
        _entry("app", "おはよう"),
        _entry("app", "see you tomorrow"),
        _entry("app", "see you  tomorrow"),
        _entry("app", "おはよう"),
        _entry("app", "The quick brown fox jumps over the lazy dog"),
        _entry("mail", "おはよ"),
    ]


def _sectioned(
    options: PurifyOptions | None = None,
    similarity: SimilarityOptions | None = None,
    sleep=lambda _: None,
) -> SectionedStrategy:
    return SectionedStrategy(
        RetentionPolicy(),
        similarity or SimilarityOptions(),
        options or PurifyOptions(),
        _MEMORY_MB,
        sleep=sleep,
    )


def test_lightweight_only_examines_recent_entries() -> None:
    """Older entries beyond the window pass through untouched."""
    strategy = LightweightStrategy(RetentionPolicy(), PurifyOptions(lightweight_max_entries=3))
    entries = [
        _entry("app", "one"),
        _entry("app", "one"),
        _entry("app", "two"),
        _entry("app", "three"),
        _entry("app", "two"),
    ]

    outcome = strategy.purify(entries)

    assert (_contents(outcome.retained), outcome.exact_duplicates) == (
        ["one", "one", "two", "three"],
        1,
    )


def test_lightweight_keeps_entries_after_budget_exhaustion() -> None:
    """Running out of time keeps partial results and passes the rest through."""
    times = iter([0.0] + [10.0] * 10)
    strategy = LightweightStrategy(RetentionPolicy(), PurifyOptions(), clock=lambda: next(times))
    entries = [_entry("app", "one"), _entry("app", "one")]

    outcome = strategy.purify(entries)

    assert (len(outcome.retained), outcome.removed_count, outcome.budget_exceeded) == (2, 0, True)


def test_lightweight_applies_retention_filter() -> None:
    """Denied sources are filtered but not counted as duplicates."""
    strategy = LightweightStrategy(
        RetentionPolicy(deny_sources=frozenset({"Keychain"})),
        PurifyOptions(),
    )

    outcome = strategy.purify([_entry("Keychain", "secret"), _entry("app", "hello")])

    assert (_contents(outcome.retained), outcome.filtered, outcome.removed_count) == (
        ["hello"],
        1,
        0,
    )


def test_sectioned_removes_exact_near_and_prefix_duplicates() -> None:
    """Each pass should remove its own kind of duplicate."""
    outcome = _sectioned().purify(_mixed_corpus())

    assert _contents(outcome.retained) == [
        "おはよう",
        "see you tomorrow",
        "The quick brown fox jumps over the lazy dog",
        "おはよ",
    ]
    assert (outcome.exact_duplicates, outcome.near_duplicates, outcome.collapsed_prefixes) == (
        1,
        1,
        1,
    )


def test_sectioned_keeps_longest_typing_snapshot() -> None:
    """Growing snapshots collapse into their longest observed form."""
    outcome = _sectioned().purify([_entry("app", "おはよ"), _entry("app", "おはよう")])

    assert (_contents(outcome.retained), outcome.collapsed_prefixes) == (["おはよう"], 1)


def test_sectioned_prefers_extended_sentence_over_its_prefix() -> None:
    """A sentence extended with more words replaces the shorter capture."""
    sentence = "The meeting is scheduled for Tuesday afternoon in room 401 with the whole team"

    outcome = _sectioned().purify([_entry("app", sentence), _entry("app", sentence + " today")])

    assert _contents(outcome.retained) == [sentence + " today"]


def test_sectioned_keeps_texts_below_similarity_threshold() -> None:
    """Partially overlapping phrases are distinct entries."""
    entries = [_entry("app", "meeting at noon today"), _entry("app", "meeting at five tomorrow")]

    outcome = _sectioned().purify(entries)

    assert outcome.removed_count == 0


def test_sectioned_keeps_sources_independent() -> None:
    """Identical text in two sources should survive in both."""
    outcome = _sectioned().purify([_entry("mail", "hello world"), _entry("chat", "hello world")])

    assert outcome.removed_count == 0


def test_sectioned_is_idempotent() -> None:
    """Purifying an already purified corpus removes nothing."""
    strategy = _sectioned(PurifyOptions(min_section_size=2, max_section_size=2))
    first = strategy.purify(_mixed_corpus())

    second = strategy.purify(list(first.retained))

    assert (second.removed_count, _contents(second.retained)) == (0, _contents(first.retained))


def test_sectioned_pauses_between_windows() -> None:
    """The cooperative pause runs between windows, not after the last."""
    pauses: list[float] = []
    strategy = _sectioned(PurifyOptions(min_section_size=2, max_section_size=2), sleep=pauses.append)

    strategy.purify([_entry("app", f"entry number {index}") for index in range(5)])

    assert len(pauses) == 2


def test_sectioned_deduplicates_across_windows() -> None:
    """The shared seen set should catch duplicates in later windows."""
    strategy = _sectioned(PurifyOptions(min_section_size=2, max_section_size=2))
    entries = [
        _entry("app", "alpha text"),
        _entry("app", "bravo text"),
        _entry("app", "charlie words"),
        _entry("app", "alpha text"),
    ]

    outcome = strategy.purify(entries)

    assert outcome.exact_duplicates == 1


class _InterruptedRun(Exception):
    pass


def _progressive(checkpoints: PurifyCheckpointStore, sleep=lambda _: None) -> ProgressiveStrategy:
    options = PurifyOptions(min_section_size=2, max_section_size=2, checkpoint_interval_sections=1)
    return ProgressiveStrategy(
        RetentionPolicy(),
        SimilarityOptions(),
        options,
        _MEMORY_MB,
        checkpoints,
        sleep=sleep,
    )


def test_progressive_resumes_from_checkpoint(tmp_path) -> None:
    """An interrupted run should resume and match an uninterrupted one."""
    checkpoints = PurifyCheckpointStore(tmp_path / "purify_checkpoint.json")
    corpus = _mixed_corpus()

    def interrupt(_: float) -> None:
        raise _InterruptedRun()

    with pytest.raises(_InterruptedRun):
        _progressive(checkpoints, sleep=interrupt).purify(corpus)
    saved = checkpoints.load()

    resumed = _progressive(checkpoints).purify(corpus)
    fresh = _progressive(PurifyCheckpointStore(tmp_path / "fresh.json")).purify(corpus)

    assert saved is not None and saved.next_section_index == 1
    assert (_contents(resumed.retained), resumed.removed_count) == (
        _contents(fresh.retained),
        fresh.removed_count,
    )
    assert not checkpoints.path.exists()


def test_progressive_discards_mismatched_checkpoint(tmp_path) -> None:
    """A checkpoint whose prefix no longer matches the log is ignored."""
    checkpoints = PurifyCheckpointStore(tmp_path / "purify_checkpoint.json")
    checkpoints.save(
        PurifyCheckpoint(
            next_section_index=1,
            seen_content=frozenset({("app", "stale")}),
            accumulated_unique=(_entry("app", "stale"),),
            section_size=2,
            entry_count=7,
            prefix_digest="0" * 64,
        )
    )
    corpus = _mixed_corpus()

    outcome = _progressive(checkpoints).purify(corpus)
    fresh = _progressive(PurifyCheckpointStore(tmp_path / "fresh.json")).purify(corpus)

    assert _contents(outcome.retained) == _contents(fresh.retained)


def test_progressive_clears_checkpoint_for_empty_input(tmp_path) -> None:
    """Nothing to purify means any checkpoint is stale."""
    checkpoints = PurifyCheckpointStore(tmp_path / "purify_checkpoint.json")
    checkpoints.path.write_text("{}", encoding="utf-8")

    _progressive(checkpoints).purify([])

    assert not checkpoints.path.exists()


def test_progressive_writes_checkpoint_before_first_window(tmp_path) -> None:
    """A crash before the first periodic checkpoint still leaves one to resume from."""
    checkpoints = PurifyCheckpointStore(tmp_path / "purify_checkpoint.json")
    options = PurifyOptions(min_section_size=2, max_section_size=2, checkpoint_interval_sections=5)
    strategy = ProgressiveStrategy(
        RetentionPolicy(),
        SimilarityOptions(),
        options,
        _MEMORY_MB,
        checkpoints,
        sleep=_raise_interrupted,
    )

    with pytest.raises(_InterruptedRun):
        strategy.purify(_mixed_corpus())
    saved = checkpoints.load()

    assert saved is not None and saved.next_section_index == 0


def test_progressive_discards_checkpoint_from_longer_log(tmp_path) -> None:
    """A log shorter than the checkpointed one was rewritten, so the checkpoint is stale."""
    checkpoints = PurifyCheckpointStore(tmp_path / "purify_checkpoint.json")
    corpus = _mixed_corpus()
    checkpoints.save(
        PurifyCheckpoint(
            next_section_index=1,
            seen_content=frozenset({("app", "stale")}),
            accumulated_unique=(_entry("app", "stale"),),
            section_size=2,
            entry_count=len(corpus) + 10,
            prefix_digest=compute_prefix_digest([corpus[:2]]),
        )
    )

    outcome = _progressive(checkpoints).purify(corpus)

    assert "stale" not in _contents(outcome.retained)


def _raise_interrupted(_: float) -> None:
    raise _InterruptedRun()

"""Integration tests for the capture and purification lifecycle."""

from __future__ import annotations

import os

import pytest

from core.config import SieveConfig
from core.errors import SieveStoreError
from store.sieve_store import SieveStore

_LONG_TEXT = "The meeting is scheduled for Tuesday afternoon in room 401 with the whole team"


def _capture_session(sieve_store: SieveStore) -> None:
    sieve_store.append("editor", "おはよ")
    sieve_store.append("editor", "おはよう")
    sieve_store.append("editor", _LONG_TEXT)
    sieve_store.append("editor", "something else entirely")
    sieve_store.append("editor", _LONG_TEXT)
    sieve_store.append("editor", _LONG_TEXT + " today")
    sieve_store.append("chat", "おはよ")
    sieve_store.append("chat", _LONG_TEXT)
    sieve_store.flush()


def test_purification_removes_duplicates_and_is_idempotent(tmp_path) -> None:
    """A second purification should find nothing left to remove."""
    with SieveStore(SieveConfig(data_root=tmp_path)) as sieve_store:
        _capture_session(sieve_store)

        first = sieve_store.purify("sectioned")
        after_first = [entry.key for entry in sieve_store.load()]
        second = sieve_store.purify("sectioned")
        after_second = [entry.key for entry in sieve_store.load()]

    assert first.removed_count == 3
    assert (second.removed_count, second.rewritten) == (0, False)
    assert after_first == after_second == [
        ("editor", "おはよう"),
        ("editor", "something else entirely"),
        ("editor", _LONG_TEXT + " today"),
        ("chat", "おはよ"),
        ("chat", _LONG_TEXT),
    ]


def test_typing_snapshots_collapse_through_store(tmp_path) -> None:
    """Purifying the store keeps only the finished form of typed text."""
    with SieveStore(SieveConfig(data_root=tmp_path)) as sieve_store:
        sieve_store.append("A", "おはよ")
        sieve_store.append("A", "おはよう")
        sieve_store.flush()

        report = sieve_store.purify("sectioned")
        contents = [entry.content for entry in sieve_store.load()]

    assert (report.removed_count, contents) == (1, ["おはよう"])


def test_purification_never_invents_entries(tmp_path) -> None:
    """Every retained entry must have been captured before."""
    with SieveStore(SieveConfig(data_root=tmp_path)) as sieve_store:
        _capture_session(sieve_store)
        captured = {entry.key for entry in sieve_store.load()}

        sieve_store.purify("progressive")
        retained = {entry.key for entry in sieve_store.load()}

    assert retained <= captured


def test_exact_duplicate_example(tmp_path) -> None:
    """Three captures of the same sentence collapse to one entry."""
    with SieveStore(SieveConfig(data_root=tmp_path)) as sieve_store:
        for content in ("hello there", "general remark", "hello there", "hello there"):
            sieve_store.append("app", content)
        sieve_store.flush()

        report = sieve_store.purify("lightweight")
        contents = [entry.content for entry in sieve_store.load()]

    assert (report.removed_count, contents) == (2, ["hello there", "general remark"])


def test_failed_rewrite_leaves_log_readable(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    """A crash during the swap must not lose captured entries."""
    with SieveStore(SieveConfig(data_root=tmp_path)) as sieve_store:
        _capture_session(sieve_store)
        before = [entry.key for entry in sieve_store.load()]

        def failing_replace(source, destination) -> None:
            raise OSError("simulated crash")

        monkeypatch.setattr(os, "replace", failing_replace)
        with pytest.raises(SieveStoreError):
            sieve_store.purify("sectioned")
        monkeypatch.undo()

        after = [entry.key for entry in sieve_store.load()]

    assert after == before

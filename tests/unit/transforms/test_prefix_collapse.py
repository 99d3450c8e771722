"""Unit tests for the prefix-collapse pass."""

from __future__ import annotations

from datetime import datetime, timezone

from core.types import TextEntry
from transforms.prefix_collapse import collapse_prefixes, is_partial_input


def _entry(source: str, content: str) -> TextEntry:
    return TextEntry(source=source, content=content, captured_at=datetime(2024, 7, 5, tzinfo=timezone.utc))


def _contents(entries: list[TextEntry]) -> list[str]:
    return [entry.content for entry in entries]


def test_collapse_prefixes_drops_typing_snapshot() -> None:
    """A shorter prefix within the length ratio should collapse into the longer entry."""
    survivors, removed = collapse_prefixes([_entry("app", "おはよ"), _entry("app", "おはよう")])

    assert (_contents(survivors), removed) == (["おはよう"], 1)


def test_collapse_prefixes_keeps_short_prefix_below_ratio() -> None:
    """Prefixes much shorter than the longer entry are kept."""
    survivors, removed = collapse_prefixes([_entry("app", "abc"), _entry("app", "abcdefgh")])

    assert (len(survivors), removed) == (2, 0)


def test_collapse_prefixes_drops_one_keystroke_variant() -> None:
    """A snapshot differing only in its last character should collapse."""
    survivors, _ = collapse_prefixes([_entry("app", "abcdx"), _entry("app", "abcdef")])

    assert _contents(survivors) == ["abcdef"]


def test_collapse_prefixes_never_compares_sources() -> None:
    """Prefixes in different sources are independent."""
    survivors, removed = collapse_prefixes([_entry("mail", "おはよ"), _entry("chat", "おはよう")])

    assert (len(survivors), removed) == (2, 0)


def test_collapse_prefixes_discards_empty_content() -> None:
    """Empty contents are always removed."""
    survivors, removed = collapse_prefixes([_entry("app", ""), _entry("app", "hello")])

    assert (_contents(survivors), removed) == (["hello"], 1)


def test_collapse_prefixes_preserves_original_order() -> None:
    """Survivors should keep their relative log order."""
    entries = [
        _entry("app", "zebra crossing"),
        _entry("app", "おはよ"),
        _entry("app", "apple pie"),
        _entry("app", "おはよう"),
    ]

    survivors, _ = collapse_prefixes(entries)

    assert _contents(survivors) == ["zebra crossing", "apple pie", "おはよう"]


def test_is_partial_input_requires_strictly_longer_text() -> None:
    """Equal-length texts are never partial inputs of each other."""
    assert not is_partial_input("abcdx", "abcdy")


def test_is_partial_input_accepts_last_character_difference() -> None:
    """All but the last character matching is a partial input."""
    assert is_partial_input("abcdx", "abcdef")

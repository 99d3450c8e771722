"""Capture text normalization.

Captured text often arrives as a multi-line block copied out of an
application. This module splits such blocks into fragments, cleans
whitespace, and drops fragments that carry no language content.
"""

from __future__ import annotations

from datetime import datetime, timezone
import re

from core.types import IngestOptions, RetentionPolicy, TextEntry

_LINE_BREAK_PATTERN = re.compile(r"[\n\r\t]")
_WIDE_GAP_PATTERN = re.compile(r" {2,}")
_WHITESPACE_RUN_PATTERN = re.compile(r"\s+")


def split_into_fragments(text: str, min_fragment_length: int) -> list[str]:
    """Split text on line breaks, tabs, and runs of two or more spaces.

    Args:
        text: Raw captured text.
        min_fragment_length: Shortest trimmed fragment to keep.

    Returns:
        Trimmed fragments in reading order.
    """
    fragments: list[str] = []
    for line in _LINE_BREAK_PATTERN.split(text):
        for piece in _WIDE_GAP_PATTERN.split(line):
            trimmed = piece.strip()
            if trimmed and len(trimmed) >= min_fragment_length:
                fragments.append(trimmed)
    return fragments


def clean_fragment(text: str) -> str:
    """Normalize whitespace inside one fragment."""
    cleaned = text.replace("\r", "").replace("\n", "  ").replace("\t", " ")
    return _WHITESPACE_RUN_PATTERN.sub(" ", cleaned).strip()


def is_symbol_or_number(text: str) -> bool:
    """Return whether text consists only of ASCII digits and punctuation."""
    return all(_is_ascii_symbol_or_digit(character) for character in text)


def build_capture_entries(
    source: str,
    text: str,
    retention: RetentionPolicy,
    options: IngestOptions,
    captured_at: datetime | None = None,
) -> list[TextEntry]:
    """Turn one captured text block into zero or more entries.

    Args:
        source: Capturing application or origin.
        text: Raw captured text.
        retention: Retention filter for deny-listed sources and short texts.
        options: Capture length limits.
        captured_at: Capture time, defaults to now in UTC.

    Returns:
        Entries sharing one capture timestamp.
    """
    if not text or source in retention.deny_sources:
        return []
    if len(text) < retention.min_content_length or len(text) > options.max_content_length:
        return []
    timestamp = captured_at or datetime.now(timezone.utc)
    entries: list[TextEntry] = []
    for fragment in split_into_fragments(text, options.min_fragment_length):
        content = clean_fragment(fragment)
        if len(content) > options.max_content_length or is_symbol_or_number(content):
            continue
        entries.append(TextEntry(source=source, content=content, captured_at=timestamp))
    return entries


def _is_ascii_symbol_or_digit(character: str) -> bool:
    code_point = ord(character)
    return (
        0x21 <= code_point <= 0x2F
        or 0x30 <= code_point <= 0x39
        or 0x3A <= code_point <= 0x40
        or 0x5B <= code_point <= 0x60
        or 0x7B <= code_point <= 0x7E
    )

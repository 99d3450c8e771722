"""Shared JSONL serialization for text entries.

This module centralizes the on-disk record format of the log.
It is reused by appends, loads, rewrites, and checkpoint payloads.
"""

from __future__ import annotations

from datetime import datetime, timezone
import json
import math
from typing import Any

from core.types import TextEntry


def entry_to_payload(entry: TextEntry) -> dict[str, object]:
    """Serialize an entry into a JSON-safe payload.

    Args:
        entry: Entry instance.

    Returns:
        Dictionary with ``source``, ``content`` and ``capturedAt`` keys.
    """
    return {
        "source": entry.source,
        "content": entry.content,
        "capturedAt": format_captured_at(entry.captured_at),
    }


def entry_from_payload(payload: Any) -> TextEntry:
    """Deserialize a JSON payload into an entry.

    Args:
        payload: Decoded JSON value for one record.

    Returns:
        Parsed entry.

    Raises:
        ValueError: If required fields are missing or have the wrong type.
    """
    if not isinstance(payload, dict):
        raise ValueError(f"expected a JSON object, got {type(payload).__name__}")
    source = payload.get("source")
    content = payload.get("content")
    if not isinstance(source, str) or not isinstance(content, str):
        raise ValueError("record requires string 'source' and 'content' fields")
    return TextEntry(
        source=source,
        content=content,
        captured_at=parse_captured_at(payload.get("capturedAt")),
    )


def entry_to_line(entry: TextEntry) -> str:
    """Encode one entry as a single JSONL line without the trailing newline."""
    return json.dumps(entry_to_payload(entry), sort_keys=True, ensure_ascii=False)


def entry_from_line(line: str) -> TextEntry:
    """Decode one JSONL line.

    Raises:
        ValueError: If the line is not a valid record.
    """
    return entry_from_payload(json.loads(line))


def format_captured_at(captured_at: datetime) -> str:
    """Format a timestamp as ISO-8601 UTC with a ``Z`` suffix."""
    if captured_at.tzinfo is None:
        captured_at = captured_at.replace(tzinfo=timezone.utc)
    utc_value = captured_at.astimezone(timezone.utc)
    return utc_value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_captured_at(value: object) -> datetime:
    """Parse an ISO-8601 string or epoch seconds into an aware UTC datetime.

    Args:
        value: Stored ``capturedAt`` value.

    Returns:
        Timezone-aware datetime.

    Raises:
        ValueError: If the value is neither form.
    """
    if isinstance(value, bool):
        raise ValueError("capturedAt must be an ISO-8601 string or epoch seconds")
    if isinstance(value, (int, float)):
        return _from_epoch_seconds(value)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        try:
            return parsed.astimezone(timezone.utc)
        except OverflowError as error:
            raise ValueError(f"capturedAt out of range: {value}") from error
    raise ValueError("capturedAt must be an ISO-8601 string or epoch seconds")


def _from_epoch_seconds(value: int | float) -> datetime:
    try:
        seconds = float(value)
    except OverflowError as error:
        raise ValueError("capturedAt epoch seconds out of range") from error
    if not math.isfinite(seconds):
        raise ValueError(f"capturedAt epoch seconds must be finite, got {seconds}")
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError) as error:
        raise ValueError(f"capturedAt epoch seconds out of range: {seconds}") from error

"""Bulk import of local text files.

This module reads ``.txt``/``.md`` documents from a file or directory
and turns each normalized fragment into an entry whose source names
the imported file.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from core.constants import IMPORT_SOURCE_PREFIX, SUPPORTED_IMPORT_EXTENSIONS
from core.errors import SieveIngestError
from core.types import IngestOptions, TextEntry
from ingest.text_normalization import clean_fragment, is_symbol_or_number, split_into_fragments


def read_import_entries(source_path: Path, options: IngestOptions) -> list[TextEntry]:
    """Load entries from local text files.

    Args:
        source_path: Input file or directory.
        options: Fragment length limits.

    Returns:
        Entries in file then reading order.

    Raises:
        SieveIngestError: If the path is missing, unreadable, or has no text files.
    """
    if not source_path.exists():
        raise SieveIngestError(
            f"Failed to import from {source_path}: path does not exist. "
            "Provide an existing file or directory."
        )
    if source_path.is_file():
        file_paths = [source_path]
    else:
        file_paths = [
            file_path
            for file_path in sorted(source_path.rglob("*"))
            if file_path.is_file() and file_path.suffix.lower() in SUPPORTED_IMPORT_EXTENSIONS
        ]
    if not file_paths:
        raise SieveIngestError(
            f"No importable text files found under {source_path}. "
            f"Supported extensions: {SUPPORTED_IMPORT_EXTENSIONS}."
        )
    entries: list[TextEntry] = []
    for file_path in file_paths:
        entries.extend(_read_file_entries(file_path, options))
    return entries


def _read_file_entries(file_path: Path, options: IngestOptions) -> list[TextEntry]:
    try:
        text = file_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as error:
        raise SieveIngestError(
            f"Failed to read import file {file_path}: {error}. "
            "Check the file encoding (UTF-8) and permissions."
        ) from error
    source = f"{IMPORT_SOURCE_PREFIX}{file_path.name}"
    captured_at = datetime.fromtimestamp(file_path.stat().st_mtime, tz=timezone.utc)
    entries: list[TextEntry] = []
    for fragment in split_into_fragments(text, options.min_fragment_length):
        content = clean_fragment(fragment)
        if len(content) > options.max_content_length or is_symbol_or_number(content):
            continue
        entries.append(TextEntry(source=source, content=content, captured_at=captured_at))
    return entries

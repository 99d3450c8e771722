"""Host memory probe used to size purification windows."""

from __future__ import annotations

import psutil

_BYTES_PER_MEGABYTE = 1024 * 1024


def total_memory_mb() -> int:
    """Return total physical memory in megabytes."""
    return int(psutil.virtual_memory().total // _BYTES_PER_MEGABYTE)

"""Sieve exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each subsystem raises a specific error type for debuggability.
"""

from __future__ import annotations


class SieveError(Exception):
    """Base exception for all Sieve failures."""


class SieveConfigError(SieveError):
    """Raised for invalid runtime configuration or settings files."""


class SieveIngestError(SieveError):
    """Raised for capture normalization and text import failures."""


class SieveStoreError(SieveError):
    """Raised for log append, load, and rewrite failures."""


class SievePurifyError(SieveError):
    """Raised when a purification run cannot complete."""


class SieveCheckpointError(SieveError):
    """Raised for unreadable or inconsistent purification checkpoints."""

"""Storage layer.

This module persists captured entries in an append-only JSONL log and
owns the crash-safe rewrite used by purification.
"""

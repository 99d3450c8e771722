"""Capture-side ingestion.

This module normalizes captured text into entries and buffers them
until the store flushes them into the append-only log.
"""

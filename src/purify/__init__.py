"""Purification layer.

This module chooses and runs deduplication strategies over the stored
log and hands their results to the crash-safe rewrite.
"""

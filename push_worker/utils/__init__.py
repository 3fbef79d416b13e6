"""Utility helpers for reusable functionality."""

from .datetime import ensure_naive_utc, ensure_utc, utc_now

__all__ = [
    "ensure_naive_utc",
    "ensure_utc",
    "utc_now",
]

"""Snapshot of the queue table used for monitoring."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class QueueStatistics:
    total: int = 0
    processed: int = 0
    pending: int = 0
    claimed: int = 0
    oldest_pending: datetime | None = None
    newest: datetime | None = None


__all__ = ["QueueStatistics"]

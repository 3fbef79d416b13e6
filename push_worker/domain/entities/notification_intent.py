"""Domain entity representing a queued notification intent."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class IntentState(str, Enum):
    """Lifecycle position of an intent inside the queue."""

    PENDING = "pending"
    CLAIMED = "claimed"
    PROCESSED = "processed"


@dataclass
class NotificationIntent:
    """Unit of notification work addressed to a single user."""

    id: str | None
    tenant_id: str
    user_id: str
    event_type: str
    title: str
    body: str
    payload: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    claimed_at: datetime | None = None
    claimed_by: str | None = None
    processed_at: datetime | None = None

    @property
    def state(self) -> IntentState:
        """Return the lifecycle state derived from the timestamps."""

        if self.processed_at is not None:
            return IntentState.PROCESSED
        if self.claimed_at is not None:
            return IntentState.CLAIMED
        return IntentState.PENDING


__all__ = ["IntentState", "NotificationIntent"]

"""Value objects describing the outcome of a delivery attempt."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class DeliveryOutcome(str, Enum):
    """Per-token verdict used to reconcile token state."""

    DELIVERED = "delivered"
    TRANSIENT_FAILURE = "transient_failure"
    PERMANENTLY_INVALID_TOKEN = "permanently_invalid_token"


@dataclass(frozen=True)
class TokenDelivery:
    """Outcome of sending one intent to one token."""

    token_id: str
    outcome: DeliveryOutcome
    message_id: str | None = None
    error_code: str | None = None
    error_message: str | None = None


@dataclass
class DeliveryResult:
    """Aggregate outcome of sending one intent to every token of its user."""

    delivered_count: int = 0
    failed_count: int = 0
    invalid_token_ids: list[str] = field(default_factory=list)
    attempts: list[TokenDelivery] = field(default_factory=list)

    @property
    def attempted_count(self) -> int:
        return self.delivered_count + self.failed_count


__all__ = ["DeliveryOutcome", "DeliveryResult", "TokenDelivery"]

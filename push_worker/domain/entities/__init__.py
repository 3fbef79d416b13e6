"""Domain entities exposed by the worker."""

from .delivery import DeliveryOutcome, DeliveryResult, TokenDelivery
from .notification_intent import IntentState, NotificationIntent
from .push_token import Platform, PushToken, is_valid_token
from .queue_statistics import QueueStatistics

__all__ = [
    "DeliveryOutcome",
    "DeliveryResult",
    "TokenDelivery",
    "IntentState",
    "NotificationIntent",
    "Platform",
    "PushToken",
    "is_valid_token",
    "QueueStatistics",
]

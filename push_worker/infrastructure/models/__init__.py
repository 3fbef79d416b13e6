"""ORM models used by the worker infrastructure."""

from .notification_intent import NotificationIntentModel
from .push_token import PushTokenModel

__all__ = [
    "NotificationIntentModel",
    "PushTokenModel",
]

"""Repository implementations for infrastructure layer."""

from .intent_repository import IntentRepository
from .push_token_repository import PushTokenRepository

__all__ = [
    "IntentRepository",
    "PushTokenRepository",
]

"""Aggregate application use cases."""

from .enqueue_intent import enqueue_intent
from .register_token import register_token

__all__ = [
    "enqueue_intent",
    "register_token",
]

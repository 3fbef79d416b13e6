"""Push delivery helpers for the infrastructure layer."""

from .dispatcher import PERMANENT_ERROR_CODES, DeliveryDispatcher, classify
from .payload import sanitize_data_payload
from .transport import PushMessage, PushTransport, SendResult

__all__ = [
    "PERMANENT_ERROR_CODES",
    "DeliveryDispatcher",
    "classify",
    "sanitize_data_payload",
    "PushMessage",
    "PushTransport",
    "SendResult",
]

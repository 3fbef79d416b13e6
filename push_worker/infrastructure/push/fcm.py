"""Firebase Cloud Messaging implementation of the push transport."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

import firebase_admin
from firebase_admin import credentials, exceptions, messaging

from push_worker.config import Settings

from .transport import PushMessage, SendResult

logger = logging.getLogger(__name__)

APP_NAME = "push-worker"
TOKEN_URI = "https://oauth2.googleapis.com/token"
# Upper bound of messages accepted by a single ``send_each`` call.
MAX_MESSAGES_PER_CALL = 500

UNREGISTERED = "registration-token-not-registered"
INVALID_REGISTRATION_TOKEN = "invalid-registration-token"
INVALID_ARGUMENT = "invalid-argument"
SENDER_ID_MISMATCH = "sender-id-mismatch"
QUOTA_EXCEEDED = "quota-exceeded"
UNKNOWN_ERROR = "unknown"

_UNREGISTERED_HINTS = (
    "requested entity was not found",
    "unregistered",
    "not registered",
)


@dataclass(frozen=True)
class DeliveryHints:
    """Platform-specific fields copied verbatim into every message."""

    android_channel_id: str = "push_notifications"
    android_priority: str = "high"
    android_click_action: str | None = "FLUTTER_NOTIFICATION_CLICK"
    apns_sound: str = "default"
    apns_badge: int = 1

    @classmethod
    def from_settings(cls, settings: Settings) -> "DeliveryHints":
        return cls(
            android_channel_id=settings.android_channel_id,
            android_priority=settings.android_priority,
            android_click_action=settings.android_click_action,
        )


def error_code_for(exc: BaseException | None) -> str:
    """Map a Firebase exception to the transport's error code vocabulary."""

    if exc is None:
        return UNKNOWN_ERROR
    if isinstance(exc, messaging.UnregisteredError):
        return UNREGISTERED
    if isinstance(exc, messaging.SenderIdMismatchError):
        return SENDER_ID_MISMATCH
    if isinstance(exc, messaging.QuotaExceededError):
        return QUOTA_EXCEEDED

    message = str(exc).lower()
    if isinstance(exc, exceptions.InvalidArgumentError):
        if "registration token" in message:
            return INVALID_REGISTRATION_TOKEN
        return INVALID_ARGUMENT
    if isinstance(exc, exceptions.NotFoundError) or any(
        hint in message for hint in _UNREGISTERED_HINTS
    ):
        return UNREGISTERED

    code = getattr(exc, "code", None)
    if code:
        return str(code).lower().replace("_", "-")
    return UNKNOWN_ERROR


def build_message(message: PushMessage, hints: DeliveryHints) -> messaging.Message:
    """Return the Firebase message for ``message`` with platform hints applied."""

    return messaging.Message(
        token=message.token,
        notification=messaging.Notification(title=message.title, body=message.body),
        data=dict(message.data),
        android=messaging.AndroidConfig(
            priority=hints.android_priority,
            notification=messaging.AndroidNotification(
                channel_id=hints.android_channel_id,
                default_sound=True,
                default_vibrate_timings=True,
                click_action=hints.android_click_action,
            ),
        ),
        apns=messaging.APNSConfig(
            payload=messaging.APNSPayload(
                aps=messaging.Aps(
                    alert=messaging.ApsAlert(title=message.title, body=message.body),
                    sound=hints.apns_sound,
                    badge=hints.apns_badge,
                    content_available=True,
                )
            )
        ),
    )


def initialize_firebase_app(settings: Settings) -> firebase_admin.App:
    """Return the worker's Firebase app, initialising it on first use."""

    try:
        return firebase_admin.get_app(APP_NAME)
    except ValueError:
        pass

    certificate = credentials.Certificate(
        {
            "type": "service_account",
            "project_id": settings.firebase_project_id,
            "private_key": settings.firebase_private_key,
            "client_email": settings.firebase_client_email,
            "token_uri": TOKEN_URI,
        }
    )
    app = firebase_admin.initialize_app(
        certificate, {"projectId": settings.firebase_project_id}, name=APP_NAME
    )
    logger.info("Firebase app initialised for project %s", settings.firebase_project_id)
    return app


class FirebasePushTransport:
    """Send messages through ``firebase_admin.messaging.send_each``."""

    def __init__(
        self,
        app: firebase_admin.App | None = None,
        *,
        hints: DeliveryHints | None = None,
    ) -> None:
        self._app = app
        self._hints = hints or DeliveryHints()

    @classmethod
    def from_settings(cls, settings: Settings) -> "FirebasePushTransport":
        return cls(
            initialize_firebase_app(settings),
            hints=DeliveryHints.from_settings(settings),
        )

    def send_each(self, messages: Sequence[PushMessage]) -> list[SendResult]:
        results: list[SendResult] = []
        for start in range(0, len(messages), MAX_MESSAGES_PER_CALL):
            chunk = messages[start : start + MAX_MESSAGES_PER_CALL]
            response = messaging.send_each(
                [build_message(message, self._hints) for message in chunk],
                app=self._app,
            )
            for send_response in response.responses:
                if send_response.success:
                    results.append(
                        SendResult(success=True, message_id=send_response.message_id)
                    )
                    continue
                exc = send_response.exception
                results.append(
                    SendResult(
                        success=False,
                        error_code=error_code_for(exc),
                        error_message=str(exc) if exc else None,
                    )
                )
        return results

    def health_check(self) -> bool:
        if self._app is None:
            return False
        return bool(self._app.project_id)


__all__ = [
    "DeliveryHints",
    "FirebasePushTransport",
    "build_message",
    "error_code_for",
    "initialize_firebase_app",
]

"""Use case for queueing a notification intent."""

from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from push_worker.domain.entities import NotificationIntent
from push_worker.infrastructure.repositories import IntentRepository
from push_worker.utils import utc_now

MAX_EVENT_TYPE_LENGTH = 50
MAX_TITLE_LENGTH = 255


def enqueue_intent(
    session: Session,
    *,
    tenant_id: str,
    user_id: str,
    event_type: str,
    title: str,
    body: str,
    payload: dict[str, Any] | None = None,
) -> NotificationIntent:
    """Insert a pending intent for ``user_id`` and return it."""

    event_type = (event_type or "").strip()
    title = (title or "").strip()
    if not event_type or len(event_type) > MAX_EVENT_TYPE_LENGTH:
        msg = f"event_type must contain between 1 and {MAX_EVENT_TYPE_LENGTH} characters"
        raise ValueError(msg)
    if not title or len(title) > MAX_TITLE_LENGTH:
        msg = f"title must contain between 1 and {MAX_TITLE_LENGTH} characters"
        raise ValueError(msg)
    if not body:
        raise ValueError("body is required")
    if not tenant_id or not user_id:
        raise ValueError("tenant_id and user_id are required")

    intent = NotificationIntent(
        id=None,
        tenant_id=tenant_id,
        user_id=user_id,
        event_type=event_type,
        title=title,
        body=body,
        payload=dict(payload or {}),
        created_at=utc_now(),
    )
    return IntentRepository(session).enqueue(intent)

"""SQLAlchemy model for the notification queue table."""

from uuid import uuid4

from sqlalchemy import JSON, Column, DateTime, Index, String, Text

from push_worker.infrastructure.database import Base


def _new_id() -> str:
    return str(uuid4())


class NotificationIntentModel(Base):
    """Database representation of a queued notification intent."""

    __tablename__ = "notification_queue"
    __table_args__ = (
        Index("ix_notification_queue_unclaimed", "processed_at", "claimed_at", "created_at"),
    )

    id = Column(String(36), primary_key=True, default=_new_id)
    tenant_id = Column(String(36), nullable=False, index=True)
    user_id = Column(String(36), nullable=False, index=True)
    event_type = Column(String(50), nullable=False)
    title = Column(String(255), nullable=False)
    body = Column(Text, nullable=False)
    payload = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(), nullable=False)
    claimed_at = Column(DateTime(), nullable=True)
    claimed_by = Column(String(64), nullable=True)
    processed_at = Column(DateTime(), nullable=True)


__all__ = ["NotificationIntentModel"]

"""SQLAlchemy model for device registrations."""

from uuid import uuid4

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Index, String, Text, UniqueConstraint
from sqlalchemy.sql import expression

from push_worker.infrastructure.database import Base


class PushTokenModel(Base):
    """Database representation of a push token owned by a user."""

    __tablename__ = "push_tokens"
    __table_args__ = (
        UniqueConstraint("user_id", "token", name="uq_push_tokens_user_token"),
        CheckConstraint(
            "platform IN ('android', 'ios', 'web')", name="ck_push_tokens_platform"
        ),
        Index("ix_push_tokens_user_active", "user_id", "is_active"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String(36), nullable=False, index=True)
    tenant_id = Column(String(36), nullable=False, index=True)
    token = Column(Text, nullable=False)
    platform = Column(String(20), nullable=False)
    is_active = Column(
        Boolean, nullable=False, default=True, server_default=expression.true()
    )
    created_at = Column(DateTime(), nullable=False)
    updated_at = Column(DateTime(), nullable=False)
    last_used_at = Column(DateTime(), nullable=True)


__all__ = ["PushTokenModel"]

"""Persistence helpers for the notification queue."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.orm import Session

from push_worker.domain.entities import NotificationIntent, QueueStatistics
from push_worker.infrastructure.models import NotificationIntentModel
from push_worker.utils import ensure_naive_utc, ensure_utc, utc_now

_INTENT_COLUMNS = (
    NotificationIntentModel.id,
    NotificationIntentModel.tenant_id,
    NotificationIntentModel.user_id,
    NotificationIntentModel.event_type,
    NotificationIntentModel.title,
    NotificationIntentModel.body,
    NotificationIntentModel.payload,
    NotificationIntentModel.created_at,
    NotificationIntentModel.claimed_at,
    NotificationIntentModel.claimed_by,
    NotificationIntentModel.processed_at,
)


class IntentRepository:
    """Provide the queue operations for :class:`NotificationIntent` objects.

    Every mutating method commits before returning, so a repository bound to
    a short-lived session performs exactly one queue transaction per call.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def enqueue(self, intent: NotificationIntent) -> NotificationIntent:
        model = NotificationIntentModel(
            tenant_id=intent.tenant_id,
            user_id=intent.user_id,
            event_type=intent.event_type,
            title=intent.title,
            body=intent.body,
            payload=intent.payload or {},
            created_at=ensure_naive_utc(intent.created_at or utc_now()),
        )
        if intent.id is not None:
            model.id = intent.id
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def get(self, intent_id: str) -> NotificationIntent | None:
        model = self.session.get(NotificationIntentModel, intent_id)
        return self._to_entity(model) if model else None

    def claim_batch(
        self, limit: int, *, worker_id: str | None = None
    ) -> Sequence[NotificationIntent]:
        """Atomically claim up to ``limit`` pending intents, oldest first.

        The candidate rows are selected ``FOR UPDATE SKIP LOCKED`` inside the
        same statement that stamps ``claimed_at``, so concurrent callers never
        receive the same intent. Dialects without row locks (SQLite) rely on
        the database-wide write lock held by the single ``UPDATE``.
        """

        if limit <= 0:
            return []

        now = ensure_naive_utc(utc_now())
        candidates = (
            select(NotificationIntentModel.id)
            .where(
                NotificationIntentModel.processed_at.is_(None),
                NotificationIntentModel.claimed_at.is_(None),
            )
            .order_by(
                NotificationIntentModel.created_at.asc(),
                NotificationIntentModel.id.asc(),
            )
            .limit(limit)
            .with_for_update(skip_locked=True)
        )
        statement = (
            update(NotificationIntentModel)
            .where(
                NotificationIntentModel.id.in_(candidates),
                NotificationIntentModel.processed_at.is_(None),
                NotificationIntentModel.claimed_at.is_(None),
            )
            .values(claimed_at=now, claimed_by=worker_id)
            .returning(*_INTENT_COLUMNS)
            .execution_options(synchronize_session=False)
        )
        rows = self.session.execute(statement).all()
        self.session.commit()

        intents = [self._row_to_entity(row) for row in rows]
        intents.sort(key=lambda intent: (intent.created_at, intent.id))
        return intents

    def mark_processed(self, intent_id: str) -> bool:
        """Move a claimed intent to processed; ``False`` when nothing changed."""

        result = self.session.execute(
            update(NotificationIntentModel)
            .where(
                NotificationIntentModel.id == intent_id,
                NotificationIntentModel.claimed_at.is_not(None),
                NotificationIntentModel.processed_at.is_(None),
            )
            .values(processed_at=ensure_naive_utc(utc_now()))
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        return result.rowcount == 1

    def reclaim_stuck(self, timeout: timedelta) -> int:
        """Return intents claimed longer than ``timeout`` ago to the pending pool."""

        cutoff = ensure_naive_utc(utc_now() - timeout)
        result = self.session.execute(
            update(NotificationIntentModel)
            .where(
                NotificationIntentModel.processed_at.is_(None),
                NotificationIntentModel.claimed_at.is_not(None),
                NotificationIntentModel.claimed_at < cutoff,
            )
            .values(claimed_at=None, claimed_by=None)
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        return result.rowcount or 0

    def purge_processed_older_than(self, age: timedelta) -> int:
        cutoff = ensure_naive_utc(utc_now() - age)
        result = self.session.execute(
            delete(NotificationIntentModel)
            .where(
                NotificationIntentModel.processed_at.is_not(None),
                NotificationIntentModel.processed_at < cutoff,
            )
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        return result.rowcount or 0

    def statistics(self) -> QueueStatistics:
        unprocessed = NotificationIntentModel.processed_at.is_(None)
        row = self.session.execute(
            select(
                func.count(NotificationIntentModel.id),
                func.sum(case((NotificationIntentModel.processed_at.is_not(None), 1), else_=0)),
                func.sum(
                    case(
                        (unprocessed & NotificationIntentModel.claimed_at.is_(None), 1),
                        else_=0,
                    )
                ),
                func.sum(
                    case(
                        (unprocessed & NotificationIntentModel.claimed_at.is_not(None), 1),
                        else_=0,
                    )
                ),
                func.min(case((unprocessed, NotificationIntentModel.created_at))),
                func.max(NotificationIntentModel.created_at),
            )
        ).one()
        total, processed, pending, claimed, oldest_pending, newest = row
        return QueueStatistics(
            total=int(total or 0),
            processed=int(processed or 0),
            pending=int(pending or 0),
            claimed=int(claimed or 0),
            oldest_pending=ensure_utc(_as_datetime(oldest_pending)),
            newest=ensure_utc(_as_datetime(newest)),
        )

    @staticmethod
    def _row_to_entity(row) -> NotificationIntent:
        return NotificationIntent(
            id=row.id,
            tenant_id=row.tenant_id,
            user_id=row.user_id,
            event_type=row.event_type,
            title=row.title,
            body=row.body,
            payload=dict(row.payload or {}),
            created_at=ensure_utc(row.created_at),
            claimed_at=ensure_utc(row.claimed_at),
            claimed_by=row.claimed_by,
            processed_at=ensure_utc(row.processed_at),
        )

    @staticmethod
    def _to_entity(model: NotificationIntentModel) -> NotificationIntent:
        return IntentRepository._row_to_entity(model)


def _as_datetime(value: object) -> datetime | None:
    # Aggregates over DATETIME columns come back as text on SQLite.
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


__all__ = ["IntentRepository"]

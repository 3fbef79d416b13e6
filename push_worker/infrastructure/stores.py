"""Session-owning adapters over the queue and token repositories.

The dispatch engine calls these from worker threads, so every operation opens
and closes its own session instead of sharing one across threads.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import timedelta

from push_worker.domain.entities import NotificationIntent, PushToken, QueueStatistics
from push_worker.infrastructure.database import SessionFactory
from push_worker.infrastructure.repositories import IntentRepository, PushTokenRepository

DEFAULT_TOKEN_FRESHNESS = timedelta(days=60)


class QueueStore:
    """Queue operations backed by the ``notification_queue`` table."""

    def __init__(self, session_factory: SessionFactory, *, worker_id: str | None = None) -> None:
        self._session_factory = session_factory
        self.worker_id = worker_id

    def claim_batch(self, limit: int) -> Sequence[NotificationIntent]:
        with self._session_factory() as session:
            return IntentRepository(session).claim_batch(limit, worker_id=self.worker_id)

    def mark_processed(self, intent_id: str) -> bool:
        with self._session_factory() as session:
            return IntentRepository(session).mark_processed(intent_id)

    def reclaim_stuck(self, timeout: timedelta) -> int:
        with self._session_factory() as session:
            return IntentRepository(session).reclaim_stuck(timeout)

    def purge_processed_older_than(self, age: timedelta) -> int:
        with self._session_factory() as session:
            return IntentRepository(session).purge_processed_older_than(age)

    def statistics(self) -> QueueStatistics:
        with self._session_factory() as session:
            return IntentRepository(session).statistics()


class TokenDirectory:
    """Recipient lookups and invalidation backed by the ``push_tokens`` table."""

    def __init__(
        self,
        session_factory: SessionFactory,
        *,
        freshness: timedelta = DEFAULT_TOKEN_FRESHNESS,
    ) -> None:
        self._session_factory = session_factory
        self.freshness = freshness

    def active_tokens_for(self, user_id: str) -> Sequence[PushToken]:
        with self._session_factory() as session:
            return PushTokenRepository(session).list_active_for_user(
                user_id, freshness=self.freshness
            )

    def deactivate(self, token_ids: Iterable[str]) -> int:
        with self._session_factory() as session:
            return PushTokenRepository(session).deactivate(token_ids)

    def count_active(self) -> int:
        with self._session_factory() as session:
            return PushTokenRepository(session).count_active()


__all__ = ["QueueStore", "TokenDirectory"]

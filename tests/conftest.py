"""Shared fixtures for the worker test-suite."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta, timezone
from itertools import count

import pytest

from push_worker.domain.entities import NotificationIntent, Platform, PushToken
from push_worker.infrastructure.database import (
    create_database_engine,
    create_session_factory,
    initialize_database,
)
from push_worker.infrastructure.push import PushMessage, SendResult
from push_worker.infrastructure.repositories import IntentRepository, PushTokenRepository
from push_worker.infrastructure.stores import QueueStore, TokenDirectory

BASE_TIME = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

_token_sequence = count(1)


def make_token_value(label: str = "device") -> str:
    """Return a string shaped like a provider registration token."""

    return f"{label}-{next(_token_sequence):04d}:" + "A" * 64


class FakeTransport:
    """In-memory push transport recording every call."""

    def __init__(
        self,
        verdicts: dict[str, SendResult] | None = None,
        *,
        error: Exception | None = None,
    ) -> None:
        self.verdicts = verdicts or {}
        self.error = error
        self.healthy = True
        self.calls: list[list[PushMessage]] = []

    @property
    def sent(self) -> list[PushMessage]:
        return [message for call in self.calls for message in call]

    def send_each(self, messages: Sequence[PushMessage]) -> list[SendResult]:
        self.calls.append(list(messages))
        if self.error is not None:
            raise self.error
        return [
            self.verdicts.get(
                message.token, SendResult(success=True, message_id=f"msg-{index}")
            )
            for index, message in enumerate(messages)
        ]

    def health_check(self) -> bool:
        return self.healthy


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def database_engine(tmp_path):
    engine = create_database_engine(f"sqlite:///{tmp_path / 'worker.db'}")
    initialize_database(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(database_engine):
    return create_session_factory(database_engine)


@pytest.fixture
def session(session_factory):
    with session_factory() as session:
        yield session


@pytest.fixture
def queue_store(session_factory):
    return QueueStore(session_factory, worker_id="worker-test")


@pytest.fixture
def token_directory(session_factory):
    return TokenDirectory(session_factory)


@pytest.fixture
def add_intent(session_factory):
    """Return a helper inserting pending intents with increasing ``created_at``."""

    offsets = count()

    def _add(user_id: str = "user-1", **overrides) -> NotificationIntent:
        values = {
            "id": None,
            "tenant_id": "tenant-1",
            "user_id": user_id,
            "event_type": "order.created",
            "title": "New order",
            "body": "Order #1 was created",
            "payload": {"order_id": 1},
            "created_at": BASE_TIME + timedelta(seconds=next(offsets)),
        }
        values.update(overrides)
        with session_factory() as session:
            return IntentRepository(session).enqueue(NotificationIntent(**values))

    return _add


@pytest.fixture
def add_token(session_factory):
    """Return a helper registering an active token for a user."""

    def _add(
        user_id: str = "user-1",
        *,
        token: str | None = None,
        platform: Platform = Platform.ANDROID,
    ) -> PushToken:
        with session_factory() as session:
            return PushTokenRepository(session).upsert(
                PushToken(
                    id=None,
                    user_id=user_id,
                    tenant_id="tenant-1",
                    token=token or make_token_value(user_id),
                    platform=platform,
                )
            )

    return _add


@pytest.fixture
def transport():
    return FakeTransport()

"""Tests for the notification queue persistence."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

from sqlalchemy import update

from push_worker.domain.entities import IntentState
from push_worker.infrastructure.models import NotificationIntentModel
from push_worker.infrastructure.repositories import IntentRepository
from push_worker.infrastructure.stores import QueueStore
from push_worker.utils import utc_now


def _age_column(session_factory, column: str, intent_id: str, age: timedelta) -> None:
    stamp = (utc_now() - age).replace(tzinfo=None)
    with session_factory() as session:
        session.execute(
            update(NotificationIntentModel)
            .where(NotificationIntentModel.id == intent_id)
            .values({column: stamp})
        )
        session.commit()


def _state_of(session_factory, intent_id: str) -> IntentState:
    with session_factory() as session:
        return IntentRepository(session).get(intent_id).state


def test_enqueue_creates_pending_intent(add_intent) -> None:
    intent = add_intent(payload={"order_id": 7, "nested": {"a": 1}})

    assert intent.id
    assert intent.state is IntentState.PENDING
    assert intent.payload == {"order_id": 7, "nested": {"a": 1}}
    assert intent.created_at.tzinfo is not None


def test_claim_returns_oldest_first_and_respects_limit(queue_store, add_intent) -> None:
    newest = add_intent(created_at=datetime(2024, 1, 3, tzinfo=timezone.utc))
    oldest = add_intent(created_at=datetime(2024, 1, 1, tzinfo=timezone.utc))
    middle = add_intent(created_at=datetime(2024, 1, 2, tzinfo=timezone.utc))

    claimed = queue_store.claim_batch(2)

    assert [intent.id for intent in claimed] == [oldest.id, middle.id]
    assert all(intent.state is IntentState.CLAIMED for intent in claimed)
    assert all(intent.claimed_by == "worker-test" for intent in claimed)
    assert queue_store.claim_batch(2)[0].id == newest.id


def test_claim_on_empty_queue_returns_empty_sequence(queue_store) -> None:
    assert list(queue_store.claim_batch(50)) == []


def test_claim_skips_claimed_and_processed_intents(queue_store, add_intent) -> None:
    first = add_intent()
    queue_store.claim_batch(1)
    queue_store.mark_processed(first.id)
    second = add_intent()

    claimed = queue_store.claim_batch(10)

    assert [intent.id for intent in claimed] == [second.id]
    assert list(queue_store.claim_batch(10)) == []


def test_mark_processed_is_idempotent(queue_store, add_intent, session_factory) -> None:
    intent = add_intent()
    queue_store.claim_batch(1)

    assert queue_store.mark_processed(intent.id) is True
    assert queue_store.mark_processed(intent.id) is False
    assert _state_of(session_factory, intent.id) is IntentState.PROCESSED


def test_mark_processed_ignores_unclaimed_or_unknown_intents(queue_store, add_intent) -> None:
    intent = add_intent()

    assert queue_store.mark_processed(intent.id) is False
    assert queue_store.mark_processed("missing-intent") is False


def test_reclaim_returns_only_expired_claims(queue_store, add_intent, session_factory) -> None:
    stale = add_intent()
    fresh = add_intent()
    queue_store.claim_batch(2)
    _age_column(session_factory, "claimed_at", stale.id, timedelta(minutes=45))

    assert queue_store.reclaim_stuck(timedelta(minutes=30)) == 1

    with session_factory() as session:
        repository = IntentRepository(session)
        reclaimed = repository.get(stale.id)
        assert reclaimed.state is IntentState.PENDING
        assert reclaimed.claimed_by is None
        assert repository.get(fresh.id).state is IntentState.CLAIMED


def test_reclaim_never_touches_processed_intents(queue_store, add_intent, session_factory) -> None:
    intent = add_intent()
    queue_store.claim_batch(1)
    queue_store.mark_processed(intent.id)
    _age_column(session_factory, "claimed_at", intent.id, timedelta(hours=2))

    assert queue_store.reclaim_stuck(timedelta(minutes=30)) == 0
    assert _state_of(session_factory, intent.id) is IntentState.PROCESSED


def test_purge_deletes_only_old_processed_intents(queue_store, add_intent, session_factory) -> None:
    old = add_intent()
    recent = add_intent()
    pending = add_intent()
    queue_store.claim_batch(2)
    queue_store.mark_processed(old.id)
    queue_store.mark_processed(recent.id)
    _age_column(session_factory, "processed_at", old.id, timedelta(days=8))

    assert queue_store.purge_processed_older_than(timedelta(days=7)) == 1

    with session_factory() as session:
        repository = IntentRepository(session)
        assert repository.get(old.id) is None
        assert repository.get(recent.id) is not None
        assert repository.get(pending.id) is not None


def test_statistics_counts_each_state(queue_store, add_intent) -> None:
    first = add_intent()
    add_intent()
    add_intent()
    add_intent()
    queue_store.claim_batch(2)
    queue_store.mark_processed(first.id)

    statistics = queue_store.statistics()

    assert statistics.total == 4
    assert statistics.processed == 1
    assert statistics.claimed == 1
    assert statistics.pending == 2
    assert statistics.oldest_pending is not None
    assert statistics.newest >= statistics.oldest_pending


def test_statistics_on_empty_queue(queue_store) -> None:
    statistics = queue_store.statistics()

    assert statistics.total == 0
    assert statistics.oldest_pending is None
    assert statistics.newest is None


def test_single_claim_of_fifty_leaves_remaining_intents_pending(queue_store, add_intent) -> None:
    for _ in range(60):
        add_intent()

    claimed = queue_store.claim_batch(50)
    statistics = queue_store.statistics()

    assert len({intent.id for intent in claimed}) == 50
    assert statistics.claimed == 50
    assert statistics.pending == 10


def test_concurrent_claims_never_overlap(session_factory, add_intent) -> None:
    for _ in range(60):
        add_intent()
    stores = [
        QueueStore(session_factory, worker_id="worker-a"),
        QueueStore(session_factory, worker_id="worker-b"),
    ]
    barrier = threading.Barrier(len(stores))

    def claim(store: QueueStore):
        barrier.wait()
        return store.claim_batch(50)

    with ThreadPoolExecutor(max_workers=len(stores)) as executor:
        batches = list(executor.map(claim, stores))

    first, second = ({intent.id for intent in batch} for batch in batches)
    assert not first & second
    assert sorted([len(first), len(second)]) == [10, 50]
    assert stores[0].statistics().pending == 0

"""Tests for the dispatch counters."""

from __future__ import annotations

from push_worker.application.dispatch import DispatchStats


def test_record_item_updates_counters() -> None:
    stats = DispatchStats()

    stats.record_item(succeeded=True, delivered=2, failed_deliveries=1, tokens_deactivated=1)
    stats.record_item(succeeded=False)

    snapshot = stats.snapshot()
    assert snapshot.processed == 1
    assert snapshot.failed == 1
    assert snapshot.deliveries_attempted == 3
    assert snapshot.deliveries_succeeded == 2
    assert snapshot.deliveries_failed == 1
    assert snapshot.tokens_deactivated == 1


def test_snapshot_is_detached_from_later_updates() -> None:
    stats = DispatchStats()
    stats.mark_started()
    snapshot = stats.snapshot()

    stats.record_item(succeeded=True)
    stats.mark_stopped()

    assert snapshot.processed == 0
    assert snapshot.running is True
    assert stats.snapshot().running is False


def test_as_dict_is_json_friendly() -> None:
    stats = DispatchStats()
    stats.record_cycle()
    stats.record_cycle_error()

    data = stats.snapshot().as_dict()

    assert data["cycles"] == 1
    assert data["cycle_errors"] == 1
    assert isinstance(data["started_at"], str)
    assert data["process_rate_per_minute"] >= 0

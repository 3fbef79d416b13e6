"""Tests for the periodic reclaim and retention sweeps."""

from __future__ import annotations

from datetime import timedelta
from types import SimpleNamespace

import anyio
import pytest
from sqlalchemy.exc import OperationalError

from push_worker.application.maintenance import MaintenanceOptions, MaintenanceScheduler

pytestmark = pytest.mark.anyio


class RecordingStore:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.reclaims: list[timedelta] = []
        self.purges: list[timedelta] = []

    def reclaim_stuck(self, timeout: timedelta) -> int:
        self.reclaims.append(timeout)
        if self.fail:
            raise OperationalError("UPDATE", {}, Exception("server closed the connection"))
        return 2

    def purge_processed_older_than(self, age: timedelta) -> int:
        self.purges.append(age)
        if self.fail:
            raise OperationalError("DELETE", {}, Exception("server closed the connection"))
        return 5


async def test_sweeps_use_configured_windows() -> None:
    store = RecordingStore()
    scheduler = MaintenanceScheduler(
        store,
        MaintenanceOptions(claim_timeout=timedelta(minutes=30), retention=timedelta(days=7)),
    )

    assert await scheduler.reclaim_once() == 2
    assert await scheduler.purge_once() == 5
    assert store.reclaims == [timedelta(minutes=30)]
    assert store.purges == [timedelta(days=7)]


async def test_sweep_errors_are_swallowed() -> None:
    scheduler = MaintenanceScheduler(RecordingStore(fail=True))

    assert await scheduler.reclaim_once() == 0
    assert await scheduler.purge_once() == 0


async def test_run_repeats_sweeps_until_stopped() -> None:
    store = RecordingStore()
    scheduler = MaintenanceScheduler(
        store, MaintenanceOptions(reclaim_interval=0.01, cleanup_interval=0.02)
    )

    with anyio.fail_after(5):
        async with anyio.create_task_group() as task_group:
            await task_group.start(scheduler.run)
            while len(store.reclaims) < 3 or len(store.purges) < 2:
                await anyio.sleep(0.01)
            scheduler.stop()

    assert len(store.reclaims) >= 3
    assert len(store.purges) >= 2


async def test_sweeps_wait_one_period_before_running() -> None:
    store = RecordingStore()
    scheduler = MaintenanceScheduler(
        store, MaintenanceOptions(reclaim_interval=60, cleanup_interval=60)
    )

    async with anyio.create_task_group() as task_group:
        await task_group.start(scheduler.run)
        await anyio.sleep(0.05)
        scheduler.stop()

    assert store.reclaims == []
    assert store.purges == []


def test_options_from_settings() -> None:
    settings = SimpleNamespace(
        claim_timeout_minutes=20,
        reclaim_interval_minutes=5,
        retention_days=3,
        cleanup_interval_minutes=30,
    )

    options = MaintenanceOptions.from_settings(settings)

    assert options.claim_timeout == timedelta(minutes=20)
    assert options.reclaim_interval == 300
    assert options.retention == timedelta(days=3)
    assert options.cleanup_interval == 1800

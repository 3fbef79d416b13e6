"""Periodic recovery and retention sweeps over the queue."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import timedelta
from typing import Protocol

import anyio
from anyio import to_thread
from anyio.abc import TaskStatus

from push_worker.config import Settings

logger = logging.getLogger(__name__)


class MaintenanceStore(Protocol):
    def reclaim_stuck(self, timeout: timedelta) -> int: ...

    def purge_processed_older_than(self, age: timedelta) -> int: ...


@dataclass(frozen=True)
class MaintenanceOptions:
    claim_timeout: timedelta = timedelta(minutes=30)
    reclaim_interval: float = 600.0
    retention: timedelta = timedelta(days=7)
    cleanup_interval: float = 3600.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "MaintenanceOptions":
        return cls(
            claim_timeout=timedelta(minutes=settings.claim_timeout_minutes),
            reclaim_interval=settings.reclaim_interval_minutes * 60.0,
            retention=timedelta(days=settings.retention_days),
            cleanup_interval=settings.cleanup_interval_minutes * 60.0,
        )


class MaintenanceScheduler:
    """Run the reclaim and purge sweeps on their own periods.

    The sweeps live outside the poll loop so a slow dispatch cycle never
    delays them. Both are best effort: errors are logged and the next period
    tries again.
    """

    def __init__(self, queue_store: MaintenanceStore, options: MaintenanceOptions | None = None) -> None:
        self._queue = queue_store
        self.options = options or MaintenanceOptions()
        self._scope: anyio.CancelScope | None = None

    async def reclaim_once(self) -> int:
        try:
            count = await to_thread.run_sync(self._queue.reclaim_stuck, self.options.claim_timeout)
        except Exception:
            logger.exception("Reclaim sweep failed")
            return 0
        if count:
            logger.info("Reclaimed %d stuck intents", count)
        return count

    async def purge_once(self) -> int:
        try:
            count = await to_thread.run_sync(
                self._queue.purge_processed_older_than, self.options.retention
            )
        except Exception:
            logger.exception("Retention sweep failed")
            return 0
        if count:
            logger.info("Purged %d processed intents older than %s", count, self.options.retention)
        return count

    async def run(self, *, task_status: TaskStatus[None] = anyio.TASK_STATUS_IGNORED) -> None:
        with anyio.CancelScope() as scope:
            self._scope = scope
            async with anyio.create_task_group() as task_group:
                task_group.start_soon(self._every, self.options.reclaim_interval, self.reclaim_once)
                task_group.start_soon(self._every, self.options.cleanup_interval, self.purge_once)
                task_status.started()
        self._scope = None
        logger.info("Maintenance scheduler stopped")

    def stop(self) -> None:
        if self._scope is not None:
            self._scope.cancel()

    @staticmethod
    async def _every(period: float, sweep: Callable[[], Awaitable[int]]) -> None:
        while True:
            await anyio.sleep(period)
            await sweep()


__all__ = ["MaintenanceOptions", "MaintenanceScheduler"]

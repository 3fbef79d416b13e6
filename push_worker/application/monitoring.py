"""Health checks and periodic heartbeat reporting."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol

import anyio
from anyio import to_thread

from push_worker.domain.entities import QueueStatistics
from push_worker.utils import utc_now

from .dispatch.stats import DispatchStats

logger = logging.getLogger(__name__)


class StatisticsSource(Protocol):
    def statistics(self) -> QueueStatistics: ...


class TokenCounter(Protocol):
    def count_active(self) -> int: ...


class TransportProbe(Protocol):
    def health_check(self) -> bool: ...


@dataclass(frozen=True)
class ComponentHealth:
    name: str
    healthy: bool
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class HealthReport:
    healthy: bool
    running: bool
    worker_id: str | None
    checked_at: datetime
    components: tuple[ComponentHealth, ...] = ()


class HealthMonitor:
    """Read-only view over the worker's counters and collaborators.

    The monitor never holds the engine itself; it only reads the stats
    accumulator the engine writes to.
    """

    def __init__(
        self,
        stats: DispatchStats,
        queue_store: StatisticsSource,
        token_directory: TokenCounter,
        transport: TransportProbe,
        *,
        worker_id: str | None = None,
        report_interval: float = 60.0,
        backlog_warning_threshold: int = 1000,
        stuck_warning_threshold: int = 100,
    ) -> None:
        self._stats = stats
        self._queue = queue_store
        self._tokens = token_directory
        self._transport = transport
        self.worker_id = worker_id
        self.report_interval = report_interval
        self.backlog_warning_threshold = backlog_warning_threshold
        self.stuck_warning_threshold = stuck_warning_threshold

    def check(self) -> HealthReport:
        """Probe the database and the transport."""

        components = (self._check_database(), self._check_transport())
        running = self._stats.running
        return HealthReport(
            healthy=running and all(component.healthy for component in components),
            running=running,
            worker_id=self.worker_id,
            checked_at=utc_now(),
            components=components,
        )

    def metrics(self) -> dict[str, Any]:
        snapshot = self._stats.snapshot().as_dict()
        snapshot["worker_id"] = self.worker_id
        try:
            queue: dict[str, Any] = _statistics_to_dict(self._queue.statistics())
        except Exception as exc:
            logger.error("Failed to read queue statistics: %s", exc)
            queue = {"error": str(exc)}
        return {"worker": snapshot, "queue": queue, "timestamp": utc_now().isoformat()}

    def report(self) -> None:
        """Log a heartbeat line and warn about backlog or stuck work."""

        snapshot = self._stats.snapshot()
        try:
            queue = self._queue.statistics()
        except Exception as exc:
            logger.error("Health report could not read queue statistics: %s", exc)
            return

        logger.info(
            "Heartbeat - uptime %ds, pending %d, claimed %d, processed %d, failed %d, "
            "tokens deactivated %d",
            snapshot.uptime_seconds,
            queue.pending,
            queue.claimed,
            snapshot.processed,
            snapshot.failed,
            snapshot.tokens_deactivated,
        )
        for component in (self._check_database(), self._check_transport()):
            if not component.healthy:
                logger.error("%s health check failed: %s", component.name, component.details)
        if queue.pending > self.backlog_warning_threshold:
            logger.warning("High queue backlog: %d pending intents", queue.pending)
        if queue.claimed > self.stuck_warning_threshold:
            logger.warning("Many intents claimed but unprocessed: %d", queue.claimed)

    async def run(self) -> None:
        while True:
            await anyio.sleep(self.report_interval)
            if not self._stats.running:
                continue
            try:
                await to_thread.run_sync(self.report)
            except Exception:
                logger.exception("Health monitoring error")

    def _check_database(self) -> ComponentHealth:
        try:
            queue = self._queue.statistics()
            active_tokens = self._tokens.count_active()
        except Exception as exc:
            return ComponentHealth("database", False, {"error": str(exc)})
        return ComponentHealth(
            "database",
            True,
            {"total_intents": queue.total, "active_tokens": active_tokens},
        )

    def _check_transport(self) -> ComponentHealth:
        try:
            healthy = bool(self._transport.health_check())
        except Exception as exc:
            return ComponentHealth("transport", False, {"error": str(exc)})
        return ComponentHealth("transport", healthy)


def _statistics_to_dict(statistics: QueueStatistics) -> dict[str, Any]:
    return {
        "total": statistics.total,
        "processed": statistics.processed,
        "pending": statistics.pending,
        "claimed": statistics.claimed,
        "oldest_pending": statistics.oldest_pending.isoformat()
        if statistics.oldest_pending
        else None,
        "newest": statistics.newest.isoformat() if statistics.newest else None,
    }


__all__ = ["ComponentHealth", "HealthMonitor", "HealthReport"]

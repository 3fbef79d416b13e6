"""Running counters owned by a dispatch engine."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from push_worker.utils import utc_now


@dataclass(frozen=True)
class StatsSnapshot:
    """Read-only copy of the counters at a point in time."""

    processed: int
    failed: int
    tokens_deactivated: int
    deliveries_attempted: int
    deliveries_succeeded: int
    deliveries_failed: int
    cycles: int
    cycle_errors: int
    running: bool
    started_at: datetime
    uptime_seconds: int

    @property
    def process_rate_per_minute(self) -> float:
        return self.processed / max(1, self.uptime_seconds) * 60

    def as_dict(self) -> dict[str, object]:
        return {
            "processed": self.processed,
            "failed": self.failed,
            "tokens_deactivated": self.tokens_deactivated,
            "deliveries_attempted": self.deliveries_attempted,
            "deliveries_succeeded": self.deliveries_succeeded,
            "deliveries_failed": self.deliveries_failed,
            "cycles": self.cycles,
            "cycle_errors": self.cycle_errors,
            "running": self.running,
            "started_at": self.started_at.isoformat(),
            "uptime_seconds": self.uptime_seconds,
            "process_rate_per_minute": round(self.process_rate_per_minute, 2),
        }


class DispatchStats:
    """Counters mutated by the engine and read through :meth:`snapshot`.

    Updates happen on the event loop thread only.
    """

    def __init__(self) -> None:
        self.processed = 0
        self.failed = 0
        self.tokens_deactivated = 0
        self.deliveries_attempted = 0
        self.deliveries_succeeded = 0
        self.deliveries_failed = 0
        self.cycles = 0
        self.cycle_errors = 0
        self.running = False
        self.started_at = utc_now()

    def mark_started(self) -> None:
        self.running = True
        self.started_at = utc_now()

    def mark_stopped(self) -> None:
        self.running = False

    def record_item(
        self,
        *,
        succeeded: bool,
        delivered: int = 0,
        failed_deliveries: int = 0,
        tokens_deactivated: int = 0,
    ) -> None:
        if succeeded:
            self.processed += 1
        else:
            self.failed += 1
        self.deliveries_attempted += delivered + failed_deliveries
        self.deliveries_succeeded += delivered
        self.deliveries_failed += failed_deliveries
        self.tokens_deactivated += tokens_deactivated

    def record_cycle(self) -> None:
        self.cycles += 1

    def record_cycle_error(self) -> None:
        self.cycle_errors += 1

    def snapshot(self) -> StatsSnapshot:
        uptime = max(0, int((utc_now() - self.started_at).total_seconds()))
        return StatsSnapshot(
            processed=self.processed,
            failed=self.failed,
            tokens_deactivated=self.tokens_deactivated,
            deliveries_attempted=self.deliveries_attempted,
            deliveries_succeeded=self.deliveries_succeeded,
            deliveries_failed=self.deliveries_failed,
            cycles=self.cycles,
            cycle_errors=self.cycle_errors,
            running=self.running,
            started_at=self.started_at,
            uptime_seconds=uptime,
        )


__all__ = ["DispatchStats", "StatsSnapshot"]

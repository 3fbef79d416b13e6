"""Process-level supervisor wiring the engine, sweeps and health reporting."""

from __future__ import annotations

import logging
import signal
from datetime import timedelta
from uuid import uuid4

import anyio
from anyio.abc import TaskGroup
from sqlalchemy.engine import Engine

from push_worker.application.dispatch import DispatchEngine, DispatchStats, EngineOptions
from push_worker.application.maintenance import MaintenanceOptions, MaintenanceScheduler
from push_worker.application.monitoring import HealthMonitor
from push_worker.config import Settings
from push_worker.infrastructure.database import (
    create_session_factory,
    engine_from_settings,
    initialize_database,
)
from push_worker.infrastructure.push import DeliveryDispatcher
from push_worker.infrastructure.push.fcm import FirebasePushTransport
from push_worker.infrastructure.stores import QueueStore, TokenDirectory
from push_worker.interfaces.api.app import HealthServer, create_health_server

logger = logging.getLogger(__name__)


def generate_worker_id() -> str:
    return f"worker-{uuid4().hex[:12]}"


class NotificationWorker:
    """Run one dispatch engine until SIGINT or SIGTERM is received.

    On a signal the maintenance sweeps stop, the engine drains for up to
    ``shutdown_grace`` seconds and everything still running is then
    cancelled. Items already started are shielded by the engine and finish
    regardless.
    """

    def __init__(
        self,
        engine: DispatchEngine,
        scheduler: MaintenanceScheduler,
        monitor: HealthMonitor,
        *,
        worker_id: str,
        shutdown_grace: float = 5.0,
        health_server: HealthServer | None = None,
        database_engine: Engine | None = None,
    ) -> None:
        self.engine = engine
        self.scheduler = scheduler
        self.monitor = monitor
        self.worker_id = worker_id
        self.shutdown_grace = shutdown_grace
        self.health_server = health_server
        self._database_engine = database_engine
        self._task_group: TaskGroup | None = None
        self._shutting_down = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "NotificationWorker":
        """Build a worker and all of its collaborators from ``settings``."""

        worker_id = settings.worker_id or generate_worker_id()

        database_engine = engine_from_settings(settings)
        initialize_database(database_engine)
        session_factory = create_session_factory(database_engine)

        queue_store = QueueStore(session_factory, worker_id=worker_id)
        token_directory = TokenDirectory(
            session_factory,
            freshness=timedelta(days=settings.token_freshness_days),
        )
        transport = FirebasePushTransport.from_settings(settings)
        dispatcher = DeliveryDispatcher(
            transport,
            max_value_length=settings.payload_max_value_length,
            max_total_size=settings.payload_max_total_size,
        )

        stats = DispatchStats()
        engine = DispatchEngine(
            queue_store,
            token_directory,
            dispatcher,
            stats=stats,
            options=EngineOptions.from_settings(settings),
        )
        scheduler = MaintenanceScheduler(queue_store, MaintenanceOptions.from_settings(settings))
        monitor = HealthMonitor(
            stats,
            queue_store,
            token_directory,
            transport,
            worker_id=worker_id,
            report_interval=settings.health_report_interval_seconds,
            backlog_warning_threshold=settings.backlog_warning_threshold,
            stuck_warning_threshold=settings.stuck_warning_threshold,
        )

        health_server = None
        if settings.enable_health_server:
            health_server = create_health_server(
                monitor, host=settings.health_host, port=settings.health_port
            )

        return cls(
            engine,
            scheduler,
            monitor,
            worker_id=worker_id,
            shutdown_grace=settings.shutdown_grace_seconds,
            health_server=health_server,
            database_engine=database_engine,
        )

    async def run(self) -> None:
        logger.info("Starting notification worker %s", self.worker_id)
        try:
            async with anyio.create_task_group() as task_group:
                self._task_group = task_group
                task_group.start_soon(self._watch_signals)
                await task_group.start(self.scheduler.run)
                task_group.start_soon(self.monitor.run)
                if self.health_server is not None:
                    task_group.start_soon(self.health_server.serve)
                    logger.info(
                        "Health server listening on %s:%d",
                        self.health_server.config.host,
                        self.health_server.config.port,
                    )

                await self.engine.run()
                task_group.cancel_scope.cancel()
        finally:
            self._task_group = None
            self._log_final_stats()
            if self._database_engine is not None:
                self._database_engine.dispose()
            logger.info("Notification worker %s stopped", self.worker_id)

    async def shutdown(self) -> None:
        """Drain the engine, then cancel whatever is still running."""

        if self._shutting_down:
            return
        self._shutting_down = True
        logger.info("Shutting down notification worker %s", self.worker_id)

        self.scheduler.stop()
        if self.health_server is not None:
            self.health_server.should_exit = True

        drained = await self.engine.shutdown(self.shutdown_grace)
        if not drained and self._task_group is not None:
            logger.warning("Forcing shutdown after %.1fs grace period", self.shutdown_grace)
            self._task_group.cancel_scope.cancel()

    async def _watch_signals(self) -> None:
        with anyio.open_signal_receiver(signal.SIGINT, signal.SIGTERM) as signals:
            async for signum in signals:
                logger.info("Received %s", signal.Signals(signum).name)
                await self.shutdown()
                return

    def _log_final_stats(self) -> None:
        snapshot = self.engine.stats.snapshot()
        logger.info(
            "Final stats - processed %d, failed %d, tokens deactivated %d, uptime %ds",
            snapshot.processed,
            snapshot.failed,
            snapshot.tokens_deactivated,
            snapshot.uptime_seconds,
        )


__all__ = ["NotificationWorker", "generate_worker_id"]

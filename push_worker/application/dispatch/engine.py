"""Claim, dispatch and reconcile loop driving notification delivery."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Any, Protocol, TypeVar

import anyio
from anyio import to_thread
from anyio.abc import TaskStatus
from sqlalchemy.exc import SQLAlchemyError

from push_worker.config import Settings
from push_worker.domain.entities import DeliveryResult, NotificationIntent, PushToken

from .stats import DispatchStats

logger = logging.getLogger(__name__)

T = TypeVar("T")


class QueueStorePort(Protocol):
    def claim_batch(self, limit: int) -> Sequence[NotificationIntent]: ...

    def mark_processed(self, intent_id: str) -> bool: ...

    def reclaim_stuck(self, timeout: timedelta) -> int: ...


class TokenDirectoryPort(Protocol):
    def active_tokens_for(self, user_id: str) -> Sequence[PushToken]: ...

    def deactivate(self, token_ids: Iterable[str]) -> int: ...


class DispatcherPort(Protocol):
    def dispatch(
        self, intent: NotificationIntent, tokens: Sequence[PushToken]
    ) -> DeliveryResult: ...


class EngineState(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"
    DRAINING = "draining"


@dataclass(frozen=True)
class EngineOptions:
    """Tuning values for :class:`DispatchEngine`."""

    batch_size: int = 50
    poll_interval: float = 5.0
    claim_timeout: timedelta = timedelta(minutes=30)
    error_backoff_factor: float = 2.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "EngineOptions":
        return cls(
            batch_size=settings.batch_size,
            poll_interval=settings.poll_interval_ms / 1000,
            claim_timeout=timedelta(minutes=settings.claim_timeout_minutes),
        )


@dataclass(frozen=True)
class ItemOutcome:
    """What happened to one claimed intent during a cycle."""

    intent_id: str
    marked: bool
    delivered: int = 0
    failed: int = 0
    tokens_deactivated: int = 0
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class CycleSummary:
    claimed: int
    outcomes: tuple[ItemOutcome, ...] = ()

    @property
    def succeeded(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.succeeded)

    @property
    def failed(self) -> int:
        return len(self.outcomes) - self.succeeded

    @property
    def tokens_deactivated(self) -> int:
        return sum(outcome.tokens_deactivated for outcome in self.outcomes)


class DispatchEngine:
    """Pull claimed intents from the queue and deliver them concurrently.

    Several engines may share one queue; the store's atomic claim is the only
    coordination between them. Within an engine the poll loop is sequential
    while the items of a batch are processed concurrently, and the loop waits
    for every item to settle before sleeping again.

    Each item always ends with ``mark_processed``, even when delivery failed,
    so an unreachable recipient cannot block the queue. Delivery is therefore
    best effort: at least one attempt, not at least one success.
    """

    def __init__(
        self,
        queue_store: QueueStorePort,
        token_directory: TokenDirectoryPort,
        dispatcher: DispatcherPort,
        *,
        stats: DispatchStats | None = None,
        options: EngineOptions | None = None,
    ) -> None:
        self._queue = queue_store
        self._tokens = token_directory
        self._dispatcher = dispatcher
        self.stats = stats if stats is not None else DispatchStats()
        self.options = options or EngineOptions()
        self._state = EngineState.STOPPED
        self._shutdown_requested = False
        self._idle_scope: anyio.CancelScope | None = None
        self._stopped: anyio.Event | None = None
        self._limiter: anyio.CapacityLimiter | None = None

    @property
    def state(self) -> EngineState:
        return self._state

    async def run(self, *, task_status: TaskStatus[None] = anyio.TASK_STATUS_IGNORED) -> None:
        """Recover abandoned work, then poll until shutdown is requested."""

        if self._state is not EngineState.STOPPED:
            raise RuntimeError("Dispatch engine is already running")

        self._stopped = anyio.Event()
        self._shutdown_requested = False
        try:
            await self.recover_abandoned_work()
            if not self._shutdown_requested:
                self._state = EngineState.RUNNING
                self.stats.mark_started()
                logger.info(
                    "Dispatch engine running (batch size %d, poll interval %.2fs)",
                    self.options.batch_size,
                    self.options.poll_interval,
                )
            task_status.started()

            while self._state is EngineState.RUNNING:
                delay = self.options.poll_interval
                try:
                    await self.run_cycle()
                except SQLAlchemyError as exc:
                    self.stats.record_cycle_error()
                    delay *= self.options.error_backoff_factor
                    logger.warning("Queue store error, backing off %.2fs: %s", delay, exc)
                except Exception:
                    self.stats.record_cycle_error()
                    delay *= self.options.error_backoff_factor
                    logger.exception("Unexpected error in dispatch cycle, backing off %.2fs", delay)

                if self._state is not EngineState.RUNNING:
                    break
                await self._idle(delay)
        finally:
            self._state = EngineState.STOPPED
            self.stats.mark_stopped()
            self._stopped.set()
            logger.info("Dispatch engine stopped")

    def request_shutdown(self) -> None:
        """Stop claiming new batches; in-flight items are allowed to finish."""

        self._shutdown_requested = True
        if self._state is not EngineState.RUNNING:
            return
        self._state = EngineState.DRAINING
        logger.info("Dispatch engine draining")
        if self._idle_scope is not None:
            self._idle_scope.cancel()

    async def wait_stopped(self) -> None:
        if self._stopped is None or self._state is EngineState.STOPPED:
            return
        await self._stopped.wait()

    async def shutdown(self, grace_period: float) -> bool:
        """Request shutdown and wait up to ``grace_period`` seconds for the drain.

        Returns ``False`` when the engine was still busy when the grace period
        ran out; the caller is then expected to cancel :meth:`run`.
        """

        self.request_shutdown()
        with anyio.move_on_after(grace_period):
            await self.wait_stopped()
            return True
        logger.warning("Dispatch engine did not drain within %.1fs", grace_period)
        return False

    async def recover_abandoned_work(self) -> int:
        """Return intents abandoned by crashed workers to the pending pool."""

        try:
            count = await self._in_thread(self._queue.reclaim_stuck, self.options.claim_timeout)
        except Exception:
            logger.exception("Failed to reclaim stuck intents")
            return 0
        if count:
            logger.info("Reclaimed %d stuck intents", count)
        return count

    async def run_cycle(self) -> CycleSummary:
        """Claim one batch and wait until every claimed item has settled."""

        intents = await self._in_thread(self._queue.claim_batch, self.options.batch_size)
        self.stats.record_cycle()
        if not intents:
            return CycleSummary(claimed=0)

        logger.info("Processing batch of %d intents", len(intents))
        outcomes: list[ItemOutcome] = []
        async with anyio.create_task_group() as task_group:
            for intent in intents:
                task_group.start_soon(self._settle, intent, outcomes)

        summary = CycleSummary(claimed=len(intents), outcomes=tuple(outcomes))
        if summary.failed:
            logger.warning(
                "Batch completed: %d succeeded, %d failed", summary.succeeded, summary.failed
            )
        return summary

    async def process_intent(self, intent: NotificationIntent) -> ItemOutcome:
        """Deliver ``intent`` and mark it processed whatever the delivery result."""

        delivered = failed = deactivated = 0
        error: str | None = None
        try:
            tokens = await self._in_thread(self._tokens.active_tokens_for, intent.user_id)
            if not tokens:
                logger.info(
                    "No active tokens for user %s, skipping delivery of intent %s",
                    intent.user_id,
                    intent.id,
                )
            else:
                result = await self._in_thread(self._dispatcher.dispatch, intent, tokens)
                delivered, failed = result.delivered_count, result.failed_count
                logger.info(
                    'Sent "%s" to %d tokens: %d delivered, %d failed',
                    intent.title,
                    len(tokens),
                    delivered,
                    failed,
                )
                if result.invalid_token_ids:
                    deactivated = await self._deactivate(result.invalid_token_ids)
        except Exception as exc:
            error = f"{type(exc).__name__}: {exc}"
            logger.exception("Error processing intent %s", intent.id)

        marked = False
        try:
            marked = await self._in_thread(self._queue.mark_processed, intent.id)
        except Exception as exc:
            error = error or f"{type(exc).__name__}: {exc}"
            logger.exception(
                "Failed to mark intent %s processed; it stays claimed until reclaimed",
                intent.id,
            )
        else:
            if not marked:
                logger.warning("Intent %s was no longer claimed when marking it processed", intent.id)

        return ItemOutcome(
            intent_id=intent.id,
            marked=marked,
            delivered=delivered,
            failed=failed,
            tokens_deactivated=deactivated,
            error=error,
        )

    async def _settle(self, intent: NotificationIntent, outcomes: list[ItemOutcome]) -> None:
        # A started item always runs to completion, even when the loop is cancelled.
        with anyio.CancelScope(shield=True):
            outcome = await self.process_intent(intent)
            outcomes.append(outcome)
            self.stats.record_item(
                succeeded=outcome.succeeded,
                delivered=outcome.delivered,
                failed_deliveries=outcome.failed,
                tokens_deactivated=outcome.tokens_deactivated,
            )

    async def _deactivate(self, token_ids: Sequence[str]) -> int:
        try:
            count = await self._in_thread(self._tokens.deactivate, list(token_ids))
        except Exception:
            logger.exception("Failed to deactivate %d invalid tokens", len(token_ids))
            return 0
        logger.info("Deactivated %d invalid tokens", count)
        return count

    async def _idle(self, delay: float) -> None:
        with anyio.CancelScope() as scope:
            self._idle_scope = scope
            await anyio.sleep(delay)
        self._idle_scope = None

    async def _in_thread(self, func: Callable[..., T], *args: Any) -> T:
        if self._limiter is None:
            self._limiter = anyio.CapacityLimiter(self.options.batch_size)
        return await to_thread.run_sync(func, *args, limiter=self._limiter)


__all__ = [
    "CycleSummary",
    "DispatchEngine",
    "EngineOptions",
    "EngineState",
    "ItemOutcome",
]

"""Read-only health and metrics endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Response, status

from push_worker.application.monitoring import HealthMonitor
from push_worker.interfaces.api.dependencies import get_health_monitor
from push_worker.interfaces.api.schemas import ComponentStatus, HealthResponse, WorkerStatus

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
def health(
    response: Response,
    monitor: HealthMonitor = Depends(get_health_monitor),
) -> HealthResponse:
    """Return 200 when the worker runs and its collaborators respond, else 503."""

    report = monitor.check()
    if not report.healthy:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return HealthResponse(
        status="healthy" if report.healthy else "unhealthy",
        timestamp=report.checked_at,
        worker=WorkerStatus(running=report.running, worker_id=report.worker_id),
        components=[
            ComponentStatus(
                name=component.name,
                healthy=component.healthy,
                details=component.details,
            )
            for component in report.components
        ],
    )


@router.get("/metrics")
def metrics(monitor: HealthMonitor = Depends(get_health_monitor)) -> dict[str, Any]:
    """Return the running counters and the current queue statistics."""

    return monitor.metrics()

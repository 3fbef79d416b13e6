"""FastAPI dependency utilities."""

from fastapi import HTTPException, Request, status

from push_worker.application.monitoring import HealthMonitor


def get_health_monitor(request: Request) -> HealthMonitor:
    """Return the monitor attached to the running application."""

    monitor = getattr(request.app.state, "health_monitor", None)
    if monitor is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Health monitor not configured",
        )
    return monitor

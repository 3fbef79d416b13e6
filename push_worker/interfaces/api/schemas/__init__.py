from .health import ComponentStatus, HealthResponse, WorkerStatus

__all__ = [
    "ComponentStatus",
    "HealthResponse",
    "WorkerStatus",
]

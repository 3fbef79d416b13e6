"""Optional HTTP surface exposing worker health."""

from __future__ import annotations

import contextlib

import uvicorn
from fastapi import FastAPI

from push_worker.application.monitoring import HealthMonitor
from push_worker.interfaces.api.routes import register_routes


def create_app(monitor: HealthMonitor | None = None) -> FastAPI:
    """Create the FastAPI application serving ``/health`` and ``/metrics``."""

    app = FastAPI(title="Push dispatch worker")
    app.state.health_monitor = monitor
    register_routes(app)
    return app


class HealthServer(uvicorn.Server):
    """Uvicorn server that leaves signal handling to the worker."""

    def install_signal_handlers(self) -> None:
        return None

    @contextlib.contextmanager
    def capture_signals(self):
        yield


def create_health_server(monitor: HealthMonitor, *, host: str, port: int) -> HealthServer:
    config = uvicorn.Config(
        create_app(monitor),
        host=host,
        port=port,
        lifespan="off",
        log_level="warning",
    )
    return HealthServer(config)


__all__ = ["HealthServer", "create_app", "create_health_server"]

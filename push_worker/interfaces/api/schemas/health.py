"""Pydantic models describing health payloads."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class ComponentStatus(BaseModel):
    """Health of one collaborator of the worker."""

    name: str
    healthy: bool
    details: dict[str, Any] = Field(default_factory=dict)


class WorkerStatus(BaseModel):
    running: bool
    worker_id: str | None = None


class HealthResponse(BaseModel):
    """Representation returned by ``GET /health``."""

    status: str
    timestamp: datetime
    worker: WorkerStatus
    components: list[ComponentStatus] = Field(default_factory=list)

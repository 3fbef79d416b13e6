"""Tests for the health and metrics endpoints."""

from __future__ import annotations

import pytest

pytest.importorskip("fastapi")
from conftest import FakeTransport
from fastapi.testclient import TestClient

from push_worker.application.dispatch import DispatchStats
from push_worker.application.monitoring import HealthMonitor
from push_worker.interfaces.api.app import create_app


@pytest.fixture
def stats() -> DispatchStats:
    return DispatchStats()


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def client(stats, queue_store, token_directory, fake_transport):
    monitor = HealthMonitor(
        stats, queue_store, token_directory, fake_transport, worker_id="worker-test"
    )
    with TestClient(create_app(monitor)) as test_client:
        yield test_client


def test_health_reports_healthy_worker(client: TestClient, stats: DispatchStats) -> None:
    stats.mark_started()

    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["worker"] == {"running": True, "worker_id": "worker-test"}
    assert {component["name"] for component in body["components"]} == {"database", "transport"}


def test_health_returns_503_when_worker_is_stopped(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 503
    assert response.json()["status"] == "unhealthy"


def test_health_returns_503_when_transport_is_down(
    client: TestClient, stats: DispatchStats, fake_transport: FakeTransport
) -> None:
    stats.mark_started()
    fake_transport.healthy = False

    response = client.get("/health")

    assert response.status_code == 503


def test_metrics_expose_counters_and_queue(client: TestClient, stats, add_intent) -> None:
    add_intent()
    stats.record_item(succeeded=True, delivered=2)

    response = client.get("/metrics")

    assert response.status_code == 200
    body = response.json()
    assert body["worker"]["processed"] == 1
    assert body["worker"]["deliveries_succeeded"] == 2
    assert body["queue"]["pending"] == 1


def test_unknown_path_returns_404(client: TestClient) -> None:
    assert client.get("/status").status_code == 404


def test_routes_require_a_monitor() -> None:
    with TestClient(create_app()) as test_client:
        assert test_client.get("/health").status_code == 503

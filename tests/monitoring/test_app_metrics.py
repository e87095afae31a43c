"""Tests for Prometheus metrics and health endpoints."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from prometheus_client import REGISTRY

from fullstock.core.config import get_settings
from fullstock.web.deps import get_store
from fullstock.web.main import VERSION, app
from fullstock.web.middleware.prometheus import PrometheusMiddleware


@pytest.fixture
def client(fake_store, settings):
    app.dependency_overrides[get_store] = lambda: fake_store
    app.dependency_overrides[get_settings] = lambda: settings

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


def _sample(name: str, labels: dict | None = None) -> float:
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


def test_metrics_endpoint_exists(client):
    response = client.get("/metrics")

    assert response.status_code == 200
    assert "text/plain" in response.headers["content-type"]


def test_metrics_contains_http_and_app_info(client):
    client.get("/health")
    content = client.get("/metrics").text

    assert "http_requests_total" in content
    assert "http_request_duration_seconds" in content
    assert "app_uptime_seconds" in content
    assert f'version="{VERSION}"' in content


def test_http_requests_increment(client):
    labels = {"method": "GET", "endpoint": "/health", "status": "200"}
    before = _sample("http_requests_total", labels)

    client.get("/health")

    assert _sample("http_requests_total", labels) == before + 1


def test_decision_metrics_recorded(client):
    before = _sample("decisions_computed_total", {"mode": "decisions"})

    response = client.get("/full/decisions", headers={"Authorization": "Bearer test-token"})

    assert response.status_code == 200
    assert _sample("decisions_computed_total", {"mode": "decisions"}) == before + 1
    assert _sample("decision_items_total") == response.json()["count"]


def test_skipped_records_counted(client, fake_store):
    fake_store.sales.append({"item_id": "X", "date": "bogus", "quantity": 1})
    labels = {"dataset": "sales", "reason": "out_of_window"}
    before = _sample("records_skipped_total", labels)

    client.get("/full/decisions", headers={"Authorization": "Bearer test-token"})

    assert _sample("records_skipped_total", labels) >= before + 1


@pytest.mark.parametrize(
    "path,expected",
    [
        ("/full/decisions", "/full/decisions"),
        ("/full/decisions/debug_item", "/full/decisions/debug_item"),
        ("/items/12345", "/items/{id}"),
    ],
)
def test_path_normalization(path, expected):
    assert PrometheusMiddleware(app)._normalize_path(path) == expected


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_healthz_reports_checks(client):
    response = client.get("/healthz")

    assert response.status_code == 200
    data = response.json()
    assert data["healthy"] is True
    assert data["checks"]["database"]["status"] == "ok"
    assert {"disk", "memory"} <= set(data["checks"])
    assert data["uptime"]["uptime_human"]

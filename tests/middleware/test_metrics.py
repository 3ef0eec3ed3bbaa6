"""Tests for Prometheus metrics middleware.

Counters live in the global default registry and cannot be reset between
tests, so every assertion is on the delta around the action.
"""

from __future__ import annotations

from fastapi.testclient import TestClient
from prometheus_client import REGISTRY

from app.api.dependencies import curriculum_repo
from tests.conftest import seed_course


def _get_sample(name: str, labels: dict | None = None) -> float:
    """Read a metric sample's current value from the global registry."""
    value = REGISTRY.get_sample_value(name, labels=labels or {})
    return value if value is not None else 0.0


def test_request_counter_increments(client: TestClient) -> None:
    """Each HTTP request should increment the request counter."""
    before = _get_sample(
        "http_requests_total",
        {"method": "GET", "endpoint": "/health", "status_code": "200"},
    )
    client.get("/health")
    after = _get_sample(
        "http_requests_total",
        {"method": "GET", "endpoint": "/health", "status_code": "200"},
    )
    assert after - before >= 1


def test_request_duration_histogram_observes(client: TestClient) -> None:
    """Each request should add an observation to the duration histogram."""
    before = _get_sample(
        "http_request_duration_seconds_count",
        {"method": "GET", "endpoint": "/health"},
    )
    client.get("/health")
    after = _get_sample(
        "http_request_duration_seconds_count",
        {"method": "GET", "endpoint": "/health"},
    )
    assert after - before >= 1


def test_metrics_endpoint_returns_prometheus_format(client: TestClient) -> None:
    """GET /metrics should return Prometheus text exposition format."""
    # Make a request first so there's data to report
    client.get("/health")
    resp = client.get("/metrics")
    assert resp.status_code == 200
    # Prometheus text format contains HELP and TYPE lines
    assert "http_requests_total" in resp.text
    assert "http_request_duration_seconds" in resp.text


def test_metrics_endpoint_not_self_instrumented(client: TestClient) -> None:
    """Requests to /metrics itself should not be counted in metrics."""
    before = _get_sample(
        "http_requests_total",
        {"method": "GET", "endpoint": "/metrics", "status_code": "200"},
    )
    client.get("/metrics")
    client.get("/metrics")
    after = _get_sample(
        "http_requests_total",
        {"method": "GET", "endpoint": "/metrics", "status_code": "200"},
    )
    # Should not have incremented (we skip /metrics in the middleware)
    assert after == before


def test_endpoint_label_is_route_template(client: TestClient, token: str) -> None:
    """Tags in the URL must not become label values."""
    labels = {
        "method": "GET",
        "endpoint": "/v1/progress/courses/{course_tag}/modules/{module_tag}",
        "status_code": "404",
    }
    before = _get_sample("http_requests_total", labels)
    client.get(
        "/v1/progress/courses/some-course/modules/some-module",
        headers={"Authorization": f"Bearer {token}"},
    )
    after = _get_sample("http_requests_total", labels)
    assert after - before == 1


def test_unmatched_paths_share_one_label(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "unmatched", "status_code": "404"}
    before = _get_sample("http_requests_total", labels)
    client.get("/no/such/path")
    after = _get_sample("http_requests_total", labels)
    assert after - before == 1


def test_dashboard_cache_metrics(client: TestClient, admin_token: str) -> None:
    seed_course(curriculum_repo, "c1", {"m1": ["a1"]})
    headers = {"Authorization": f"Bearer {admin_token}"}
    miss_before = _get_sample("cache_operations_total", {"operation": "miss"})
    computed_before = _get_sample("dashboard_computations_total", {"scope": "course"})

    client.get("/v1/dashboard/courses/c1", headers=headers)

    assert _get_sample("cache_operations_total", {"operation": "miss"}) - miss_before == 1
    assert (
        _get_sample("dashboard_computations_total", {"scope": "course"})
        - computed_before
        == 1
    )

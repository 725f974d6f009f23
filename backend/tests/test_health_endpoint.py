"""
Integration tests for the health check and metrics endpoints.
"""
from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from app.core.config import Settings
from app.main import create_app


@pytest.fixture
def client(settings):
    """Create test client."""
    return TestClient(create_app(settings=settings))


def test_basic_health_check(client):
    """Health returns ok with a valid config when a key is set."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["config"] == {"valid": True, "errors": []}
    datetime.fromisoformat(data["timestamp"])


def test_health_reports_missing_keys():
    """Health still answers 200 but flags the configuration as invalid."""
    client = TestClient(create_app(settings=Settings()))
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["config"]["valid"] is False
    assert data["config"]["errors"] == [
        "At least one API key (OPENAI_API_KEY or ANTHROPIC_API_KEY) must be set"
    ]


def test_health_has_request_id_header(client):
    response = client.get("/health")
    assert response.headers["X-Request-ID"]


def test_metrics_endpoint(client):
    client.get("/health")
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "text/plain" in response.headers["content-type"]
    assert "http_requests_total" in response.text


def test_unknown_route_is_404_with_request_id(client):
    response = client.get("/nope", headers={"X-Request-ID": "req-404"})
    assert response.status_code == 404
    assert response.json()["request_id"] == "req-404"


def test_startup_builds_memory_cache_and_service(settings):
    app = create_app(settings=settings)
    with TestClient(app) as client:
        assert client.get("/health").status_code == 200
        assert app.state.cache is not None
        assert app.state.cache.backend == "memory"
        assert app.state.triage_service is not None
    assert app.state.cache is None

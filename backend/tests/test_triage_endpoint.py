"""
Integration tests for POST /triage.

The orchestration service is built with scripted providers; no real HTTP calls.
"""
import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from app.routes.triage import GENERIC_ERROR_MESSAGE
from app.services.ai.llm_client import ProviderError
from app.services.ai.orchestration import TriageOrchestrationService

from conftest import FULL_ANSWER, StubProvider


def _client(settings, router_script, answer_script):
    router = StubProvider(router_script)
    answer = StubProvider(answer_script)

    def factory(vendor, purpose, _settings):
        return router if purpose == "router" else answer

    service = TriageOrchestrationService(settings, provider_factory=factory)
    return TestClient(create_app(settings=settings, service=service)), router, answer


def test_triage_success(settings, valid_router_json):
    client, router, answer = _client(settings, [valid_router_json], [FULL_ANSWER])

    response = client.post(
        "/triage",
        json={
            "message": "Water under my kitchen sink",
            "context": {"location": "Austin, TX", "yearBuilt": 1985, "diyLevel": "moderate"},
            "mode": "homeowner",
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["router"]["domain"] == "plumbing"
    assert data["router"]["posture"] == ["explainer", "risk_manager"]
    assert data["answer_markdown"] == FULL_ANSWER
    assert data["metadata"]["router_retries"] == 0
    assert data["request_id"] == response.headers["X-Request-ID"]
    assert "Location: Austin, TX" in router.calls[0]["messages"][1].content


def test_request_id_header_is_echoed(settings, valid_router_json):
    client, _, _ = _client(settings, [valid_router_json], [FULL_ANSWER])

    response = client.post(
        "/triage",
        json={"message": "Sink leak"},
        headers={"X-Request-ID": "req-from-client"},
    )

    assert response.headers["X-Request-ID"] == "req-from-client"
    assert response.json()["request_id"] == "req-from-client"


@pytest.mark.parametrize("body", [{"message": ""}, {"message": "   "}, {}])
def test_blank_message_is_400(settings, body):
    client, router, _ = _client(settings, [], [])

    response = client.post("/triage", json=body)

    assert response.status_code == 400
    data = response.json()
    assert data["error"] == "message is required and cannot be empty"
    assert data["request_id"]
    assert router.calls == []


def test_unknown_provider_is_400(settings):
    client, _, _ = _client(settings, [], [])

    response = client.post("/triage", json={"message": "Hi", "provider": "mistral"})

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid request body"


def test_answer_failure_is_generic_500(settings, valid_router_json):
    client, _, _ = _client(
        settings,
        [valid_router_json],
        [ProviderError("openai", "HTTP 401: invalid api key sk-secret", status_code=401)],
    )

    response = client.post(
        "/triage", json={"message": "Sink leak"}, headers={"X-Request-ID": "req-500"}
    )

    assert response.status_code == 500
    data = response.json()
    assert data == {
        "error": "Internal server error",
        "message": GENERIC_ERROR_MESSAGE,
        "request_id": "req-500",
    }
    assert "sk-secret" not in response.text


def test_router_failure_still_returns_answer(settings):
    client, _, _ = _client(settings, ["nope", "still nope"], [FULL_ANSWER])

    response = client.post("/triage", json={"message": "Odd smell in the basement"})

    assert response.status_code == 200
    data = response.json()
    assert data["metadata"]["router_retries"] == 2
    assert data["router"]["domain"] == "general"


def test_contract_violation_is_flagged_not_failed(settings, valid_router_json):
    client, _, _ = _client(settings, [valid_router_json], ["## Immediate Actions\nCall a plumber."])

    response = client.post("/triage", json={"message": "Sink leak"})

    assert response.status_code == 200
    assert "INTERNAL WARNING" in response.json()["answer_markdown"]

"""
Integration tests for the Optigence HTTP API

Runs the real app against the per-test SQLite database from conftest.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from optigence.api.app import app


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


def _interactions(n: int, sentiment: str = "positive") -> list[dict]:
    return [
        {"sent": 1, "received": 1, "response_time_seconds": 600, "sentiment": sentiment}
        for _ in range(n)
    ]


def test_root_lists_endpoints(client):
    body = client.get("/").json()
    assert body["service"] == "Optigence API"
    assert body["endpoints"]["decide"] == "/api/suggestions/decide"


def test_health_reports_llm_disabled(client):
    body = client.get("/health").json()
    assert body["status"] == "healthy"
    assert body["llm"]["enabled"] is False
    assert body["llm"]["ready"] is False


def test_health_reports_latency(client):
    assert client.get("/health").json()["latency"]["intent.classify.latency"]["count"] == 0

    client.post("/api/intent/classify", json={"text": "Summarize this thread"})

    stats = client.get("/health").json()["latency"]["intent.classify.latency"]
    assert stats["count"] == 1
    assert stats["max"] >= stats["min"] >= 0.0


def test_health_db(client):
    body = client.get("/health/db").json()
    assert body["status"] in ("healthy", "degraded")
    assert body["pool"]["pool_size"] >= 1


def test_classify_intent(client):
    response = client.post("/api/intent/classify", json={"text": "Summarize this thread"})
    assert response.status_code == 200
    body = response.json()
    assert body["intent"] == "summarize"
    assert body["source"] == "pattern"


def test_validation_error_is_sanitized(client):
    response = client.post("/api/intent/classify", json={"text": ""})
    assert response.status_code == 422
    body = response.json()
    assert body["invalid_fields"] == ["text"]
    assert "Invalid request format" in body["detail"]


def test_decide_returns_ranked_suggestions(client):
    response = client.post(
        "/api/suggestions/decide",
        json={
            "user_id": "u1",
            "text": "Please reply to the team about the hotel, flight and vacation",
            "entities": {"people": ["a", "b", "c"], "urgency": "high"},
        },
    )
    assert response.status_code == 200
    body = response.json()
    ids = [s["id"] for s in body["suggestions"]]

    assert body["classification"]["intent"] == "reply"
    assert body["primary_action"]["id"] == "reply_draft"
    assert "route_travel" in ids
    assert len(ids) == len(set(ids)) <= 6
    assert body["auto_send"] is None
    assert body["effective_threshold"] == pytest.approx(0.9)


def test_contact_trust_update_and_listing(client):
    response = client.post(
        "/api/learning/contacts/trust",
        json={
            "user_id": "u1",
            "contact_email": "pal@example.com",
            "interactions": _interactions(3),
        },
    )
    assert response.status_code == 200
    assert 0.0 <= response.json()["trust_score"] <= 1.0

    listing = client.get("/api/learning/contacts/u1").json()
    assert listing["total"] == 1
    assert listing["contacts"][0]["contact_email"] == "pal@example.com"


def test_contact_trust_empty_batch_is_400(client):
    response = client.post(
        "/api/learning/contacts/trust",
        json={"user_id": "u1", "contact_email": "pal@example.com", "interactions": []},
    )
    assert response.status_code == 400
    assert client.get("/api/learning/contacts/u1").json()["total"] == 0


def test_outcome_is_accepted_and_learned(client):
    for _ in range(2):
        response = client.post(
            "/api/learning/outcome",
            json={
                "user_id": "u1",
                "type": "auto_send",
                "outcome": "success",
                "timing_ms": 1500,
                "metadata": {"confidence": 0.92},
            },
        )
        assert response.status_code == 202

    metrics = client.get("/api/learning/autosend/u1").json()
    assert metrics["metrics"]["total_auto_sends"] == 2
    assert metrics["success_rate"] == pytest.approx(1.0)
    # Two successes lower 0.85 to 0.83, then a quick decision-maker takes 0.05 off
    assert metrics["effective_threshold"] == pytest.approx(0.78)

    profile = client.get("/api/learning/profile/u1").json()
    assert profile["decision_making"] == "quick"
    assert profile["response_speed"] == "immediate"


def test_outcome_rejects_unknown_kind(client):
    response = client.post(
        "/api/learning/outcome",
        json={"user_id": "u1", "type": "auto_send", "outcome": "shrugged"},
    )
    assert response.status_code == 422


def test_memory_update_known_and_unknown(client):
    ok = client.post(
        "/api/memory/update",
        json={"user_id": "u1", "update": {"update_type": "signature_update", "signature": "-- S"}},
    )
    assert ok.status_code == 200
    assert ok.json() == {"update_type": "signature_update", "signature": "-- S"}

    unknown = client.post(
        "/api/memory/update",
        json={"user_id": "u1", "update": {"update_type": "mood_ring", "value": 1}},
    )
    assert unknown.status_code == 400

    invalid = client.post(
        "/api/memory/update",
        json={"user_id": "u1", "update": {"update_type": "contact_trust", "trust_level": 9}},
    )
    assert invalid.status_code == 422


def test_thread_memory_endpoint(client):
    response = client.post(
        "/api/memory/threads",
        json={
            "user_id": "u1",
            "thread_id": "t-9",
            "update": {"participants": ["X@Example.com"], "follow_up_required": True},
        },
    )
    assert response.status_code == 200
    body = response.json()
    assert body["participants"] == ["x@example.com"]
    assert body["follow_up_required"] is True


def test_templates_endpoint(client):
    client.post(
        "/api/memory/update",
        json={
            "user_id": "u1",
            "update": {
                "update_type": "template_usage",
                "template_id": "t-thanks",
                "outcome": "success",
                "contexts": ["reply"],
            },
        },
    )
    client.post(
        "/api/memory/update",
        json={
            "user_id": "u1",
            "update": {
                "update_type": "template_usage",
                "template_id": "t-asap",
                "outcome": "canceled",
                "contexts": ["urgent"],
            },
        },
    )
    templates = client.get("/api/learning/templates/u1", params={"intent": "reply"}).json()
    assert [t["template_id"] for t in templates] == ["t-thanks"]

    urgent = client.get(
        "/api/learning/templates/u1", params={"intent": "reply", "urgency": "high"}
    ).json()
    assert [t["template_id"] for t in urgent] == ["t-thanks", "t-asap"]

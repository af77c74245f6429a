"""HTTP surface tests against an app wired to a manual clock."""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from echo_core.main import create_app


@pytest.fixture
def client(core):
    return TestClient(create_app(core))


def test_photo_then_status(client, clock):
    resp = client.post("/v1/echo/photos", json={"user_id": "u1"})
    assert resp.status_code == 200
    assert resp.json()["status"] == "ACTIVE"

    clock.advance(days=6)
    status = client.get("/v1/echo/status", params={"user_id": "u1"}).json()
    assert status["status"] == "EXPIRING"
    assert status["days_left"] == 1
    assert status["hours_left"] == 24
    assert status["discoverable"] is True


def test_status_for_unknown_user_is_404(client):
    resp = client.get("/v1/echo/status", params={"user_id": "ghost"}, headers={"x-request-id": "rid-1"})

    assert resp.status_code == 404
    assert resp.json()["error"] == {"code": "not_found", "message": "No photo on record for user ghost", "request_id": "rid-1"}
    assert resp.headers["x-request-id"] == "rid-1"


def test_future_photo_is_400(client, clock):
    taken_at = (clock.now() + timedelta(hours=1)).isoformat()
    resp = client.post("/v1/echo/photos", json={"user_id": "u1", "taken_at": taken_at})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "validation_error"


def test_create_match_and_countdown(client, clock):
    created = client.post("/v1/matches", json={"user_a": "a", "user_b": "b"})
    assert created.status_code == 201
    match_id = created.json()["id"]

    clock.advance(hours=10, minutes=30)
    countdown = client.get(f"/v1/matches/{match_id}/countdown").json()
    assert countdown == {"match_id": match_id, "status": "PENDING", "hours_left": 38}

    duplicate = client.post("/v1/matches", json={"user_a": "b", "user_b": "a"})
    assert duplicate.status_code == 409
    assert duplicate.json()["error"]["code"] == "duplicate_match"


def test_expired_match_interaction_is_409(client, clock):
    match_id = client.post("/v1/matches", json={"user_a": "a", "user_b": "b"}).json()["id"]
    clock.advance(hours=49)

    assert client.get(f"/v1/matches/{match_id}/countdown").json()["status"] == "EXPIRED"
    resp = client.post(f"/v1/matches/{match_id}/interactions", json={"user_id": "a"})
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "match_expired"


def test_swipe_decisions(client):
    liked = client.post("/v1/swipes", json={"user_id": "u1", "kind": "LIKE", "target_id": "u2"}).json()
    assert liked == {"authorized": True, "remaining": {"swipes": 49}}

    superliked = client.post("/v1/swipes", json={"user_id": "u1", "kind": "SUPERLIKE"}).json()
    assert superliked["authorized"] is False
    assert superliked["reason"] == "PLAN_INSUFFICIENT"
    assert superliked["quota"] == "super_likes"
    assert superliked["required_plan"] == "PLUS"

    history = client.get("/v1/swipes/history", params={"user_id": "u1"}).json()["history"]
    assert [entry["target_id"] for entry in history] == ["u2"]


def test_unknown_swipe_kind_is_422(client):
    resp = client.post("/v1/swipes", json={"user_id": "u1", "kind": "MAYBE"})
    assert resp.status_code == 422


def test_report_rate_limit(client):
    results = [
        client.post("/v1/moderation", json={"subject_id": "reporter", "kind": "REPORT"}).json()["allowed"]
        for _ in range(6)
    ]
    assert results == [True] * 5 + [False]

    assert client.post("/v1/moderation", json={"subject_id": "reporter", "kind": "BLOCK"}).json()["allowed"] is True


def test_plan_event_and_entitlements(client, clock):
    resp = client.post(
        "/v1/plans/events",
        json={"user_id": "u1", "plan": "GOLD", "kind": "PURCHASE", "occurred_at": clock.now().isoformat()},
    )
    assert resp.json() == {"user_id": "u1", "plan": "GOLD"}

    snapshot = client.get("/v1/entitlements", params={"user_id": "u1"}).json()
    assert snapshot["plan"] == "GOLD"
    assert snapshot["quotas"]["rewinds"]["remaining"] == "unlimited"
    assert snapshot["quotas"]["super_likes"]["remaining"] == 5
    assert snapshot["quotas"]["swipes"]["refill_at"] == "2024-01-11T00:00:00+00:00"

    boosted = client.post("/v1/boosts", json={"user_id": "u1"}).json()
    assert boosted == {"authorized": True, "remaining": {"boosts": 0}}


def test_rewind_on_active_match_reports_window_closed(client):
    match_id = client.post("/v1/matches", json={"user_a": "a", "user_b": "b"}).json()["id"]
    client.post(f"/v1/matches/{match_id}/interactions", json={"user_id": "a"})
    active = client.post(f"/v1/matches/{match_id}/interactions", json={"user_id": "b"}).json()
    assert active["status"] == "ACTIVE"

    resp = client.post(f"/v1/matches/{match_id}/rewind", json={"actor_id": "a"})
    assert resp.status_code == 200
    assert resp.json()["reason"] == "REWIND_WINDOW_CLOSED"


def test_metrics_exposed(client):
    client.post("/v1/swipes", json={"user_id": "u1", "kind": "NOPE"})
    body = client.get("/metrics").text

    assert 'gate_decisions_total{action="NOPE",outcome="AUTHORIZED"} 1.0' in body
    assert "http_requests_total" in body

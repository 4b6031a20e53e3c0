"""
HTTP surface tests.

A fresh in-memory container is installed per test; the TestClient context
keeps one event loop alive so polling tasks survive between requests.
"""

import asyncio

import pytest
from fastapi.testclient import TestClient

from safealert.core.container import ServiceContainer, set_container
from safealert.main import app
from safealert.models.user import User
from conftest import ORIGIN, north_of


@pytest.fixture
def container(clock):
    container = ServiceContainer.in_memory(clock=clock)
    container.store.users["mod-1"] = User(uid="mod-1", is_moderator=True).to_record()
    set_container(container)
    yield container
    set_container(None)


@pytest.fixture
def client(container):
    with TestClient(app) as client:
        yield client


def _submit_as(client, user_id, category="theft"):
    client.put("/device", json={
        "user_id": user_id,
        "latitude": ORIGIN.latitude,
        "longitude": ORIGIN.longitude,
        "push_token": f"tok-{user_id}",
    })
    response = client.post("/reports", json={"category": category, "description": "Car window smashed"})
    assert response.status_code == 201
    return response.json()


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_db_health_reports_store_failure(self, client, container):
        container.store.fail_next = 1
        assert client.get("/health/db").status_code == 503
        assert client.get("/health/db").json()["connected"] is True


class TestReportRoutes:

    def test_submit_requires_sign_in(self, client):
        response = client.post("/reports", json={"category": "theft"})
        assert response.status_code == 401
        assert response.json()["detail"] == "User not authenticated. Please sign in first."

    def test_submit_requires_category(self, client):
        client.put("/device", json={"user_id": "u1", "latitude": 32.0, "longitude": 34.0})
        assert client.post("/reports", json={"description": "?"}).status_code == 400

    def test_submitted_report_is_not_public_until_approved(self, client):
        report = _submit_as(client, "author")
        assert report["status"] == "pending"
        assert client.get("/reports/approved").json() == []

        mine = client.get("/reports/user/author").json()
        assert mine["counts"]["pending"] == 1
        assert mine["reports"][0]["id"] == report["id"]

    def test_unknown_category_path(self, client):
        assert client.get("/reports/category/meteor").status_code == 422


class TestModerationFlow:

    def test_approve_fans_out_and_notifies_neighbor(self, client, container):
        report = _submit_as(client, "author")
        near = north_of(ORIGIN, 900)
        client.put("/device", json={
            "user_id": "neighbor",
            "latitude": near.latitude,
            "longitude": near.longitude,
            "push_token": "tok-neighbor",
        })

        pending = client.get("/moderation/pending", params={"moderator_id": "mod-1"}).json()
        assert [r["id"] for r in pending["reports"]] == [report["id"]]

        response = client.post(f"/moderation/{report['id']}/approve", json={"moderator_id": "mod-1"})
        assert response.status_code == 200
        body = response.json()
        assert body["processed"] is True
        assert body["report"]["status"] == "approved"
        assert body["report"]["moderator_id"] == "mod-1"
        assert [push["token"] for push in container.push_dispatcher.sent] == ["tok-neighbor"]

        assert client.post("/notifications/polling/start").json()["running"] is True
        client.post("/notifications/polling/run")
        delivered = client.get("/notifications/delivered").json()["notifications"]
        assert f"report_{report['id']}" in [n["identifier"] for n in delivered]

        assert client.post("/notifications/polling/stop").json()["running"] is False

    def test_second_review_conflicts(self, client):
        report = _submit_as(client, "author")
        client.post(f"/moderation/{report['id']}/reject", json={"moderator_id": "mod-1"})

        response = client.post(f"/moderation/{report['id']}/approve", json={"moderator_id": "mod-1"})
        assert response.status_code == 409

    def test_non_moderator_forbidden(self, client, container):
        report = _submit_as(client, "author")
        response = client.post(f"/moderation/{report['id']}/approve", json={"moderator_id": "author"})
        assert response.status_code == 403

    def test_unknown_report(self, client):
        response = client.post("/moderation/missing/approve", json={"moderator_id": "mod-1"})
        assert response.status_code == 404


class TestNotificationRoutes:

    def test_preferences_update_clamps_radius(self, client):
        response = client.put("/notifications/preferences", json={
            "radius_m": 10000,
            "enabled_categories": ["theft"],
            "severity_threshold": "high",
        })
        assert response.status_code == 200
        assert response.json() == {
            "radius_m": 5000.0,
            "enabled_categories": ["theft"],
            "severity_threshold": "high",
        }

    def test_run_without_start_is_skipped(self, client):
        assert client.post("/notifications/polling/run").json()["skipped_reason"] == "stopped"

    def test_clear_seen(self, client, container):
        asyncio.run(container.tracker.mark_seen(["a"]))
        assert client.delete("/notifications/seen").json() == {"seen_count": 0}

    def test_malformed_stored_report_does_not_break_polling(self, client, container):
        client.put("/device", json={"user_id": "neighbor", "latitude": ORIGIN.latitude, "longitude": ORIGIN.longitude})
        container.store.reports["broken"] = {
            "userId": "someone", "description": "x", "category": "theft",
            "latitude": float("nan"), "longitude": 34.0, "timestamp": 0, "status": "approved",
        }

        client.post("/notifications/polling/start")
        response = client.post("/notifications/polling/run")
        client.post("/notifications/polling/stop")

        assert response.status_code == 200
        assert response.json()["skipped_reason"] is None

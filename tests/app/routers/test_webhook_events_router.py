"""Tests for the webhook audit API."""

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from app.constants.sync import WebhookSource, WebhookStatus
from app.services.webhook_event_service import WebhookEventService


@pytest.fixture
def recorded_events(db, setup_company):
    svc = WebhookEventService(db)
    completed = svc.record_incoming(
        setup_company.id, WebhookSource.CHATWOOT, "message_created", {"event": "message_created"}
    )
    svc.mark_outcome(completed, WebhookStatus.COMPLETED)
    failed = svc.record_incoming(
        setup_company.id, WebhookSource.UAZAPI, "messages.upsert", {"event": "messages.upsert"}
    )
    svc.mark_outcome(failed, WebhookStatus.FAILED, "relay failed")
    return completed, failed


def test_requires_admin_token(client: TestClient):
    assert client.get("/webhook-events").status_code == 401
    resp = client.get("/webhook-events", headers={"Authorization": "Bearer wrong"})
    assert resp.status_code == 401


def test_unconfigured_admin_token_disables_api(client: TestClient, admin_headers, monkeypatch):
    monkeypatch.delenv("WEBHOOK_ADMIN_TOKEN")
    assert client.get("/webhook-events", headers=admin_headers).status_code == 503


def test_list_and_filter(client: TestClient, admin_headers, recorded_events):
    resp = client.get("/webhook-events", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["total"] == 2

    resp = client.get("/webhook-events?status=failed", headers=admin_headers)
    items = resp.json()["items"]
    assert len(items) == 1
    assert items[0]["source"] == "uazapi"
    assert items[0]["last_error"] == "relay failed"

    resp = client.get("/webhook-events?source=chatwoot", headers=admin_headers)
    assert [i["event_type"] for i in resp.json()["items"]] == ["message_created"]


def test_invalid_filter_value(client: TestClient, admin_headers):
    assert client.get("/webhook-events?status=done", headers=admin_headers).status_code == 422


def test_stats(client: TestClient, admin_headers, recorded_events):
    resp = client.get("/webhook-events/stats", headers=admin_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["counts"] == {"processing": 0, "completed": 1, "failed": 1, "total": 2}
    assert [f["event_type"] for f in body["recent_failures"]] == ["messages.upsert"]


def test_get_event(client: TestClient, admin_headers, recorded_events):
    completed, _ = recorded_events
    resp = client.get(f"/webhook-events/{completed}", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["payload"] == {"event": "message_created"}
    assert resp.json()["processed_at"] is not None

    assert client.get(f"/webhook-events/{uuid4()}", headers=admin_headers).status_code == 404


def test_retry_endpoint(client: TestClient, admin_headers, recorded_events):
    resp = client.post("/webhook-events/retry", headers=admin_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["processed"] == 1
    assert body["succeeded"] + body["failed"] == 1

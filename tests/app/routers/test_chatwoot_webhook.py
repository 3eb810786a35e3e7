"""Tests for POST /webhooks/chatwoot."""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from app.models.contact import Contact
from app.models.conversation import Conversation
from app.models.timeline_event import TimelineEvent
from app.models.webhook_event import WebhookEvent

URL = "/webhooks/chatwoot"


def _event_types(db, conversation_id):
    rows = (
        db.query(TimelineEvent.event_type)
        .filter(TimelineEvent.conversation_id == conversation_id)
        .all()
    )
    return [event_type for (event_type,) in rows]


@pytest.fixture
def account(setup_company):
    return {"id": setup_company.chatwoot_account_id}


def conversation_created(account, conversation_id=1001, phone="+5511999998888"):
    return {
        "event": "conversation_created",
        "account": account,
        "id": conversation_id,
        "inbox_id": 7,
        "status": "open",
        "meta": {
            "sender": {
                "id": 555,
                "name": "Maria Silva",
                "email": "maria@example.com",
                "phone_number": phone,
            }
        },
    }


def test_full_conversation_lifecycle(
    client: TestClient, db, account, setup_company, setup_stages
):
    resp = client.post(URL, json=conversation_created(account))
    assert resp.status_code == 200
    assert resp.json() == {"success": True}

    conversation = db.query(Conversation).one()
    assert conversation.stage_id == setup_stages[0].id
    contact = db.query(Contact).one()
    assert contact.phone_normalized == "5511999998888"
    assert contact.name == "Maria Silva"

    resp = client.post(
        URL,
        json={
            "event": "message_created",
            "account": account,
            "conversation": {"id": 1001},
            "message": {"content": "Quero um orçamento", "message_type": 0},
        },
    )
    assert resp.status_code == 200

    resp = client.post(
        URL,
        json={
            "event": "conversation_updated",
            "account": account,
            "id": 1001,
            "priority": "high",
            "labels": ["negociando"],
        },
    )
    assert resp.status_code == 200

    resp = client.post(
        URL,
        json={
            "event": "conversation_status_changed",
            "account": account,
            "id": 1001,
            "status": "resolved",
        },
    )
    assert resp.status_code == 200

    db.refresh(conversation)
    assert conversation.last_message == "Quero um orçamento"
    assert conversation.unread_count == 1
    assert conversation.priority == "high"
    assert conversation.stage_id == setup_stages[1].id
    assert conversation.status == "resolved"
    assert conversation.resolved_at is not None
    assert sorted(_event_types(db, conversation.id)) == sorted(
        [
            "conversation_started",
            "message_received",
            "priority_changed",
            "stage_changed",
            "status_changed",
        ]
    )

    statuses = {e.status for e in db.query(WebhookEvent).all()}
    assert statuses == {"completed"}
    assert db.query(WebhookEvent).count() == 4


def test_conversation_created_twice_is_idempotent(
    client: TestClient, db, account, setup_stages
):
    assert client.post(URL, json=conversation_created(account)).status_code == 200
    assert client.post(URL, json=conversation_created(account)).status_code == 200
    assert db.query(Conversation).count() == 1
    assert _event_types(db, db.query(Conversation).one().id) == ["conversation_started"]


def test_contact_updated_merges(client: TestClient, db, account, setup_contact):
    resp = client.post(
        URL,
        json={
            "event": "contact_updated",
            "account": account,
            "id": 555,
            "name": "",
            "phone_number": "(11) 99999-8888",
            "thumbnail": "https://cdn.example.com/m.png",
        },
    )
    assert resp.status_code == 200
    db.refresh(setup_contact)
    assert setup_contact.name
    assert setup_contact.avatar_url == "https://cdn.example.com/m.png"
    assert db.query(Contact).count() == 1


def test_contact_updated_for_unknown_phone_creates_nothing(
    client: TestClient, db, account
):
    resp = client.post(
        URL,
        json={
            "event": "contact_updated",
            "account": account,
            "id": 556,
            "name": "Novo Cliente",
            "phone_number": "+5521988887777",
        },
    )
    assert resp.status_code == 200
    assert db.query(Contact).count() == 0
    assert db.query(WebhookEvent).one().status == "completed"


@pytest.mark.parametrize("event", ["contact_created","webwidget_triggered", "label_added"])
def test_ignored_and_unknown_events_succeed(client: TestClient, db, account, event):
    resp = client.post(URL, json={"event": event, "account": account, "id": 1})
    assert resp.status_code == 200
    assert db.query(WebhookEvent).one().status == "completed"


def test_unknown_account_returns_404_and_is_audited(client: TestClient, db, setup_company):
    resp = client.post(
        URL, json={"event": "conversation_created", "account": {"id": 987654}, "id": 1}
    )
    assert resp.status_code == 404
    audit = db.query(WebhookEvent).one()
    assert audit.status == "failed"
    assert audit.company_id is None
    assert "987654" in audit.last_error


def test_invalid_json_returns_400(client: TestClient):
    resp = client.post(
        URL, content=b"{not json", headers={"Content-Type": "application/json"}
    )
    assert resp.status_code == 400


def test_missing_event_returns_400(client: TestClient, account):
    assert client.post(URL, json={"account": account}).status_code == 400


def test_signature_checked_when_secret_configured(
    client: TestClient, db, account, monkeypatch
):
    monkeypatch.setenv("CHATWOOT_WEBHOOK_SECRET", "s3cret")
    body = {"event": "contact_created", "account": account}
    assert client.post(URL, json=body).status_code == 401
    assert (
        client.post(URL, json=body, headers={"X-Chatwoot-Signature": "wrong"}).status_code
        == 401
    )
    assert (
        client.post(URL, json=body, headers={"X-Chatwoot-Signature": "s3cret"}).status_code
        == 200
    )
    assert db.query(WebhookEvent).count() == 1


def test_message_without_conversation_id_fails(client: TestClient, db, account):
    resp = client.post(
        URL,
        json={
            "event": "message_created",
            "account": account,
            "message": {"content": "Oi", "message_type": 0},
        },
    )
    assert resp.status_code == 400
    assert db.query(WebhookEvent).one().status == "failed"


def test_unexpected_error_returns_500_and_marks_failed(
    client: TestClient, db, account, setup_conversation
):
    with patch(
        "app.services.conversation_service.ConversationService.apply_status_change",
        side_effect=RuntimeError("database exploded"),
    ):
        resp = client.post(
            URL,
            json={
                "event": "conversation_status_changed",
                "account": account,
                "id": 1001,
                "status": "resolved",
            },
        )
    assert resp.status_code == 500
    audit = db.query(WebhookEvent).one()
    assert audit.status == "failed"
    assert audit.last_error == "database exploded"

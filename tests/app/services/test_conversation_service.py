"""Tests for conversation reconciliation and its timeline events."""

from unittest.mock import patch

from app.models.conversation import Conversation
from app.models.timeline_event import TimelineEvent
from app.services.conversation_service import (
    ConversationService,
    ConversationUpdate,
    MessageSummary,
    map_external_status,
    message_preview,
    truncate_preview,
)


def _events(db, conversation, event_type=None):
    q = db.query(TimelineEvent).filter(TimelineEvent.conversation_id == conversation.id)
    if event_type:
        q = q.filter(TimelineEvent.event_type == event_type)
    return q.all()


def test_truncate_preview():
    assert truncate_preview("a" * 100) == "a" * 100
    assert truncate_preview("a" * 101) == "a" * 100 + "..."


def test_message_preview_media_label():
    msg = MessageSummary(message_type=0, has_attachments=True, attachment_type="image")
    assert message_preview(msg) == "📷 Imagem"
    msg = MessageSummary(message_type=0, has_attachments=True, attachment_type="sticker")
    assert message_preview(msg) == "📎 Anexo"
    assert message_preview(MessageSummary(message_type=0)) is None


def test_map_external_status():
    assert map_external_status("resolved") == "resolved"
    assert map_external_status("pending") == "open"
    assert map_external_status("snoozed") == "open"
    assert map_external_status(None) == "open"


def test_create_uses_initial_stage(db, setup_company, setup_contact, setup_stages):
    svc = ConversationService(db)
    conversation = svc.create_on_conversation_created(
        setup_company.id, 2001, setup_contact.id, inbox_id=7
    )
    assert conversation.stage_id == setup_stages[0].id
    assert conversation.status == "open"
    assert conversation.priority == "none"
    assert conversation.unread_count == 0
    started = _events(db, conversation, "conversation_started")
    assert len(started) == 1
    assert started[0].data["chatwoot_conversation_id"] == 2001


def test_create_is_idempotent(db, setup_company, setup_contact, setup_stages):
    svc = ConversationService(db)
    first = svc.create_on_conversation_created(setup_company.id, 2001, setup_contact.id)
    second = svc.create_on_conversation_created(setup_company.id, 2001, setup_contact.id)
    assert first.id == second.id
    assert db.query(Conversation).count() == 1
    assert len(_events(db, first, "conversation_started")) == 1


def test_create_returns_row_inserted_concurrently(
    db, setup_company, setup_contact, setup_conversation
):
    svc = ConversationService(db)
    existing_id = setup_conversation.id
    with patch.object(
        svc, "get_by_chatwoot_id", side_effect=[None, setup_conversation]
    ):
        conversation = svc.create_on_conversation_created(
            setup_company.id, 1001, setup_contact.id, inbox_id=7
        )
    assert conversation.id == existing_id
    assert db.query(Conversation).count() == 1
    assert _events(db, conversation, "conversation_started") == []


def test_create_without_stages(db, setup_company, setup_contact):
    svc = ConversationService(db)
    conversation = svc.create_on_conversation_created(
        setup_company.id, 2002, setup_contact.id
    )
    assert conversation.stage_id is None


def test_status_resolved_and_reopened(db, setup_company, setup_conversation):
    svc = ConversationService(db)
    conversation = svc.apply_status_change(setup_company.id, 1001, "resolved")
    assert conversation.status == "resolved"
    assert conversation.resolved_at is not None

    conversation = svc.apply_status_change(setup_company.id, 1001, "open")
    assert conversation.status == "open"
    assert conversation.resolved_at is None

    changes = _events(db, conversation, "status_changed")
    assert sorted((e.data["from"], e.data["to"]) for e in changes) == [
        ("open", "resolved"),
        ("resolved", "open"),
    ]


def test_status_unchanged_emits_nothing(db, setup_company, setup_conversation):
    svc = ConversationService(db)
    svc.apply_status_change(setup_company.id, 1001, "pending")
    assert _events(db, setup_conversation, "status_changed") == []


def test_status_change_for_unknown_conversation(db, setup_company):
    svc = ConversationService(db)
    assert svc.apply_status_change(setup_company.id, 4040, "resolved") is None


def test_update_applies_every_facet_in_one_pass(
    db, setup_company, setup_conversation, setup_stages, setup_user
):
    svc = ConversationService(db)
    conversation = svc.apply_conversation_update(
        setup_company.id,
        1001,
        ConversationUpdate(priority="high", agent_id=42, labels=["vip", "negociando"]),
    )
    assert conversation.priority == "high"
    assert conversation.assigned_to == setup_user.id
    assert conversation.stage_id == setup_stages[1].id

    types = {e.event_type for e in _events(db, conversation)}
    assert {"priority_changed", "assignment_changed", "stage_changed"} <= types

    stage_event = _events(db, conversation, "stage_changed")[0]
    assert stage_event.data["from_stage_slug"] == "novo"
    assert stage_event.data["to_stage_slug"] == "negociando"


def test_update_without_changes_emits_nothing(db, setup_company, setup_conversation):
    svc = ConversationService(db)
    conversation = svc.apply_conversation_update(
        setup_company.id, 1001, ConversationUpdate(labels=["novo"])
    )
    assert conversation.priority == "none"
    assert _events(db, conversation) == []


def test_update_with_unmapped_agent_unassigns(
    db, setup_company, setup_conversation, setup_user
):
    svc = ConversationService(db)
    svc.apply_conversation_update(setup_company.id, 1001, ConversationUpdate(agent_id=42))
    conversation = svc.apply_conversation_update(
        setup_company.id, 1001, ConversationUpdate(agent_id=777)
    )
    assert conversation.assigned_to is None
    assert len(_events(db, conversation, "assignment_changed")) == 2


def test_update_with_unknown_labels_keeps_stage(
    db, setup_company, setup_conversation, setup_stages, caplog
):
    svc = ConversationService(db)
    conversation = svc.apply_conversation_update(
        setup_company.id, 1001, ConversationUpdate(labels=["vip"])
    )
    assert conversation.stage_id == setup_stages[0].id
    assert "No stage matches labels" in caplog.text


def test_incoming_message(db, setup_company, setup_conversation):
    svc = ConversationService(db)
    conversation = svc.apply_message_created(
        setup_company.id, 1001, MessageSummary(message_type=0, content="Oi, tudo bem?")
    )
    assert conversation.last_message == "Oi, tudo bem?"
    assert conversation.unread_count == 1
    assert conversation.first_response_at is None
    received = _events(db, conversation, "message_received")
    assert len(received) == 1
    assert "Oi, tudo bem?" not in str(received[0].data)


def test_first_response_is_set_once(db, setup_company, setup_conversation):
    svc = ConversationService(db)
    first = svc.apply_message_created(
        setup_company.id, 1001, MessageSummary(message_type=1, content="Olá!")
    )
    first_response_at = first.first_response_at
    assert first_response_at is not None

    second = svc.apply_message_created(
        setup_company.id, 1001, MessageSummary(message_type=1, content="Posso ajudar?")
    )
    assert second.first_response_at == first_response_at
    assert second.unread_count == 0
    assert len(_events(db, second, "message_sent")) == 2


def test_private_and_activity_messages_are_ignored(
    db, setup_company, setup_conversation
):
    svc = ConversationService(db)
    assert (
        svc.apply_message_created(
            setup_company.id,
            1001,
            MessageSummary(message_type=1, private=True, content="nota interna"),
        )
        is None
    )
    assert (
        svc.apply_message_created(
            setup_company.id, 1001, MessageSummary(message_type=2, content="resolvida")
        )
        is None
    )
    db.refresh(setup_conversation)
    assert setup_conversation.last_message is None
    assert setup_conversation.first_response_at is None
    assert _events(db, setup_conversation) == []


def test_mirror_relayed_message_creates_then_updates(
    db, setup_company, setup_contact, setup_stages
):
    svc = ConversationService(db)
    conversation = svc.mirror_relayed_message(
        setup_company.id, 3001, setup_contact.id, "Quero um orçamento", from_me=False
    )
    assert conversation.unread_count == 0
    assert conversation.stage_id == setup_stages[0].id
    assert conversation.last_message == "Quero um orçamento"

    conversation = svc.mirror_relayed_message(
        setup_company.id, 3001, setup_contact.id, "Claro!", from_me=True
    )
    assert conversation.unread_count == 0
    assert conversation.last_message == "Claro!"
    assert db.query(Conversation).count() == 1


def test_move_stage(db, setup_conversation, setup_stages):
    svc = ConversationService(db)
    conversation = svc.move_stage(setup_conversation, setup_stages[2])
    assert conversation.stage_id == setup_stages[2].id
    assert len(_events(db, conversation, "stage_changed")) == 1

    svc.move_stage(conversation, setup_stages[2])
    assert len(_events(db, conversation, "stage_changed")) == 1


def test_relayed_inbound_message_counted_once_by_echo(
    db, setup_company, setup_contact, setup_stages
):
    svc = ConversationService(db)
    svc.mirror_relayed_message(
        setup_company.id, 3002, setup_contact.id, "Oi, bom dia", from_me=False
    )
    svc.mirror_relayed_message(
        setup_company.id, 3002, setup_contact.id, "Tem horário amanhã?", from_me=False
    )
    # The support platform echoes each relayed message as incoming message_created
    for content in ("Oi, bom dia", "Tem horário amanhã?"):
        conversation = svc.apply_message_created(
            setup_company.id, 3002, MessageSummary(message_type=0, content=content)
        )
    assert conversation.unread_count == 2

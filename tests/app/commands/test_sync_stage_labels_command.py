"""Tests for stage label push and catalogue sync."""

from unittest.mock import MagicMock

import pytest
from fastapi import BackgroundTasks, HTTPException

from app.commands.sync_stage_labels_command import (
    MoveConversationStageCommand,
    SyncLabelCatalogueCommand,
    push_stage_labels,
)
from app.exceptions import ChatwootAPIError
from app.models.kanban_stage import KanbanStage
from app.schemas.chatwoot import ChatwootLabel

STAGE_SLUGS = ["fechado", "negociando", "novo"]


def test_push_replaces_stage_labels():
    client = MagicMock()
    client.get_conversation_labels.return_value = ["vip", "novo"]
    client.set_conversation_labels.side_effect = lambda _id, labels: labels

    result = push_stage_labels(client, 1001, "negociando", STAGE_SLUGS)

    assert result.success is True
    assert result.labels == ["vip", "negociando"]
    client.set_conversation_labels.assert_called_once_with(1001, ["vip", "negociando"])


def test_push_aborts_when_current_labels_unavailable():
    client = MagicMock()
    client.get_conversation_labels.side_effect = ChatwootAPIError("timeout")

    result = push_stage_labels(client, 1001, "negociando", STAGE_SLUGS)

    assert result.success is False
    assert result.error == "timeout"
    client.set_conversation_labels.assert_not_called()


def test_move_schedules_label_push(db, setup_conversation, setup_stages, monkeypatch):
    monkeypatch.setenv("CHATWOOT_API_URL", "https://chat.example.com")
    tasks = BackgroundTasks()
    conversation = MoveConversationStageCommand(db).execute(
        setup_conversation.id, setup_stages[1].id, tasks
    )
    assert conversation.stage_id == setup_stages[1].id
    assert len(tasks.tasks) == 1
    task = tasks.tasks[0]
    assert task.func is push_stage_labels
    assert task.args[1:] == (1001, "negociando", STAGE_SLUGS)


def test_move_without_chatwoot_skips_push(db, setup_conversation, setup_stages):
    tasks = BackgroundTasks()
    MoveConversationStageCommand(db).execute(setup_conversation.id, setup_stages[2].id, tasks)
    assert tasks.tasks == []


def test_move_rejects_stage_of_other_company(
    db, setup_conversation, setup_company_without_chatwoot
):
    foreign = KanbanStage(company_id=setup_company_without_chatwoot.id, name="X", slug="x")
    db.add(foreign)
    db.commit()
    with pytest.raises(HTTPException) as exc:
        MoveConversationStageCommand(db).execute(
            setup_conversation.id, foreign.id, BackgroundTasks()
        )
    assert exc.value.status_code == 404


@pytest.fixture
def catalogue_client(monkeypatch):
    monkeypatch.setenv("CHATWOOT_API_URL", "https://chat.example.com")
    client = MagicMock()
    monkeypatch.setattr(
        "app.commands.sync_stage_labels_command.ChatwootClient.for_company",
        lambda *args, **kwargs: client,
    )
    return client


def test_catalogue_sync_creates_and_updates(db, setup_company, setup_stages, catalogue_client):
    catalogue_client.list_labels.return_value = [
        ChatwootLabel(id=1, title="novo", color="#1f93ff", description="Novo"),
        ChatwootLabel(id=2, title="negociando", color="#000000", description="Negociando"),
    ]
    result = SyncLabelCatalogueCommand(db).execute(setup_company.id)

    assert result == {"created": 1, "updated": 1, "total": 3, "errors": []}
    catalogue_client.create_label.assert_called_once_with(
        "fechado", color="#2ec4b6", description="Fechado"
    )
    catalogue_client.update_label.assert_called_once_with(
        2, title="negociando", color="#ff9f1c", description="Negociando"
    )


def test_catalogue_sync_collects_errors(db, setup_company, setup_stages, catalogue_client):
    catalogue_client.list_labels.return_value = []
    catalogue_client.create_label.side_effect = [None, ChatwootAPIError("dup"), None]
    result = SyncLabelCatalogueCommand(db).execute(setup_company.id)
    assert result["created"] == 2
    assert result["errors"] == ["Failed to sync stage: Negociando"]


def test_catalogue_sync_list_failure(db, setup_company, catalogue_client):
    catalogue_client.list_labels.side_effect = ChatwootAPIError("down")
    with pytest.raises(HTTPException) as exc:
        SyncLabelCatalogueCommand(db).execute(setup_company.id)
    assert exc.value.status_code == 502


def test_catalogue_sync_requires_configuration(db, setup_company_without_chatwoot):
    with pytest.raises(HTTPException) as exc:
        SyncLabelCatalogueCommand(db).execute(setup_company_without_chatwoot.id)
    assert exc.value.status_code == 409


def test_drift(db, setup_company, setup_stages, catalogue_client):
    catalogue_client.list_labels.return_value = [
        ChatwootLabel(id=1, title="novo"),
        ChatwootLabel(id=9, title="vip"),
    ]
    report = SyncLabelCatalogueCommand(db).drift(setup_company.id)
    assert report.matched_labels == ["novo"]
    assert report.missing_labels == ["negociando", "fechado"]

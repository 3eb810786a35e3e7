"""
Commands that push pipeline stages to the support platform as labels.

MoveConversationStageCommand moves a conversation locally and schedules the
label rewrite as a background task. SyncLabelCatalogueCommand creates or
updates one platform label per stage and reports drift between the two.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional
from uuid import UUID

from fastapi import BackgroundTasks, HTTPException
from sqlalchemy.orm import Session

from app.adapters.chatwoot import ChatwootClient
from app.config import get_settings
from app.exceptions import ChatwootAPIError
from app.models.company import Company
from app.models.conversation import Conversation
from app.services.conversation_service import ConversationService
from app.services.stage_mapper import LabelDriftReport, StageMapper, replace_stage_labels

logger = logging.getLogger(__name__)


@dataclass
class LabelPushResult:
    chatwoot_conversation_id: int
    success: bool = False
    labels: List[str] = field(default_factory=list)
    error: Optional[str] = None


def push_stage_labels(
    client: ChatwootClient,
    chatwoot_conversation_id: int,
    target_slug: str,
    stage_slugs: List[str],
) -> LabelPushResult:
    """
    Rewrite the conversation's labels so the only stage label is target_slug.

    Runs after the response is sent; failures are logged and returned, not raised.
    """
    result = LabelPushResult(chatwoot_conversation_id=chatwoot_conversation_id)
    try:
        current = client.get_conversation_labels(chatwoot_conversation_id)
        labels = replace_stage_labels(current, stage_slugs, target_slug)
        result.labels = client.set_conversation_labels(chatwoot_conversation_id, labels)
        result.success = True
        logger.info(
            "Pushed labels %s to conversation %s", result.labels, chatwoot_conversation_id
        )
    except ChatwootAPIError as e:
        result.error = e.message
        logger.warning(
            "Label push for conversation %s failed: %s", chatwoot_conversation_id, e.message
        )
    return result


def _client_for(company: Company) -> Optional[ChatwootClient]:
    settings = get_settings()
    return ChatwootClient.for_company(
        company, settings.chatwoot_api_url, timeout=settings.chatwoot_timeout_seconds
    )


def _company_client(company: Company) -> ChatwootClient:
    client = _client_for(company)
    if client is None:
        raise HTTPException(
            status_code=409, detail="Chatwoot is not configured for this company"
        )
    return client


class MoveConversationStageCommand:
    def __init__(self, db: Session) -> None:
        self.db = db
        self.conversations = ConversationService(db)

    def execute(
        self,
        conversation_id: UUID,
        stage_id: UUID,
        background_tasks: BackgroundTasks,
    ) -> Conversation:
        """
        Move the conversation and return the post-write row.

        Raises:
            HTTPException: 404 if the conversation or the stage (within the
                conversation's company) does not exist.
        """
        conversation = self.conversations.get_conversation(conversation_id)
        if conversation is None:
            raise HTTPException(status_code=404, detail="Conversation not found")
        mapper = StageMapper.for_company(self.db, conversation.company_id)
        target = mapper.get_by_id(stage_id)
        if target is None:
            raise HTTPException(status_code=404, detail="Stage not found")

        target_slug = target.slug
        stage_slugs = sorted(mapper.slugs)
        conversation = self.conversations.move_stage(conversation, target)

        company = self.db.get(Company, conversation.company_id)
        client = _client_for(company)
        if client is None:
            logger.info("No Chatwoot credentials for company %s, labels not pushed", company.id)
        else:
            background_tasks.add_task(
                push_stage_labels,
                client,
                conversation.chatwoot_conversation_id,
                target_slug,
                stage_slugs,
            )
        return conversation


class SyncLabelCatalogueCommand:
    def __init__(self, db: Session) -> None:
        self.db = db

    def _company(self, company_id: UUID) -> Company:
        company = self.db.get(Company, company_id)
        if company is None:
            raise HTTPException(status_code=404, detail="Company not found")
        return company

    def _labels_by_title(self, client: ChatwootClient) -> dict[str, Any]:
        try:
            return {label.title: label for label in client.list_labels()}
        except ChatwootAPIError as e:
            logger.error("Could not list Chatwoot labels: %s", e.message)
            raise HTTPException(status_code=502, detail="Failed to fetch Chatwoot labels") from e

    def execute(self, company_id: UUID) -> dict[str, Any]:
        """
        Create a label for every stage slug that has none; update color and
        description of existing ones when they differ.

        Returns:
            dict: {"created", "updated", "total", "errors"}
        """
        company = self._company(company_id)
        client = _company_client(company)
        stages = StageMapper.for_company(self.db, company.id).stages
        existing = self._labels_by_title(client)

        created = 0
        updated = 0
        errors: List[str] = []
        for stage in stages:
            label = existing.get(stage.slug)
            try:
                if label is None:
                    client.create_label(stage.slug, color=stage.color, description=stage.name)
                    created += 1
                elif label.color != stage.color or label.description != stage.name:
                    client.update_label(
                        label.id, title=stage.slug, color=stage.color, description=stage.name
                    )
                    updated += 1
            except ChatwootAPIError as e:
                logger.warning("Failed to sync stage %s: %s", stage.slug, e.message)
                errors.append(f"Failed to sync stage: {stage.name}")

        return {
            "created": created,
            "updated": updated,
            "total": len(stages),
            "errors": errors,
        }

    def drift(self, company_id: UUID) -> LabelDriftReport:
        company = self._company(company_id)
        client = _company_client(company)
        existing = self._labels_by_title(client)
        return StageMapper.for_company(self.db, company.id).drift(existing.keys())

"""
Conversation reconciliation.

Conversations are keyed by (company_id, chatwoot_conversation_id). Every
state transition is written together with its timeline event in one commit,
and every write returns the post-write row.
"""

from __future__ import annotations

import logging
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.constants.sync import (
    CONTACT_SOURCE_WHATSAPP,
    DEFAULT_MEDIA_LABEL,
    DEFAULT_PRIORITY,
    LAST_MESSAGE_MAX_LENGTH,
    MEDIA_LABELS,
    MESSAGE_TYPE_INCOMING,
    MESSAGE_TYPE_OUTGOING,
    ConversationStatus,
    TimelineEventType,
)
from app.models.conversation import Conversation
from app.models.kanban_stage import KanbanStage
from app.models.mixins import utcnow
from app.services.assignment_service import AssignmentService
from app.services.stage_mapper import StageMapper
from app.services.timeline_event_service import TimelineEventService

logger = logging.getLogger(__name__)


class ConversationUpdate(BaseModel):
    """Facets a conversation_updated event can carry at once."""

    priority: Optional[str] = None
    agent_id: Optional[int] = None
    labels: List[str] = Field(default_factory=list)


class MessageSummary(BaseModel):
    """What the reconciler needs from a message; content never reaches the timeline."""

    message_type: Optional[int] = None
    private: bool = False
    content: Optional[str] = None
    content_type: Optional[str] = None
    attachment_type: Optional[str] = None
    has_attachments: bool = False


def truncate_preview(content: str) -> str:
    if len(content) > LAST_MESSAGE_MAX_LENGTH:
        return content[:LAST_MESSAGE_MAX_LENGTH] + "..."
    return content


def message_preview(message: MessageSummary) -> Optional[str]:
    """Truncated text body, or a media label derived from the first attachment."""
    if message.content:
        return truncate_preview(message.content)
    if message.has_attachments:
        return MEDIA_LABELS.get(message.attachment_type or "", DEFAULT_MEDIA_LABEL)
    return None


def map_external_status(external_status: Optional[str]) -> ConversationStatus:
    """Only "resolved" is carried over; every other value means open."""
    if external_status == ConversationStatus.RESOLVED:
        return ConversationStatus.RESOLVED
    return ConversationStatus.OPEN


def _str_or_none(value: Optional[UUID]) -> Optional[str]:
    return str(value) if value is not None else None


class ConversationService:
    def __init__(self, db: Session) -> None:
        self.db = db
        self.timeline = TimelineEventService(db)
        self.assignments = AssignmentService(db)

    def get_by_chatwoot_id(
        self, company_id: UUID, chatwoot_conversation_id: int
    ) -> Optional[Conversation]:
        return (
            self.db.query(Conversation)
            .filter(
                Conversation.company_id == company_id,
                Conversation.chatwoot_conversation_id == chatwoot_conversation_id,
            )
            .first()
        )

    def get_conversation(self, conversation_id: UUID) -> Optional[Conversation]:
        return self.db.get(Conversation, conversation_id)

    def create_on_conversation_created(
        self,
        company_id: UUID,
        chatwoot_conversation_id: int,
        contact_id: UUID,
        inbox_id: Optional[int] = None,
    ) -> Conversation:
        """
        Create the conversation in the company's initial stage.

        Idempotent: an existing row for the external id is returned untouched,
        without a second conversation_started event.
        """
        existing = self.get_by_chatwoot_id(company_id, chatwoot_conversation_id)
        if existing is not None:
            logger.info(
                "Conversation %s already exists for company %s",
                chatwoot_conversation_id,
                company_id,
            )
            return existing
        return self._insert(
            company_id,
            chatwoot_conversation_id,
            contact_id,
            inbox_id=inbox_id,
        )

    def _insert(
        self,
        company_id: UUID,
        chatwoot_conversation_id: int,
        contact_id: UUID,
        inbox_id: Optional[int] = None,
        last_message: Optional[str] = None,
        unread_count: int = 0,
    ) -> Conversation:
        initial_stage = StageMapper.for_company(self.db, company_id).initial_stage()
        conversation = Conversation(
            company_id=company_id,
            contact_id=contact_id,
            chatwoot_conversation_id=chatwoot_conversation_id,
            chatwoot_inbox_id=inbox_id,
            stage_id=initial_stage.id if initial_stage else None,
            status=ConversationStatus.OPEN.value,
            priority=DEFAULT_PRIORITY,
            last_message=last_message,
            unread_count=unread_count,
            last_activity_at=utcnow(),
        )
        self.db.add(conversation)
        try:
            self.db.flush()
            self.timeline.add_event(
                conversation,
                TimelineEventType.CONVERSATION_STARTED,
                {
                    "source": CONTACT_SOURCE_WHATSAPP,
                    "chatwoot_conversation_id": chatwoot_conversation_id,
                    "inbox_id": inbox_id,
                },
            )
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            existing = self.get_by_chatwoot_id(company_id, chatwoot_conversation_id)
            if existing is None:
                raise
            logger.info(
                "Conversation %s created concurrently for company %s",
                chatwoot_conversation_id,
                company_id,
            )
            return existing
        self.db.refresh(conversation)
        return conversation

    def apply_status_change(
        self,
        company_id: UUID,
        chatwoot_conversation_id: int,
        external_status: Optional[str],
    ) -> Optional[Conversation]:
        conversation = self.get_by_chatwoot_id(company_id, chatwoot_conversation_id)
        if conversation is None:
            logger.info("Status change for unknown conversation %s", chatwoot_conversation_id)
            return None

        new_status = map_external_status(external_status)
        old_status = conversation.status
        if old_status == new_status:
            return conversation

        conversation.status = new_status.value
        conversation.resolved_at = (
            utcnow() if new_status == ConversationStatus.RESOLVED else None
        )
        self.timeline.add_event(
            conversation,
            TimelineEventType.STATUS_CHANGED,
            {"from": old_status, "to": new_status.value},
        )
        self.db.commit()
        self.db.refresh(conversation)
        return conversation

    def apply_conversation_update(
        self,
        company_id: UUID,
        chatwoot_conversation_id: int,
        update: ConversationUpdate,
    ) -> Optional[Conversation]:
        """
        Evaluate priority, assignee and labels against the stored row and
        persist everything in a single write.
        """
        conversation = self.get_by_chatwoot_id(company_id, chatwoot_conversation_id)
        if conversation is None:
            logger.info("Update for unknown conversation %s", chatwoot_conversation_id)
            return None

        priority = update.priority or DEFAULT_PRIORITY
        if priority != conversation.priority:
            self.timeline.add_event(
                conversation,
                TimelineEventType.PRIORITY_CHANGED,
                {"from_priority": conversation.priority, "to_priority": priority},
            )
            conversation.priority = priority

        # Assignment has no "changed" flag upstream, so diff on every update
        assignee_id = self.assignments.resolve_user_id(company_id, update.agent_id)
        if assignee_id != conversation.assigned_to:
            self.timeline.add_event(
                conversation,
                TimelineEventType.ASSIGNMENT_CHANGED,
                {
                    "from_user_id": _str_or_none(conversation.assigned_to),
                    "to_user_id": _str_or_none(assignee_id),
                    "external_agent_id": update.agent_id,
                },
            )
            conversation.assigned_to = assignee_id

        if update.labels:
            mapper = StageMapper.for_company(self.db, company_id)
            stage = mapper.stage_for_labels(update.labels)
            if stage is None:
                logger.warning(
                    "No stage matches labels %s in company %s",
                    update.labels,
                    company_id,
                )
            elif stage.id != conversation.stage_id:
                self._stage_transition(
                    conversation, mapper.get_by_id(conversation.stage_id), stage
                )

        conversation.last_activity_at = utcnow()
        self.db.commit()
        self.db.refresh(conversation)
        return conversation

    def apply_message_created(
        self,
        company_id: UUID,
        chatwoot_conversation_id: int,
        message: MessageSummary,
    ) -> Optional[Conversation]:
        # Private notes and activity (system) messages leave no trace
        if message.private or message.message_type not in (
            MESSAGE_TYPE_INCOMING,
            MESSAGE_TYPE_OUTGOING,
        ):
            return None

        conversation = self.get_by_chatwoot_id(company_id, chatwoot_conversation_id)
        if conversation is None:
            logger.info("Message for unknown conversation %s", chatwoot_conversation_id)
            return None

        preview = message_preview(message)
        if preview is not None:
            conversation.last_message = preview

        incoming = message.message_type == MESSAGE_TYPE_INCOMING
        if incoming:
            conversation.unread_count = (conversation.unread_count or 0) + 1
        elif conversation.first_response_at is None:
            conversation.first_response_at = utcnow()
        conversation.last_activity_at = utcnow()

        self.timeline.add_event(
            conversation,
            (
                TimelineEventType.MESSAGE_RECEIVED
                if incoming
                else TimelineEventType.MESSAGE_SENT
            ),
            {
                "message_type": "incoming" if incoming else "outgoing",
                "content_type": message.content_type,
                "attachment_type": message.attachment_type,
            },
        )
        self.db.commit()
        self.db.refresh(conversation)
        return conversation

    def mirror_relayed_message(
        self,
        company_id: UUID,
        chatwoot_conversation_id: int,
        contact_id: UUID,
        content: str,
        from_me: bool,
        inbox_id: Optional[int] = None,
    ) -> Conversation:
        """
        Mirror a gateway message that was relayed to the support platform.

        Outbound (from_me) traffic resets the unread counter. Inbound traffic
        leaves it alone: the support platform echoes the relayed message back
        as an incoming message_created, and that delivery does the counting.
        """
        preview = truncate_preview(content)
        conversation = self.get_by_chatwoot_id(company_id, chatwoot_conversation_id)
        if conversation is None:
            return self._insert(
                company_id,
                chatwoot_conversation_id,
                contact_id,
                inbox_id=inbox_id,
                last_message=preview,
            )

        conversation.last_message = preview
        if from_me:
            conversation.unread_count = 0
        conversation.last_activity_at = utcnow()
        self.db.commit()
        self.db.refresh(conversation)
        return conversation

    def move_stage(
        self, conversation: Conversation, target: KanbanStage
    ) -> Conversation:
        """Move to target locally; emits stage_changed only when the stage differs."""
        if conversation.stage_id == target.id:
            return conversation
        current = (
            self.db.get(KanbanStage, conversation.stage_id)
            if conversation.stage_id
            else None
        )
        self._stage_transition(conversation, current, target)
        conversation.last_activity_at = utcnow()
        self.db.commit()
        self.db.refresh(conversation)
        return conversation

    def _stage_transition(
        self,
        conversation: Conversation,
        current: Optional[KanbanStage],
        target: KanbanStage,
    ) -> None:
        self.timeline.add_event(
            conversation,
            TimelineEventType.STAGE_CHANGED,
            {
                "from_stage_id": _str_or_none(conversation.stage_id),
                "to_stage_id": str(target.id),
                "from_stage_slug": current.slug if current else None,
                "to_stage_slug": target.slug,
            },
        )
        conversation.stage_id = target.id

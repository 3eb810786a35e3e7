"""
Service for persisting timeline events (conversation state transitions).

Events are immutable; only insert. No update/delete of event content, and
event data never carries message content.
"""

from __future__ import annotations

from typing import Any, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.constants.sync import TimelineEventType
from app.models.conversation import Conversation
from app.models.timeline_event import TimelineEvent


class TimelineEventService:
    """Create and read timeline events. No update/delete (immutable)."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def add_event(
        self,
        conversation: Conversation,
        event_type: TimelineEventType,
        data: Optional[dict[str, Any]] = None,
    ) -> TimelineEvent:
        """
        Stage an event for the conversation in the current transaction.
        The caller commits together with the state change it describes.
        """
        event = TimelineEvent(
            company_id=conversation.company_id,
            contact_id=conversation.contact_id,
            conversation_id=conversation.id,
            event_type=event_type.value,
            data=data or {},
        )
        self.db.add(event)
        return event

    def get_conversation_timeline(
        self,
        conversation_id: UUID,
        event_type: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[TimelineEvent]:
        """Fetch a conversation's events, oldest first."""
        q = (
            self.db.query(TimelineEvent)
            .filter(TimelineEvent.conversation_id == conversation_id)
            .order_by(TimelineEvent.created_at.asc())
        )
        if event_type is not None:
            q = q.filter(TimelineEvent.event_type == event_type)
        return q.offset(skip).limit(limit).all()

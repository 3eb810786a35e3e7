"""
TimelineEvent model: append-only record of conversation state transitions.

Rows are only inserted, never updated or deleted. data carries transition
metadata, never message content.
"""

from __future__ import annotations

import uuid

from sqlalchemy import Column, ForeignKey, Index, String, Uuid

from app.db import Base, JSONType
from app.models.mixins import TimestampMixin


class TimelineEvent(Base, TimestampMixin):
    __tablename__ = "timeline_events"

    __table_args__ = (
        Index(
            "ix_timeline_events_conversation_created",
            "conversation_id",
            "created_at",
        ),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
    )
    contact_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("contacts.id", ondelete="CASCADE"),
        nullable=True,
    )
    conversation_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=True,
    )
    event_type = Column(String(64), nullable=False)
    data = Column(JSONType, nullable=False, default=dict)

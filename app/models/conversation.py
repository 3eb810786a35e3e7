"""Conversation model: CRM mirror of one support-platform conversation."""

from __future__ import annotations

import uuid

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship

from app.db import Base
from app.models.mixins import TimestampMixin, utcnow


class Conversation(Base, TimestampMixin):
    """
    At most one row per (company_id, chatwoot_conversation_id).

    status is one of open | pending | resolved. first_response_at is written
    once, by the first outbound message.
    """

    __tablename__ = "conversations"

    __table_args__ = (
        UniqueConstraint(
            "company_id",
            "chatwoot_conversation_id",
            name="uq_conversations_company_chatwoot_conversation",
        ),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    contact_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("contacts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    chatwoot_conversation_id = Column(Integer, nullable=False)
    chatwoot_inbox_id = Column(Integer, nullable=True)
    stage_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("kanban_stages.id", ondelete="SET NULL"),
        nullable=True,
    )
    assigned_to = Column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    priority = Column(String(16), nullable=False, default="none")
    status = Column(String(16), nullable=False, default="open")
    last_message = Column(String(255), nullable=True)
    unread_count = Column(Integer, nullable=False, default=0)
    first_response_at = Column(DateTime(timezone=True), nullable=True)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    last_activity_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    contact = relationship("Contact")
    stage = relationship("KanbanStage")

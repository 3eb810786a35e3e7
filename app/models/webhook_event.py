"""
WebhookEvent model: operational audit row for one inbound webhook delivery.

Written as processing at ingress, then completed or failed once the request
ends. Failed rows are the replay queue.
"""

from __future__ import annotations

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text, Uuid

from app.db import Base, JSONType
from app.models.mixins import TimestampMixin


class WebhookEvent(Base, TimestampMixin):
    __tablename__ = "webhook_events"

    __table_args__ = (
        Index("ix_webhook_events_status_created", "status", "created_at"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("companies.id", ondelete="SET NULL"),
        nullable=True,
    )
    instance_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("instances.id", ondelete="SET NULL"),
        nullable=True,
    )
    source = Column(String(32), nullable=False)  # 'chatwoot' | 'uazapi'
    event_type = Column(String(64), nullable=False)
    payload = Column(JSONType, nullable=True)
    status = Column(String(16), nullable=False, default="processing")
    attempts = Column(Integer, nullable=False, default=1)
    last_error = Column(Text, nullable=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)

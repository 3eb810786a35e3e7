"""Instance model: one messaging-gateway (WhatsApp) connection of a company."""

from __future__ import annotations

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import relationship

from app.db import Base
from app.models.mixins import TimestampMixin


class Instance(Base, TimestampMixin):
    __tablename__ = "instances"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    uazapi_instance_name = Column(String(255), nullable=False, unique=True)
    uazapi_token = Column(String(255), nullable=True)
    # connecting | qr_ready | connected | disconnected | error
    uazapi_status = Column(String(16), nullable=False, default="connecting")
    chatwoot_inbox_id = Column(Integer, nullable=True)
    connected_at = Column(DateTime(timezone=True), nullable=True)
    disconnected_at = Column(DateTime(timezone=True), nullable=True)

    company = relationship("Company")

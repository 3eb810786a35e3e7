"""User model: only the fields needed to map support-platform agents."""

from __future__ import annotations

import uuid

from sqlalchemy import Column, ForeignKey, Index, Integer, String, Uuid

from app.db import Base
from app.models.mixins import TimestampMixin


class User(Base, TimestampMixin):
    __tablename__ = "users"

    __table_args__ = (
        Index("ix_users_company_chatwoot_agent", "company_id", "chatwoot_agent_id"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
    )
    email = Column(String(255), nullable=False)
    name = Column(String(255), nullable=True)
    chatwoot_agent_id = Column(Integer, nullable=True)

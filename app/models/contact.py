"""Contact model: one row per (company, normalized phone)."""

from __future__ import annotations

import uuid

from sqlalchemy import Column, ForeignKey, Integer, String, UniqueConstraint, Uuid

from app.db import Base
from app.models.mixins import TimestampMixin


class Contact(Base, TimestampMixin):
    __tablename__ = "contacts"

    __table_args__ = (
        UniqueConstraint(
            "company_id", "phone_normalized", name="uq_contacts_company_phone"
        ),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    phone = Column(String(32), nullable=False)  # display form, e.g. +5511999998888
    phone_normalized = Column(String(32), nullable=False)  # digits only
    name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    avatar_url = Column(String(1024), nullable=True)
    chatwoot_contact_id = Column(Integer, nullable=True)
    source = Column(String(32), nullable=False, default="whatsapp")

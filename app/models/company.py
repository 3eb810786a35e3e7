"""Company model: tenant boundary. Provisioned out-of-band; read-only here."""

from __future__ import annotations

import uuid

from sqlalchemy import Column, Integer, String, Uuid

from app.db import Base
from app.models.mixins import TimestampMixin


class Company(Base, TimestampMixin):
    __tablename__ = "companies"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    chatwoot_account_id = Column(Integer, nullable=True, unique=True, index=True)
    chatwoot_api_key = Column(String(255), nullable=True)

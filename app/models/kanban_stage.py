"""KanbanStage model: ordered pipeline positions, mapped to labels by slug."""

from __future__ import annotations

import uuid

from sqlalchemy import (
    Boolean,
    Column,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
)

from app.db import Base
from app.models.mixins import TimestampMixin


class KanbanStage(Base, TimestampMixin):
    __tablename__ = "kanban_stages"

    __table_args__ = (
        UniqueConstraint("company_id", "slug", name="uq_kanban_stages_company_slug"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(100), nullable=False)
    slug = Column(String(100), nullable=False)
    color = Column(String(16), nullable=True)
    position = Column(Integer, nullable=False, default=0)
    is_initial = Column(Boolean, nullable=False, default=False)
    is_final = Column(Boolean, nullable=False, default=False)

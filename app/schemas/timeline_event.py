"""Pydantic schemas for timeline events."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class TimelineEventRead(BaseModel):
    id: UUID
    conversation_id: UUID
    contact_id: UUID
    event_type: str
    data: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime

    model_config = {"from_attributes": True}

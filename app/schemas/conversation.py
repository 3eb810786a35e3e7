"""Pydantic schemas for conversations and pipeline labels."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class ConversationRead(BaseModel):
    """Authoritative post-write conversation row."""

    id: UUID
    company_id: UUID
    contact_id: UUID
    chatwoot_conversation_id: int
    chatwoot_inbox_id: Optional[int] = None
    stage_id: UUID | None
    assigned_to: UUID | None
    priority: str
    status: str
    last_message: Optional[str] = None
    unread_count: int
    first_response_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    last_activity_at: datetime
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class StageMoveRequest(BaseModel):
    stage_id: UUID


class LabelSyncResult(BaseModel):
    created: int
    updated: int
    total: int
    errors: list[str] = Field(default_factory=list)


class LabelDriftRead(BaseModel):
    """Stage slugs with (matched) and without (missing) a platform label."""

    in_sync: bool
    matched_labels: list[str]
    missing_labels: list[str]

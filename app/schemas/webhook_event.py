"""Pydantic schemas for the webhook audit surface."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class WebhookEventRead(BaseModel):
    """Audit row as returned to operators."""

    id: UUID
    company_id: UUID | None
    instance_id: UUID | None
    source: str
    event_type: str
    payload: Any = None
    status: str
    attempts: int
    last_error: Optional[str] = None
    processed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class WebhookEventSummary(BaseModel):
    """Audit row without payload, for the stats listing."""

    id: UUID
    source: str
    event_type: str
    attempts: int
    last_error: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class WebhookEventStats(BaseModel):
    counts: dict[str, int]
    recent_failures: list[WebhookEventSummary] = Field(default_factory=list)


class WebhookRetryResult(BaseModel):
    processed: int
    succeeded: int
    failed: int

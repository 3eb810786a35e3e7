"""Webhook audit API: list, summarize and replay recorded deliveries."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from fastapi_pagination import Page, Params
from fastapi_pagination.ext.sqlalchemy import paginate
from sqlalchemy.orm import Session

from app.commands.retry_webhook_events_command import RetryWebhookEventsCommand
from app.constants.sync import WebhookSource, WebhookStatus
from app.db import get_db
from app.routers.utils.dependencies import require_admin_token
from app.schemas.webhook_event import (
    WebhookEventRead,
    WebhookEventStats,
    WebhookEventSummary,
    WebhookRetryResult,
)
from app.services.webhook_event_service import WebhookEventService

router = APIRouter(
    prefix="/webhook-events",
    tags=["webhook-events"],
    dependencies=[Depends(require_admin_token)],
    responses={404: {"description": "Not found"}},
)


@router.get("", response_model=Page[WebhookEventRead])
def list_webhook_events(
    status: Optional[WebhookStatus] = None,
    source: Optional[WebhookSource] = None,
    params: Params = Depends(),
    db: Session = Depends(get_db),
) -> Page[WebhookEventRead]:
    """List audit rows, newest first, optionally filtered by status and source."""
    svc = WebhookEventService(db)
    query = svc.search_query(
        status=status.value if status else None,
        source=source.value if source else None,
    )
    return paginate(query, params=params)


@router.get("/stats", response_model=WebhookEventStats)
def get_webhook_event_stats(db: Session = Depends(get_db)) -> WebhookEventStats:
    svc = WebhookEventService(db)
    return WebhookEventStats(
        counts=svc.get_status_counts(),
        recent_failures=[
            WebhookEventSummary.model_validate(e) for e in svc.get_recent_failed()
        ],
    )


@router.post("/retry", response_model=WebhookRetryResult)
def retry_webhook_events(db: Session = Depends(get_db)) -> WebhookRetryResult:
    """Replay failed deliveries still under WEBHOOK_MAX_ATTEMPTS (at most 50)."""
    return WebhookRetryResult(**RetryWebhookEventsCommand(db).execute())


@router.get("/{event_id}", response_model=WebhookEventRead)
def get_webhook_event(event_id: UUID, db: Session = Depends(get_db)) -> WebhookEventRead:
    event = WebhookEventService(db).get_webhook_event(event_id)
    if event is None:
        raise HTTPException(status_code=404, detail="Webhook event not found")
    return event

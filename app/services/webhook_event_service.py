"""
Webhook audit log (Event Auditor).

Every inbound delivery gets a row in status processing before any business
work, and exactly one outcome (completed or failed) when the request ends.
Recording is best-effort: a failing audit write is logged and swallowed so
reconciliation always proceeds.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session

from app.constants.sync import WebhookSource, WebhookStatus
from app.models.webhook_event import WebhookEvent

logger = logging.getLogger(__name__)

MAX_ERROR_LENGTH = 2000


class WebhookEventService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def record_incoming(
        self,
        company_id: Optional[UUID],
        source: WebhookSource,
        event_type: str,
        payload: Any,
        instance_id: Optional[UUID] = None,
    ) -> Optional[UUID]:
        """Persist the delivery as processing. Returns the row id, or None on failure."""
        event = WebhookEvent(
            company_id=company_id,
            instance_id=instance_id,
            source=source.value,
            event_type=(event_type or "unknown")[:64],
            payload=payload,
            status=WebhookStatus.PROCESSING.value,
            attempts=1,
        )
        try:
            self.db.add(event)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning("Failed to record %s webhook %s: %s", source, event_type, e)
            return None
        return event.id

    def mark_outcome(
        self,
        event_id: Optional[UUID],
        status: WebhookStatus,
        error: Optional[str] = None,
    ) -> None:
        """Close a processing row as completed or failed. No-op when event_id is None."""
        if event_id is None:
            return
        if status == WebhookStatus.PROCESSING:
            raise ValueError("Outcome must be completed or failed")
        try:
            event = self.db.get(WebhookEvent, event_id)
            if event is None:
                return
            event.status = status.value
            event.last_error = error[:MAX_ERROR_LENGTH] if error else None
            event.processed_at = datetime.now(timezone.utc)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning("Failed to mark webhook event %s as %s: %s", event_id, status, e)

    def claim_for_retry(self, event: WebhookEvent) -> WebhookEvent:
        """Move a failed row back to processing and count the attempt."""
        event.status = WebhookStatus.PROCESSING.value
        event.attempts = (event.attempts or 0) + 1
        self.db.commit()
        self.db.refresh(event)
        return event

    def get_webhook_event(self, event_id: UUID) -> Optional[WebhookEvent]:
        return self.db.get(WebhookEvent, event_id)

    def get_retryable(self, max_attempts: int, limit: int = 50) -> List[WebhookEvent]:
        """Failed rows still under the attempt ceiling, oldest first."""
        return (
            self.db.query(WebhookEvent)
            .filter(
                WebhookEvent.status == WebhookStatus.FAILED.value,
                WebhookEvent.attempts < max_attempts,
            )
            .order_by(WebhookEvent.created_at.asc())
            .limit(limit)
            .all()
        )

    def search_query(
        self,
        status: Optional[str] = None,
        source: Optional[str] = None,
    ) -> Query[WebhookEvent]:
        """Query for audit rows, newest first (for pagination)."""
        q = self.db.query(WebhookEvent).order_by(WebhookEvent.created_at.desc())
        if status is not None:
            q = q.filter(WebhookEvent.status == status)
        if source is not None:
            q = q.filter(WebhookEvent.source == source)
        return q

    def get_status_counts(self) -> Dict[str, int]:
        counts = {s.value: 0 for s in WebhookStatus}
        rows = (
            self.db.query(WebhookEvent.status, func.count(WebhookEvent.id))
            .group_by(WebhookEvent.status)
            .all()
        )
        for status, count in rows:
            counts[status] = count
        counts["total"] = sum(count for _, count in rows)
        return counts

    def get_recent_failed(self, limit: int = 10) -> List[WebhookEvent]:
        return (
            self.search_query(status=WebhookStatus.FAILED.value).limit(limit).all()
        )

    def count_recent_failures(self, window: int = 100) -> int:
        """Failed rows among the last `window` deliveries."""
        recent = (
            self.db.query(WebhookEvent.status)
            .order_by(WebhookEvent.created_at.desc())
            .limit(window)
            .all()
        )
        return sum(1 for (status,) in recent if status == WebhookStatus.FAILED.value)

"""Command to replay failed webhook deliveries from their stored payloads."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.orm import Session

from app.adapters.chatwoot import ChatwootAdapter
from app.adapters.uazapi import UazapiAdapter
from app.commands.webhooks.chatwoot_command import ChatwootEventProcessor
from app.commands.webhooks.uazapi_command import GatewayEventProcessor
from app.config import get_settings
from app.constants.sync import WebhookSource, WebhookStatus
from app.exceptions import InstanceNotFoundError, MalformedPayloadError
from app.models.company import Company
from app.models.instance import Instance
from app.models.webhook_event import WebhookEvent
from app.services.company_service import CompanyService
from app.services.webhook_event_service import WebhookEventService

RETRY_BATCH_SIZE = 50


class RetryWebhookEventsCommand:
    """
    Replays failed audit rows still under the attempt ceiling, oldest first.
    Authentication and rate limiting are not re-applied; the stored payload
    was accepted once already.
    """

    def __init__(self, db: Session) -> None:
        self.db = db
        self.settings = get_settings()
        self.webhook_events = WebhookEventService(db)
        self.logger = logging.getLogger(__name__)

    def execute(self, limit: int = RETRY_BATCH_SIZE) -> dict[str, Any]:
        """
        Returns:
            dict: {"processed": n, "succeeded": n, "failed": n}
        """
        events = self.webhook_events.get_retryable(
            self.settings.webhook_max_attempts, limit=limit
        )
        succeeded = 0
        failed = 0
        for event in events:
            event = self.webhook_events.claim_for_retry(event)
            event_id = event.id
            try:
                self._replay(event)
            except Exception as e:
                self.db.rollback()
                failed += 1
                self.logger.warning("Replay of webhook event %s failed: %s", event_id, e)
                self.webhook_events.mark_outcome(event_id, WebhookStatus.FAILED, str(e))
                continue
            succeeded += 1
            self.webhook_events.mark_outcome(event_id, WebhookStatus.COMPLETED)

        self.logger.info(
            "Webhook retry: %d processed, %d succeeded, %d failed",
            len(events),
            succeeded,
            failed,
        )
        return {"processed": len(events), "succeeded": succeeded, "failed": failed}

    def _replay(self, event: WebhookEvent) -> None:
        if event.source == WebhookSource.CHATWOOT:
            envelope = ChatwootAdapter().parse_webhook(event.payload)
            company = (
                self.db.get(Company, event.company_id)
                if event.company_id
                else CompanyService(self.db).resolve_chatwoot_account(envelope.account.id)
            )
            ChatwootEventProcessor(self.db).process(company, envelope)
        elif event.source == WebhookSource.UAZAPI:
            instance = (
                self.db.get(Instance, event.instance_id) if event.instance_id else None
            )
            if instance is None:
                raise InstanceNotFoundError(str(event.instance_id))
            envelope = UazapiAdapter().parse_webhook(event.payload)
            GatewayEventProcessor(self.db).process(instance, envelope)
        else:
            raise MalformedPayloadError(f"Unknown webhook source {event.source}")

"""
Command to handle messaging-gateway (UAZAPI) webhooks.

Order of checks: rate limit, instance id, JSON body, instance lookup, token.
Only then is the delivery recorded and processed.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from app.adapters.uazapi import UazapiAdapter
from app.commands.relay.relay_message_command import RelayMessageCommand
from app.config import get_settings
from app.constants.sync import WebhookSource, WebhookStatus
from app.exceptions import InstanceNotFoundError, MalformedPayloadError, SyncError
from app.models.instance import Instance
from app.schemas.uazapi import GatewayEnvelope
from app.services.company_service import CompanyService
from app.services.instance_service import InstanceService
from app.services.webhook_event_service import WebhookEventService
from app.utils.rate_limit import check_webhook_rate_limit

logger = logging.getLogger(__name__)

RATE_LIMIT_SCOPE = "webhook"


class GatewayEventProcessor:
    """Applies one gateway event to an instance. Shared with replay."""

    def __init__(self, db: Session, relay: Optional[RelayMessageCommand] = None) -> None:
        self.db = db
        self.adapter = UazapiAdapter()
        self.instances = InstanceService(db)
        self.relay = relay or RelayMessageCommand(db)

    def process(self, instance: Instance, envelope: GatewayEnvelope) -> dict[str, Any]:
        response: dict[str, Any] = {"success": True}
        if self.adapter.is_connection_event(envelope):
            self.instances.apply_connection_event(instance, envelope.event_data)
        if self.adapter.is_qr_event(envelope):
            self.instances.apply_qr_event(instance)
        if self.adapter.is_message_event(envelope):
            outcome = self.relay.execute(instance, self.adapter.extract_messages(envelope))
            if outcome.warning:
                response["warning"] = outcome.warning
        return response


class UazapiWebhookCommand:
    """Command to handle UAZAPI webhook deliveries for one instance."""

    def __init__(
        self,
        db: Session,
        redis_client: Optional[object] = None,
        processor: Optional[GatewayEventProcessor] = None,
    ) -> None:
        self.db = db
        self.settings = get_settings()
        self.redis_client = redis_client
        self.adapter = UazapiAdapter(global_secret=self.settings.uazapi_webhook_secret)
        self.company_service = CompanyService(db)
        self.webhook_events = WebhookEventService(db)
        self.processor = processor or GatewayEventProcessor(db)

    def execute(
        self,
        instance_name: Optional[str],
        headers: Mapping[str, str],
        params: Mapping[str, str],
        body: bytes,
        client_ip: str,
    ) -> dict[str, Any]:
        """
        Execute the webhook for the instance named by ?instanceId=.

        Returns:
            dict: {"success": True} plus "warning" when the support platform
                is not configured for the instance.

        Raises:
            HTTPException: 429 rate limited, 400 missing instance id or bad JSON,
                404 unknown instance, 401 invalid token, 500 unexpected error.
        """
        if not check_webhook_rate_limit(
            RATE_LIMIT_SCOPE,
            client_ip,
            self.redis_client,
            self.settings.webhook_rate_limit_per_minute,
            namespace=self.settings.redis_namespace,
        ):
            logger.warning("Gateway webhook rate limited for %s", client_ip)
            raise HTTPException(status_code=429, detail="Too many requests")

        if not instance_name:
            logger.error("Gateway webhook without instanceId")
            raise HTTPException(status_code=400, detail="Missing instanceId")

        try:
            payload = json.loads(body)
            envelope = self.adapter.parse_webhook(payload)
        except (ValueError, MalformedPayloadError) as e:
            logger.error("Gateway webhook invalid JSON for %s: %s", instance_name, e)
            raise HTTPException(status_code=400, detail="Invalid JSON") from e

        try:
            instance = self.company_service.resolve_instance(instance_name)
        except InstanceNotFoundError as e:
            logger.error("Gateway instance not found: %s", instance_name)
            raise HTTPException(status_code=404, detail="Instance not found") from e

        token = self.adapter.extract_token(headers, params)
        if not self.adapter.is_authorized(instance, token):
            logger.error("Invalid or missing token for instance %s", instance_name)
            raise HTTPException(status_code=401, detail="Unauthorized")

        logger.info(
            "Gateway event %r for instance %s", envelope.event_type, instance_name
        )
        event_id = self.webhook_events.record_incoming(
            instance.company_id,
            WebhookSource.UAZAPI,
            envelope.event_type,
            payload,
            instance_id=instance.id,
        )
        try:
            response = self.processor.process(instance, envelope)
        except SyncError as e:
            self.db.rollback()
            self.webhook_events.mark_outcome(event_id, WebhookStatus.FAILED, e.message)
            raise HTTPException(status_code=e.status_code, detail=e.message) from e
        except Exception as e:
            self.db.rollback()
            logger.exception("Gateway webhook for %s failed", instance_name)
            self.webhook_events.mark_outcome(event_id, WebhookStatus.FAILED, str(e))
            raise HTTPException(status_code=500, detail="Internal server error") from e
        self.webhook_events.mark_outcome(event_id, WebhookStatus.COMPLETED)
        return response

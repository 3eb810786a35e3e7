"""
Command to handle support-platform (Chatwoot) webhooks.

Verifies the shared secret, resolves the tenant, records the delivery, runs
the reconcilers for the event and closes the audit row with the outcome.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from app.adapters.chatwoot import ChatwootAdapter
from app.config import get_settings
from app.constants.sync import ChatwootEvent, WebhookSource, WebhookStatus
from app.exceptions import CompanyNotFoundError, MalformedPayloadError, SyncError
from app.models.company import Company
from app.schemas.chatwoot import ChatwootConversationPayload, ChatwootWebhookEnvelope
from app.services.company_service import CompanyService
from app.services.contact_service import ContactService
from app.services.conversation_service import ConversationService
from app.services.webhook_event_service import WebhookEventService

logger = logging.getLogger(__name__)

IGNORED_EVENTS = {ChatwootEvent.CONTACT_CREATED, ChatwootEvent.WEBWIDGET_TRIGGERED}


class ChatwootEventProcessor:
    """Dispatches one normalized event to the reconcilers. Shared with replay."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.adapter = ChatwootAdapter()
        self.contacts = ContactService(db)
        self.conversations = ConversationService(db)

    def process(self, company: Company, envelope: ChatwootWebhookEnvelope) -> None:
        event = envelope.event
        if event in IGNORED_EVENTS:
            logger.debug("Ignoring %s for company %s", event, company.id)
            return
        handler = {
            ChatwootEvent.CONVERSATION_CREATED: self._conversation_created,
            ChatwootEvent.CONVERSATION_STATUS_CHANGED: self._status_changed,
            ChatwootEvent.CONVERSATION_UPDATED: self._conversation_updated,
            ChatwootEvent.MESSAGE_CREATED: self._message_created,
            ChatwootEvent.CONTACT_UPDATED: self._contact_updated,
        }.get(event)
        if handler is None:
            logger.info("Unhandled Chatwoot event %s for company %s", event, company.id)
            return
        handler(company, envelope)

    @staticmethod
    def _conversation(envelope: ChatwootWebhookEnvelope) -> ChatwootConversationPayload:
        conversation = envelope.conversation
        if conversation is None or conversation.id is None:
            raise MalformedPayloadError(f"{envelope.event} without conversation id")
        return conversation

    def _conversation_created(
        self, company: Company, envelope: ChatwootWebhookEnvelope
    ) -> None:
        conversation = self._conversation(envelope)
        contact_payload = envelope.contact
        phone = contact_payload.phone_number if contact_payload else None
        if not phone:
            logger.warning(
                "Conversation %s has no contact phone, not mirrored", conversation.id
            )
            return
        contact = self.contacts.upsert_contact(
            company.id, phone, self.adapter.contact_attributes(contact_payload)
        )
        if contact is None:
            return
        self.conversations.create_on_conversation_created(
            company.id, conversation.id, contact.id, inbox_id=conversation.inbox_id
        )

    def _status_changed(self, company: Company, envelope: ChatwootWebhookEnvelope) -> None:
        conversation = self._conversation(envelope)
        self.conversations.apply_status_change(
            company.id, conversation.id, conversation.status
        )

    def _conversation_updated(
        self, company: Company, envelope: ChatwootWebhookEnvelope
    ) -> None:
        conversation = self._conversation(envelope)
        self.conversations.apply_conversation_update(
            company.id, conversation.id, self.adapter.conversation_update(conversation)
        )

    def _message_created(self, company: Company, envelope: ChatwootWebhookEnvelope) -> None:
        conversation = self._conversation(envelope)
        if envelope.message is None:
            raise MalformedPayloadError("message_created without message")
        self.conversations.apply_message_created(
            company.id, conversation.id, self.adapter.message_summary(envelope.message)
        )

    def _contact_updated(self, company: Company, envelope: ChatwootWebhookEnvelope) -> None:
        contact_payload = envelope.contact
        if contact_payload is None or not contact_payload.phone_number:
            logger.debug("contact_updated without phone, ignored")
            return
        contact = self.contacts.update_existing(
            company.id,
            contact_payload.phone_number,
            self.adapter.contact_attributes(contact_payload),
        )
        if contact is None:
            logger.info(
                "contact_updated for unknown phone in company %s, ignored", company.id
            )


class ChatwootWebhookCommand:
    """
    Command to handle Chatwoot webhook deliveries.
    Any failure after the audit row exists is recorded on that row.
    """

    def __init__(self, db: Session) -> None:
        self.db = db
        self.settings = get_settings()
        self.adapter = ChatwootAdapter()
        self.company_service = CompanyService(db)
        self.webhook_events = WebhookEventService(db)
        self.processor = ChatwootEventProcessor(db)

    def execute(
        self, headers: Mapping[str, str], payload: Any
    ) -> dict[str, Any]:
        """
        Execute the webhook: verify, resolve tenant, reconcile, audit.

        Returns:
            dict: {"success": True} for handled and ignored events alike.

        Raises:
            HTTPException: 401 on signature mismatch, 400 on malformed body,
                404 if the account maps to no company, 500 on unexpected errors.
        """
        if not self.adapter.verify_webhook(self.settings.chatwoot_webhook_secret, headers):
            logger.warning("Chatwoot webhook rejected: invalid signature")
            raise HTTPException(status_code=401, detail="Invalid signature")
        try:
            envelope = self.adapter.parse_webhook(payload)
        except MalformedPayloadError as e:
            logger.warning("Chatwoot webhook parse error: %s", e.message)
            raise HTTPException(status_code=400, detail="Invalid payload") from e

        try:
            company = self.company_service.resolve_chatwoot_account(envelope.account.id)
        except CompanyNotFoundError as e:
            logger.error("Company not found for Chatwoot account %s", envelope.account.id)
            event_id = self.webhook_events.record_incoming(
                None, WebhookSource.CHATWOOT, envelope.event, payload
            )
            self.webhook_events.mark_outcome(event_id, WebhookStatus.FAILED, e.message)
            raise HTTPException(status_code=404, detail="Company not found") from e

        event_id = self.webhook_events.record_incoming(
            company.id, WebhookSource.CHATWOOT, envelope.event, payload
        )
        self._run(event_id, company, envelope)
        return {"success": True}

    def _run(
        self,
        event_id: Optional[Any],
        company: Company,
        envelope: ChatwootWebhookEnvelope,
    ) -> None:
        try:
            self.processor.process(company, envelope)
        except SyncError as e:
            self.db.rollback()
            self.webhook_events.mark_outcome(event_id, WebhookStatus.FAILED, e.message)
            raise HTTPException(status_code=e.status_code, detail=e.message) from e
        except Exception as e:
            self.db.rollback()
            logger.exception("Chatwoot webhook %s failed", envelope.event)
            self.webhook_events.mark_outcome(event_id, WebhookStatus.FAILED, str(e))
            raise HTTPException(status_code=500, detail="Internal error") from e
        self.webhook_events.mark_outcome(event_id, WebhookStatus.COMPLETED)

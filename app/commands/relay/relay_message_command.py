"""
Command to relay gateway (WhatsApp) messages into the support platform.

For every message: find-or-create the platform contact and conversation over
REST, post the message, and only then mirror the state into the CRM. A
failure on one message is logged and the batch moves on.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from sqlalchemy.orm import Session

from app.adapters.chatwoot import ChatwootClient
from app.adapters.uazapi import extract_message_content, is_relayable_jid
from app.config import get_settings
from app.models.company import Company
from app.models.instance import Instance
from app.schemas.uazapi import GatewayMessage
from app.services.contact_service import ContactAttributes, ContactService
from app.services.conversation_service import ConversationService
from app.utils.phone import extract_phone_from_jid, normalize_phone

logger = logging.getLogger(__name__)

WARNING_NOT_CONFIGURED = "Chatwoot not configured"
WARNING_COMPANY_NOT_CONFIGURED = "Company Chatwoot not configured"

ClientFactory = Callable[[Company], Optional[ChatwootClient]]


@dataclass
class RelayOutcome:
    relayed: int = 0
    skipped: int = 0
    failed: int = 0
    warning: Optional[str] = None


class RelayMessageCommand:
    def __init__(
        self, db: Session, client_factory: Optional[ClientFactory] = None
    ) -> None:
        self.db = db
        self.settings = get_settings()
        self._client_factory = client_factory or self._default_client
        self.contacts = ContactService(db)
        self.conversations = ConversationService(db)

    def _default_client(self, company: Company) -> Optional[ChatwootClient]:
        return ChatwootClient.for_company(
            company,
            self.settings.chatwoot_api_url,
            timeout=self.settings.chatwoot_timeout_seconds,
        )

    def execute(self, instance: Instance, messages: list[GatewayMessage]) -> RelayOutcome:
        if not self.settings.relay_enabled or not instance.chatwoot_inbox_id:
            logger.warning(
                "Chatwoot not configured for instance %s", instance.uazapi_instance_name
            )
            return RelayOutcome(warning=WARNING_NOT_CONFIGURED)

        company = instance.company
        client = self._client_factory(company)
        if client is None:
            logger.error("Company %s has no Chatwoot credentials", company.id)
            return RelayOutcome(warning=WARNING_COMPANY_NOT_CONFIGURED)

        outcome = RelayOutcome()
        for message in messages:
            try:
                if self._relay_one(instance, company, client, message):
                    outcome.relayed += 1
                else:
                    outcome.skipped += 1
            except Exception as e:
                self.db.rollback()
                outcome.failed += 1
                logger.exception(
                    "Failed to relay message %s for instance %s: %s",
                    message.key.id,
                    instance.uazapi_instance_name,
                    e,
                )
        logger.info(
            "Relay for instance %s: %d relayed, %d skipped, %d failed",
            instance.uazapi_instance_name,
            outcome.relayed,
            outcome.skipped,
            outcome.failed,
        )
        return outcome

    def _relay_one(
        self,
        instance: Instance,
        company: Company,
        client: ChatwootClient,
        message: GatewayMessage,
    ) -> bool:
        remote_jid = message.key.remote_jid
        if not is_relayable_jid(remote_jid):
            logger.debug("Skipping non-direct message from %s", remote_jid)
            return False
        digits = extract_phone_from_jid(remote_jid)
        if not digits:
            logger.info("Could not extract phone from %s", remote_jid)
            return False

        phone = normalize_phone(digits, self.settings.default_country_code)
        content = extract_message_content(message.message).content
        if not content:
            logger.debug("Skipping message without body from %s", phone)
            return False
        from_me = message.key.from_me
        logger.debug(
            "Message from %s (fromMe: %s): %s", phone, from_me, content[:50]
        )

        inbox_id = instance.chatwoot_inbox_id
        contact_ref = client.get_or_create_contact(
            inbox_id, phone, message.push_name or digits
        )
        chatwoot_conversation_id = client.get_or_create_conversation(inbox_id, contact_ref)
        client.send_message(chatwoot_conversation_id, content, incoming=not from_me)

        # The CRM mirrors only what the support platform has accepted
        contact = self.contacts.upsert_contact(
            company.id,
            phone,
            ContactAttributes(name=message.push_name, chatwoot_contact_id=contact_ref.id),
        )
        if contact is None:
            return False
        self.conversations.mirror_relayed_message(
            company.id,
            chatwoot_conversation_id,
            contact.id,
            content,
            from_me,
            inbox_id=inbox_id,
        )
        return True

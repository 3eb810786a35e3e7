"""
Support-platform (Chatwoot) adapter.

ChatwootAdapter verifies and normalizes inbound webhooks; ChatwootClient is a
thin REST client (requests, bounded timeout) used by the message relay and
the label sync.
"""

from __future__ import annotations

import secrets
from typing import Any, Mapping, Optional

import requests
from pydantic import ValidationError

from app.adapters.base import BaseWebhookAdapter, get_header
from app.constants.sync import MESSAGE_TYPE_NAMES
from app.exceptions import ChatwootAPIError, MalformedPayloadError
from app.infra.logging_config import get_logger
from app.models.company import Company
from app.schemas.chatwoot import (
    ChatwootContactPayload,
    ChatwootContactRef,
    ChatwootConversationPayload,
    ChatwootLabel,
    ChatwootMessagePayload,
    ChatwootWebhookEnvelope,
)
from app.services.assignment_service import extract_agent_id
from app.services.contact_service import ContactAttributes
from app.services.conversation_service import ConversationUpdate, MessageSummary
from app.utils.extractors import first_match

logger = get_logger("chatwoot")

API_PREFIX = "/api/v1/accounts"
TOKEN_HEADER = "api_access_token"


def _root_if(prefix: str):
    """Extractor returning the body itself when its event starts with prefix."""
    return lambda body: body if str(body.get("event", "")).startswith(prefix) else None


# The platform nests some events and sends others flat at the root
CONVERSATION_EXTRACTORS = (
    lambda body: body["conversation"],
    _root_if("conversation_"),
)
MESSAGE_EXTRACTORS = (
    lambda body: body["message"],
    _root_if("message_"),
)
CONTACT_EXTRACTORS = (
    lambda body: body["contact"],
    lambda body: body["conversation"]["meta"]["sender"],
    lambda body: body["meta"]["sender"],
    _root_if("contact_"),
)


def message_type_code(value: Any) -> Optional[int]:
    """Numeric message_type from either the numeric or the named form."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        if value.isdigit():
            return int(value)
        return MESSAGE_TYPE_NAMES.get(value.lower())
    return None


class ChatwootAdapter(BaseWebhookAdapter[ChatwootWebhookEnvelope]):
    """Chatwoot adapter: verify shared secret, normalize webhook bodies."""

    SIGNATURE_HEADER = "X-Chatwoot-Signature"

    def verify_webhook(
        self, secret: Optional[str], request_headers: Optional[Mapping[str, str]] = None
    ) -> bool:
        """Compare X-Chatwoot-Signature with the shared secret when one is configured."""
        if not secret:
            return True
        signature = get_header(request_headers, self.SIGNATURE_HEADER)
        if signature is None:
            return False
        return secrets.compare_digest(signature.encode(), secret.encode())

    def parse_webhook(self, raw_payload: Any) -> ChatwootWebhookEnvelope:
        if not isinstance(raw_payload, dict):
            raise MalformedPayloadError("Body must be a JSON object")
        event = raw_payload.get("event")
        if not event or not isinstance(event, str):
            raise MalformedPayloadError("Missing event")
        try:
            return ChatwootWebhookEnvelope(
                event=event,
                account=raw_payload.get("account") or {},
                conversation=first_match(CONVERSATION_EXTRACTORS, raw_payload),
                message=first_match(MESSAGE_EXTRACTORS, raw_payload),
                contact=first_match(CONTACT_EXTRACTORS, raw_payload),
            )
        except ValidationError as e:
            raise MalformedPayloadError(f"Invalid {event} payload: {e}") from e

    @staticmethod
    def contact_attributes(contact: ChatwootContactPayload) -> ContactAttributes:
        return ContactAttributes(
            name=contact.name,
            email=contact.email,
            avatar_url=contact.avatar_url,
            chatwoot_contact_id=contact.id,
        )

    @staticmethod
    def conversation_update(
        conversation: ChatwootConversationPayload,
    ) -> ConversationUpdate:
        return ConversationUpdate(
            priority=conversation.priority,
            agent_id=extract_agent_id(conversation.model_dump()),
            labels=[label for label in conversation.labels or [] if label],
        )

    @staticmethod
    def message_summary(message: ChatwootMessagePayload) -> MessageSummary:
        first_attachment = message.attachments[0] if message.attachments else None
        return MessageSummary(
            message_type=message_type_code(message.message_type),
            private=message.private,
            content=message.content,
            content_type=message.content_type,
            attachment_type=first_attachment.file_type if first_attachment else None,
            has_attachments=first_attachment is not None,
        )


class ChatwootClient:
    """REST client scoped to one support-platform account."""

    def __init__(
        self,
        base_url: str,
        account_id: int,
        api_key: str,
        timeout: float = 15,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self.account_id = account_id
        self._api_key = api_key
        self._timeout = timeout

    @classmethod
    def for_company(
        cls, company: Company, base_url: Optional[str], timeout: float = 15
    ) -> Optional["ChatwootClient"]:
        """Client for the company's account, or None if it has no credentials."""
        if not base_url or not company.chatwoot_account_id or not company.chatwoot_api_key:
            return None
        return cls(
            base_url,
            company.chatwoot_account_id,
            company.chatwoot_api_key,
            timeout=timeout,
        )

    def _request(
        self,
        method: str,
        path: str,
        json: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, Any]] = None,
    ) -> Any:
        url = f"{self._base_url}{API_PREFIX}/{self.account_id}{path}"
        headers = {TOKEN_HEADER: self._api_key, "Accept": "application/json"}
        try:
            resp = requests.request(
                method,
                url,
                json=json,
                params=params,
                headers=headers,
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            raise ChatwootAPIError(f"{method} {path} failed: {e}") from e

        if resp.status_code >= 400:
            body = resp.text[:500] if resp.text else "no body"
            raise ChatwootAPIError(
                f"{method} {path} returned HTTP {resp.status_code}: {body}",
                http_status=resp.status_code,
            )
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise ChatwootAPIError(f"{method} {path} returned invalid JSON: {e}") from e

    # --- contacts ---

    def search_contact(self, phone: str) -> Optional[int]:
        data = self._request("GET", "/contacts/search", params={"q": phone})
        payload = (data or {}).get("payload") or []
        if not payload:
            return None
        return payload[0].get("id")

    def get_contact_inbox_source_id(
        self, contact_id: int, inbox_id: int
    ) -> Optional[str]:
        data = self._request("GET", f"/contacts/{contact_id}/contact_inboxes")
        for link in (data or {}).get("payload") or []:
            if (link.get("inbox") or {}).get("id") == inbox_id:
                return link.get("source_id")
        return None

    def create_contact_inbox(self, contact_id: int, inbox_id: int) -> Optional[str]:
        data = self._request(
            "POST",
            f"/contacts/{contact_id}/contact_inboxes",
            json={"inbox_id": inbox_id},
        )
        payload = (data or {}).get("payload") or data or {}
        return payload.get("source_id")

    def create_contact(self, inbox_id: int, phone: str, name: str) -> ChatwootContactRef:
        data = self._request(
            "POST",
            "/contacts",
            json={
                "inbox_id": inbox_id,
                "name": name or phone,
                "phone_number": phone,
                "identifier": phone,
            },
        )
        payload = (data or {}).get("payload") or {}
        contact = payload.get("contact") or payload
        if not contact.get("id"):
            raise ChatwootAPIError("Contact creation returned no id")
        source_id = (payload.get("contact_inbox") or {}).get("source_id") or phone
        return ChatwootContactRef(id=contact["id"], source_id=source_id)

    def get_or_create_contact(
        self, inbox_id: int, phone: str, name: str
    ) -> ChatwootContactRef:
        """Find the contact by phone and make sure it is linked to the inbox."""
        contact_id = self.search_contact(phone)
        if contact_id is None:
            return self.create_contact(inbox_id, phone, name)

        source_id = self.get_contact_inbox_source_id(contact_id, inbox_id)
        if source_id:
            return ChatwootContactRef(id=contact_id, source_id=source_id)
        try:
            source_id = self.create_contact_inbox(contact_id, inbox_id)
        except ChatwootAPIError as e:
            logger.warning(
                "Could not link contact %s to inbox %s, using phone as source: %s",
                contact_id,
                inbox_id,
                e,
            )
        return ChatwootContactRef(id=contact_id, source_id=source_id or phone)

    # --- conversations ---

    def find_open_conversation(self, inbox_id: int, contact_id: int) -> Optional[int]:
        data = self._request(
            "GET", "/conversations", params={"inbox_id": inbox_id, "status": "open"}
        )
        conversations = ((data or {}).get("data") or {}).get("payload") or []
        for conversation in conversations:
            sender = (conversation.get("meta") or {}).get("sender") or {}
            if sender.get("id") == contact_id:
                return conversation.get("id")
        return None

    def create_conversation(self, inbox_id: int, source_id: str, contact_id: int) -> int:
        data = self._request(
            "POST",
            "/conversations",
            json={"inbox_id": inbox_id, "source_id": source_id, "contact_id": contact_id},
        )
        conversation_id = (data or {}).get("id")
        if not conversation_id:
            raise ChatwootAPIError("Conversation creation returned no id")
        return conversation_id

    def get_or_create_conversation(
        self, inbox_id: int, contact: ChatwootContactRef
    ) -> int:
        conversation_id = self.find_open_conversation(inbox_id, contact.id)
        if conversation_id is not None:
            return conversation_id
        return self.create_conversation(inbox_id, contact.source_id, contact.id)

    def send_message(self, conversation_id: int, content: str, incoming: bool) -> Any:
        return self._request(
            "POST",
            f"/conversations/{conversation_id}/messages",
            json={
                "content": content,
                "message_type": "incoming" if incoming else "outgoing",
                "private": False,
            },
        )

    # --- labels ---

    def get_conversation_labels(self, conversation_id: int) -> list[str]:
        data = self._request("GET", f"/conversations/{conversation_id}/labels")
        return list((data or {}).get("payload") or [])

    def set_conversation_labels(self, conversation_id: int, labels: list[str]) -> list[str]:
        data = self._request(
            "POST", f"/conversations/{conversation_id}/labels", json={"labels": labels}
        )
        return list((data or {}).get("payload") or labels)

    def list_labels(self) -> list[ChatwootLabel]:
        data = self._request("GET", "/labels")
        return [ChatwootLabel.model_validate(item) for item in (data or {}).get("payload") or []]

    def create_label(
        self, title: str, color: Optional[str] = None, description: Optional[str] = None
    ) -> Any:
        return self._request(
            "POST",
            "/labels",
            json={
                "title": title,
                "color": color,
                "description": description,
                "show_on_sidebar": True,
            },
        )

    def update_label(self, label_id: int, **fields: Any) -> Any:
        return self._request("PATCH", f"/labels/{label_id}", json=fields)

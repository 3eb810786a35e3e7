"""
Messaging-gateway (UAZAPI) adapter.

The gateway is inconsistent about where it places the event name, the event
data and the message list; each is derived through an ordered extractor list.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from pydantic import ValidationError

from app.adapters.base import BaseWebhookAdapter, get_header
from app.exceptions import MalformedPayloadError
from app.infra.logging_config import get_logger
from app.models.instance import Instance
from app.schemas.uazapi import GatewayEnvelope, GatewayMessage, MessageContent
from app.utils.extractors import first_match, non_empty

logger = get_logger("uazapi")

TOKEN_HEADER = "x-uazapi-token"
BEARER_PREFIX = "Bearer "

CONNECTION_EVENTS = {"connection.update", "connection"}
QR_EVENTS = {"qrcode.updated", "qrcode"}
MESSAGE_EVENTS = {"messages.upsert", "message", "messages"}

BROADCAST_JID_MARKER = "status@broadcast"
GROUP_JID_SUFFIX = "@g.us"

EVENT_TYPE_EXTRACTORS = (
    lambda body: non_empty(body["event"]),
    lambda body: non_empty(body["type"]),
    lambda body: non_empty(body["action"]),
)
EVENT_DATA_EXTRACTORS = (
    lambda body: non_empty(body["data"]),
    lambda body: non_empty(body["payload"]),
    lambda body: body,
)
MESSAGE_LIST_EXTRACTORS = (
    lambda data: data["messages"] if isinstance(data["messages"], list) else None,
    # A nested "message" is only a gateway message when it carries its own key
    lambda data: [data["message"]] if "key" in data["message"] else None,
    lambda data: data if isinstance(data, list) else None,
    lambda data: [data],
)
TOKEN_EXTRACTORS = (
    lambda req: non_empty(get_header(req["headers"], TOKEN_HEADER)),
    lambda req: non_empty(
        get_header(req["headers"], "authorization").replace(BEARER_PREFIX, "", 1)
    ),
    lambda req: non_empty(req["params"]["token"]),
)


def _caption_or(kind: str, placeholder: str, type_: str):
    def extract(message: dict[str, Any]) -> Optional[MessageContent]:
        media = message[kind]
        if media is None:
            return None
        caption = media.get("caption") if isinstance(media, dict) else None
        return MessageContent(content=caption or placeholder, type=type_)

    return extract


def _document(message: dict[str, Any]) -> Optional[MessageContent]:
    document = message["documentMessage"]
    if document is None:
        return None
    file_name = document.get("fileName") if isinstance(document, dict) else None
    return MessageContent(content=f"[Documento: {file_name or 'arquivo'}]", type="file")


def _placeholder(kind: str, content: str, type_: str):
    def extract(message: dict[str, Any]) -> Optional[MessageContent]:
        return MessageContent(content=content, type=type_) if message[kind] is not None else None

    return extract


CONTENT_EXTRACTORS = (
    lambda m: MessageContent(content=m["conversation"], type="text")
    if m["conversation"]
    else None,
    lambda m: MessageContent(content=m["extendedTextMessage"]["text"], type="text")
    if m["extendedTextMessage"]["text"]
    else None,
    _caption_or("imageMessage", "[Imagem]", "image"),
    _caption_or("videoMessage", "[Video]", "video"),
    _placeholder("audioMessage", "[Audio]", "audio"),
    _document,
    _placeholder("stickerMessage", "[Sticker]", "sticker"),
)
FALLBACK_CONTENT = MessageContent(content="[Mensagem]", type="unknown")


def extract_message_content(message: Optional[dict[str, Any]]) -> MessageContent:
    """Text summary of a WhatsApp message body, trying known shapes in order."""
    if not message:
        return MessageContent(content="", type="text")
    return first_match(CONTENT_EXTRACTORS, message) or FALLBACK_CONTENT


def is_relayable_jid(remote_jid: Optional[str]) -> bool:
    """Direct chats only: no status broadcasts, no groups."""
    if not remote_jid:
        return False
    return BROADCAST_JID_MARKER not in remote_jid and GROUP_JID_SUFFIX not in remote_jid


class UazapiAdapter(BaseWebhookAdapter[GatewayEnvelope]):
    """UAZAPI adapter: token check against the instance and the global secret."""

    def __init__(self, global_secret: Optional[str] = None) -> None:
        self._global_secret = global_secret

    @staticmethod
    def extract_token(
        headers: Optional[Mapping[str, str]], params: Optional[Mapping[str, str]] = None
    ) -> Optional[str]:
        return first_match(
            TOKEN_EXTRACTORS, {"headers": headers or {}, "params": params or {}}
        )

    def is_authorized(self, instance: Instance, token: Optional[str]) -> bool:
        """Token must equal the instance's own token or the global shared secret."""
        if not token:
            return False
        if instance.uazapi_token and token == instance.uazapi_token:
            return True
        return bool(self._global_secret) and token == self._global_secret

    def parse_webhook(self, raw_payload: Any) -> GatewayEnvelope:
        if not isinstance(raw_payload, dict):
            raise MalformedPayloadError("Body must be a JSON object")
        event_type = first_match(EVENT_TYPE_EXTRACTORS, raw_payload) or ""
        event_data = first_match(EVENT_DATA_EXTRACTORS, raw_payload)
        return GatewayEnvelope(event_type=str(event_type), event_data=event_data)

    @staticmethod
    def is_connection_event(envelope: GatewayEnvelope) -> bool:
        data = envelope.event_data
        return envelope.event_type in CONNECTION_EVENTS or (
            isinstance(data, dict) and ("connection" in data or "state" in data)
        )

    @staticmethod
    def is_qr_event(envelope: GatewayEnvelope) -> bool:
        return envelope.event_type in QR_EVENTS

    @staticmethod
    def is_message_event(envelope: GatewayEnvelope) -> bool:
        return envelope.event_type in MESSAGE_EVENTS

    @staticmethod
    def extract_messages(envelope: GatewayEnvelope) -> list[GatewayMessage]:
        """Messages in the event; entries that do not look like messages are dropped."""
        raw_messages = first_match(MESSAGE_LIST_EXTRACTORS, envelope.event_data) or []
        messages = []
        for raw in raw_messages:
            if not isinstance(raw, dict):
                continue
            try:
                messages.append(GatewayMessage.model_validate(raw))
            except ValidationError as e:
                logger.info("Skipping unparseable gateway message: %s", e)
        return messages

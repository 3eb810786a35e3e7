"""
Messaging-gateway (UAZAPI) webhook schemas.

The gateway is loose about where it puts things, so the envelope is derived
by the adapter rather than validated directly from the body.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class GatewayEnvelope(BaseModel):
    """eventType and eventData as derived from the raw body."""

    event_type: str = ""
    event_data: Any = Field(default_factory=dict)


class GatewayMessageKey(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    remote_jid: Optional[str] = Field(default=None, alias="remoteJid")
    from_me: bool = Field(default=False, alias="fromMe")
    id: Optional[str] = None


class GatewayMessage(BaseModel):
    """One WhatsApp message as delivered by the gateway."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    key: GatewayMessageKey = Field(default_factory=GatewayMessageKey)
    message: Optional[dict[str, Any]] = None
    push_name: Optional[str] = Field(default=None, alias="pushName")
    message_timestamp: Optional[int | str] = Field(
        default=None, alias="messageTimestamp"
    )


class MessageContent(BaseModel):
    """Best-effort text summary of a gateway message."""

    content: str
    type: str


class GatewayWebhookResponse(BaseModel):
    success: bool = True
    warning: Optional[str] = None
    processed: Optional[int] = None

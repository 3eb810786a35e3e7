"""
Support-platform (Chatwoot) webhook and REST payload schemas.

Only the fields the reconcilers read are declared; everything else the
platform sends is kept (extra="allow") so the raw event can be audited.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class ChatwootAccount(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[int] = None
    name: Optional[str] = None


class ChatwootContactPayload(BaseModel):
    """Contact as sent in webhooks (contact, conversation.meta.sender)."""

    model_config = ConfigDict(extra="allow")

    id: Optional[int] = None
    name: Optional[str] = None
    email: Optional[str] = None
    phone_number: Optional[str] = None
    avatar_url: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("avatar_url", "thumbnail")
    )


class ChatwootConversationPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[int] = None
    inbox_id: Optional[int] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    labels: Optional[list[str]] = None
    meta: Optional[dict[str, Any]] = None
    assignee: Optional[dict[str, Any]] = None


class ChatwootAttachment(BaseModel):
    model_config = ConfigDict(extra="allow")

    file_type: Optional[str] = None
    data_url: Optional[str] = None


class ChatwootMessagePayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[int] = None
    content: Optional[str] = None
    content_type: Optional[str] = None
    # Numeric in webhook bodies, sometimes a name ("incoming") in REST-shaped bodies
    message_type: Optional[int | str] = None
    private: bool = False
    attachments: list[ChatwootAttachment] = Field(default_factory=list)


class ChatwootWebhookEnvelope(BaseModel):
    """Normalized webhook body: {event, account, conversation?, message?, contact?}."""

    event: str
    account: ChatwootAccount = Field(default_factory=ChatwootAccount)
    conversation: Optional[ChatwootConversationPayload] = None
    message: Optional[ChatwootMessagePayload] = None
    contact: Optional[ChatwootContactPayload] = None


class ChatwootContactRef(BaseModel):
    """Support-platform contact id plus the inbox link (source_id) to message it."""

    id: int
    source_id: str


class ChatwootLabel(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: int
    title: str
    color: Optional[str] = None
    description: Optional[str] = None

"""Webhook command handlers."""

from app.commands.webhooks.chatwoot_command import (
    ChatwootEventProcessor,
    ChatwootWebhookCommand,
)
from app.commands.webhooks.uazapi_command import (
    GatewayEventProcessor,
    UazapiWebhookCommand,
)

__all__ = [
    "ChatwootEventProcessor",
    "ChatwootWebhookCommand",
    "GatewayEventProcessor",
    "UazapiWebhookCommand",
]

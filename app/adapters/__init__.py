"""Platform adapters for the support platform and the messaging gateway."""

from app.adapters.base import BaseWebhookAdapter
from app.adapters.chatwoot import ChatwootAdapter, ChatwootClient
from app.adapters.uazapi import UazapiAdapter

__all__ = ["BaseWebhookAdapter", "ChatwootAdapter", "ChatwootClient", "UazapiAdapter"]

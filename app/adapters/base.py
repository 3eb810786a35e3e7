"""
Webhook adapter interface.

Adapters encapsulate vendor-specific payload shapes and authentication and
hand the reconcilers a normalized envelope.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Generic, Mapping, Optional, TypeVar

EnvelopeT = TypeVar("EnvelopeT")


def get_header(headers: Optional[Mapping[str, str]], name: str) -> Optional[str]:
    """Case-insensitive header lookup."""
    if not headers:
        return None
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return None


class BaseWebhookAdapter(ABC, Generic[EnvelopeT]):
    """Contract for inbound webhook adapters. New vendors implement this interface."""

    @abstractmethod
    def parse_webhook(self, raw_payload: Any) -> EnvelopeT:
        """Parse raw webhook payload into the normalized envelope. Raise if invalid."""
        ...

    def verify_webhook(
        self, secret: Optional[str], request_headers: Optional[Mapping[str, str]] = None
    ) -> bool:
        """
        Verify webhook request (e.g. shared secret). Override if the vendor supports it.
        Return True if valid or verification not required; False to reject.
        """
        return True

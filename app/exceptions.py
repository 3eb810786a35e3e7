"""Domain errors raised by reconcilers and translated at the ingress boundary."""

from __future__ import annotations

from typing import Optional


class SyncError(Exception):
    """Base class for synchronization errors."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class CompanyNotFoundError(SyncError):
    """No tenant is mapped to the external account id."""

    status_code = 404

    def __init__(self, account_id: object) -> None:
        super().__init__(f"Company not found for account {account_id}")
        self.account_id = account_id


class InstanceNotFoundError(SyncError):
    status_code = 404

    def __init__(self, instance_name: str) -> None:
        super().__init__(f"Instance not found: {instance_name}")
        self.instance_name = instance_name


class WebhookAuthError(SyncError):
    status_code = 401


class RateLimitExceededError(SyncError):
    status_code = 429


class MalformedPayloadError(SyncError):
    status_code = 400


class ChatwootAPIError(SyncError):
    """Support-platform REST call failed (HTTP error, timeout, bad body)."""

    status_code = 502

    def __init__(self, message: str, http_status: Optional[int] = None) -> None:
        super().__init__(message)
        self.http_status = http_status

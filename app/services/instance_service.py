"""Gateway instance connection-state tracking."""

from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from app.constants.sync import InstanceStatus
from app.models.instance import Instance
from app.models.mixins import utcnow

logger = logging.getLogger(__name__)


def detect_connection_status(event_data: Any) -> Optional[InstanceStatus]:
    """
    connected / disconnected as signalled by any of the vendor's field shapes,
    or None when the payload says neither.
    """
    if not isinstance(event_data, dict):
        return None
    nested = event_data.get("instance")
    nested_state = nested.get("state") if isinstance(nested, dict) else None

    if (
        event_data.get("state") == "open"
        or event_data.get("connection") == "open"
        or event_data.get("connected") is True
        or event_data.get("status") == "connected"
        or nested_state == "open"
    ):
        return InstanceStatus.CONNECTED
    if (
        event_data.get("state") == "close"
        or event_data.get("connection") == "close"
        or event_data.get("connected") is False
        or event_data.get("status") == "disconnected"
        or nested_state == "close"
    ):
        return InstanceStatus.DISCONNECTED
    return None


class InstanceService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def apply_connection_event(self, instance: Instance, event_data: Any) -> Instance:
        new_status = detect_connection_status(event_data)
        if new_status is None or new_status == instance.uazapi_status:
            return instance

        logger.info(
            "Instance %s status %s -> %s",
            instance.uazapi_instance_name,
            instance.uazapi_status,
            new_status,
        )
        instance.uazapi_status = new_status.value
        if new_status == InstanceStatus.CONNECTED:
            instance.disconnected_at = None
            if instance.connected_at is None:
                instance.connected_at = utcnow()
        else:
            instance.disconnected_at = utcnow()
        self.db.commit()
        self.db.refresh(instance)
        return instance

    def apply_qr_event(self, instance: Instance) -> Instance:
        """A fresh QR code means pairing is pending, unless already connected."""
        if instance.uazapi_status in (
            InstanceStatus.CONNECTED,
            InstanceStatus.QR_READY,
        ):
            return instance
        instance.uazapi_status = InstanceStatus.QR_READY.value
        self.db.commit()
        self.db.refresh(instance)
        logger.info("Instance %s is waiting for QR pairing", instance.uazapi_instance_name)
        return instance

"""Vocabulary shared by the ingress handlers and reconcilers."""

from enum import StrEnum


class WebhookSource(StrEnum):
    """External systems that deliver webhooks."""

    CHATWOOT = "chatwoot"
    UAZAPI = "uazapi"


class WebhookStatus(StrEnum):
    """Audit row states. processing -> completed | failed only."""

    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ChatwootEvent(StrEnum):
    CONVERSATION_CREATED = "conversation_created"
    CONVERSATION_STATUS_CHANGED = "conversation_status_changed"
    CONVERSATION_UPDATED = "conversation_updated"
    MESSAGE_CREATED = "message_created"
    CONTACT_CREATED = "contact_created"
    CONTACT_UPDATED = "contact_updated"
    WEBWIDGET_TRIGGERED = "webwidget_triggered"


class ConversationStatus(StrEnum):
    OPEN = "open"
    PENDING = "pending"
    RESOLVED = "resolved"


class InstanceStatus(StrEnum):
    CONNECTING = "connecting"
    QR_READY = "qr_ready"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    ERROR = "error"


class TimelineEventType(StrEnum):
    CONVERSATION_STARTED = "conversation_started"
    STATUS_CHANGED = "status_changed"
    PRIORITY_CHANGED = "priority_changed"
    ASSIGNMENT_CHANGED = "assignment_changed"
    STAGE_CHANGED = "stage_changed"
    MESSAGE_RECEIVED = "message_received"
    MESSAGE_SENT = "message_sent"


# Support-platform message_type codes (numeric in webhooks, strings in REST)
MESSAGE_TYPE_INCOMING = 0
MESSAGE_TYPE_OUTGOING = 1
MESSAGE_TYPE_ACTIVITY = 2
MESSAGE_TYPE_NAMES = {
    "incoming": MESSAGE_TYPE_INCOMING,
    "outgoing": MESSAGE_TYPE_OUTGOING,
    "activity": MESSAGE_TYPE_ACTIVITY,
    "template": MESSAGE_TYPE_OUTGOING,
}

DEFAULT_PRIORITY = "none"
CONTACT_SOURCE_WHATSAPP = "whatsapp"
LAST_MESSAGE_MAX_LENGTH = 100

# Preview used for last_message when a message has no text body
MEDIA_LABELS = {
    "image": "📷 Imagem",
    "audio": "🎵 Áudio",
    "video": "🎬 Vídeo",
    "file": "📎 Arquivo",
    "location": "📍 Localização",
}
DEFAULT_MEDIA_LABEL = "📎 Anexo"

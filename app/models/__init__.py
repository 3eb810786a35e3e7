from app.models.company import Company
from app.models.contact import Contact
from app.models.conversation import Conversation
from app.models.instance import Instance
from app.models.kanban_stage import KanbanStage
from app.models.timeline_event import TimelineEvent
from app.models.user import User
from app.models.webhook_event import WebhookEvent

__all__ = [
    "Company",
    "Contact",
    "Conversation",
    "Instance",
    "KanbanStage",
    "TimelineEvent",
    "User",
    "WebhookEvent",
]

from app.services.assignment_service import AssignmentService
from app.services.company_service import CompanyService
from app.services.contact_service import ContactService
from app.services.conversation_service import ConversationService
from app.services.instance_service import InstanceService
from app.services.timeline_event_service import TimelineEventService
from app.services.webhook_event_service import WebhookEventService

__all__ = [
    "AssignmentService",
    "CompanyService",
    "ContactService",
    "ConversationService",
    "InstanceService",
    "TimelineEventService",
    "WebhookEventService",
]

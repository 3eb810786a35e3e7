"""Support-platform agent id -> internal user id mapping."""

from __future__ import annotations

import logging
from typing import Any, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.models.user import User
from app.utils.extractors import first_match

logger = logging.getLogger(__name__)

# Nested meta location first, root-level assignee second
AGENT_ID_EXTRACTORS = (
    lambda conv: conv["meta"]["assignee"]["id"],
    lambda conv: conv["assignee"]["id"],
)


def extract_agent_id(conversation: Any) -> Optional[int]:
    """External agent id carried by a conversation payload, or None (unassigned)."""
    if not isinstance(conversation, dict):
        return None
    value = first_match(AGENT_ID_EXTRACTORS, conversation)
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        logger.warning("Ignoring non-numeric assignee id %r", value)
        return None


class AssignmentService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def resolve_user_id(
        self, company_id: UUID, agent_id: Optional[int]
    ) -> Optional[UUID]:
        """
        Internal user for the external agent, scoped to the company.

        An agent without a mapped user resolves to None (unassigned).
        """
        if agent_id is None:
            return None
        user = (
            self.db.query(User)
            .filter(User.company_id == company_id, User.chatwoot_agent_id == agent_id)
            .first()
        )
        if user is None:
            logger.info(
                "No user mapped to agent %s in company %s, treating as unassigned",
                agent_id,
                company_id,
            )
            return None
        return user.id

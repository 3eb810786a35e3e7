"""Conversation API: pipeline stage moves and timeline."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.commands.sync_stage_labels_command import MoveConversationStageCommand
from app.db import get_db
from app.routers.utils.dependencies import require_admin_token
from app.schemas.conversation import ConversationRead, StageMoveRequest
from app.schemas.timeline_event import TimelineEventRead
from app.services.conversation_service import ConversationService
from app.services.timeline_event_service import TimelineEventService

router = APIRouter(
    prefix="/conversations",
    tags=["conversations"],
    dependencies=[Depends(require_admin_token)],
    responses={404: {"description": "Not found"}},
)


@router.post("/{conversation_id}/stage", response_model=ConversationRead)
def move_conversation_stage(
    conversation_id: UUID,
    data: StageMoveRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
) -> ConversationRead:
    """
    Move the conversation to another stage and return the stored row.
    The matching Chatwoot labels are rewritten after the response is sent.
    """
    command = MoveConversationStageCommand(db)
    return command.execute(conversation_id, data.stage_id, background_tasks)


@router.get("/{conversation_id}/timeline", response_model=dict)
def get_conversation_timeline(
    conversation_id: UUID,
    event_type: Optional[str] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=200),
    db: Session = Depends(get_db),
) -> dict:
    """Timeline events of the conversation, oldest first."""
    if ConversationService(db).get_conversation(conversation_id) is None:
        raise HTTPException(status_code=404, detail="Conversation not found")
    events = TimelineEventService(db).get_conversation_timeline(
        conversation_id, event_type=event_type, skip=skip, limit=limit
    )
    return {"items": [TimelineEventRead.model_validate(e) for e in events]}

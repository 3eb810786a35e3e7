"""Label catalogue API: push stages to Chatwoot as labels and report drift."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.commands.sync_stage_labels_command import SyncLabelCatalogueCommand
from app.db import get_db
from app.routers.utils.dependencies import require_admin_token
from app.schemas.conversation import LabelDriftRead, LabelSyncResult

router = APIRouter(
    prefix="/companies/{company_id}/labels",
    tags=["labels"],
    dependencies=[Depends(require_admin_token)],
    responses={404: {"description": "Not found"}},
)


@router.post("/sync", response_model=LabelSyncResult)
def sync_stage_labels(company_id: UUID, db: Session = Depends(get_db)) -> LabelSyncResult:
    """Create or update one Chatwoot label per pipeline stage."""
    return LabelSyncResult(**SyncLabelCatalogueCommand(db).execute(company_id))


@router.get("/drift", response_model=LabelDriftRead)
def get_label_drift(company_id: UUID, db: Session = Depends(get_db)) -> LabelDriftRead:
    """Stage slugs that have no Chatwoot label of the same title."""
    report = SyncLabelCatalogueCommand(db).drift(company_id)
    return LabelDriftRead(
        in_sync=report.in_sync,
        matched_labels=report.matched_labels,
        missing_labels=report.missing_labels,
    )

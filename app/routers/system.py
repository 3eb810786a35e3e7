from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import get_settings
from app.db import get_db
from app.infra.logging_config import get_logger
from app.services.webhook_event_service import WebhookEventService

logger = get_logger("health")

router = APIRouter(tags=["system"])

HEALTH_WINDOW = 100
FAILURE_THRESHOLD = 10


@router.get("/health")
def health(db: Session = Depends(get_db)) -> JSONResponse:
    """
    Database reachability plus webhook health: degraded when 10 or more of the
    last 100 deliveries failed.
    """
    s = get_settings()
    checks: dict[str, Any] = {}
    healthy = True

    try:
        db.execute(text("SELECT 1"))
        checks["database"] = {"status": "ok"}
    except SQLAlchemyError as e:
        logger.error("Health check database error: %s", e)
        db.rollback()
        checks["database"] = {"status": "error"}
        healthy = False

    if healthy:
        failed = WebhookEventService(db).count_recent_failures(window=HEALTH_WINDOW)
        webhooks_ok = failed < FAILURE_THRESHOLD
        checks["webhooks"] = {
            "status": "ok" if webhooks_ok else "degraded",
            "recent_failures": failed,
            "window": HEALTH_WINDOW,
        }
        healthy = webhooks_ok

    body = {
        "status": "healthy" if healthy else "degraded",
        "app": s.app_name,
        "environment": s.environment,
        "checks": checks,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    return JSONResponse(status_code=200 if healthy else 503, content=body)

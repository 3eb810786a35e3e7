"""
Webhook routes for the support platform and the messaging gateway.

External systems POST events here. The command work (database and outbound
REST calls) is blocking, so it runs in the threadpool.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

import redis
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.commands.webhooks.chatwoot_command import ChatwootWebhookCommand
from app.commands.webhooks.uazapi_command import UazapiWebhookCommand
from app.db import get_db
from app.utils.rate_limit import get_client_ip, get_rate_limit_redis

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("/chatwoot")
async def chatwoot_webhook(
    request: Request,
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    """
    Receive Chatwoot events. Reconcile contacts and conversations, return 200.
    Validates X-Chatwoot-Signature if CHATWOOT_WEBHOOK_SECRET is set.
    """
    try:
        body = await request.json()
    except ValueError as e:
        logger.warning("Chatwoot webhook invalid JSON: %s", e)
        raise HTTPException(status_code=400, detail="Invalid JSON body") from e
    command = ChatwootWebhookCommand(db)
    return await run_in_threadpool(command.execute, dict(request.headers), body)


@router.post("/uazapi")
async def uazapi_webhook(
    request: Request,
    instanceId: Optional[str] = None,
    db: Session = Depends(get_db),
    redis_client: Optional[redis.Redis] = Depends(get_rate_limit_redis),
) -> dict[str, Any]:
    """
    Receive UAZAPI events for ?instanceId=<name>: connection state, QR codes
    and messages (relayed to Chatwoot).
    """
    body = await request.body()
    command = UazapiWebhookCommand(db, redis_client=redis_client)
    return await run_in_threadpool(
        command.execute,
        instanceId,
        dict(request.headers),
        dict(request.query_params),
        body,
        get_client_ip(request),
    )


@router.get("/uazapi")
def uazapi_webhook_status() -> dict[str, Any]:
    """Liveness probe used when registering the webhook with the gateway."""
    return {
        "success": True,
        "message": "UAZAPI webhook endpoint is active",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

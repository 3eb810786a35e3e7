"""
Per-client-IP rate limiting for webhook ingress.

Uses a Redis fixed one-minute window when WEBHOOK_RATE_LIMIT_PER_MINUTE is set.
If the limit is unset or Redis is unavailable, requests are allowed.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional

import redis
from fastapi import Request

from app.config import get_settings

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60
UNKNOWN_CLIENT = "unknown"


def get_client_ip(request: Request) -> str:
    """Client IP, honouring X-Forwarded-For / X-Real-IP set by the proxy."""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN_CLIENT


@lru_cache(maxsize=None)
def _redis_client(host: str, port: int) -> redis.Redis:
    """One client (and connection pool) per Redis address for the process."""
    return redis.Redis(
        host=host,
        port=port,
        socket_connect_timeout=2,
        socket_timeout=2,
    )


def get_rate_limit_redis() -> Optional[redis.Redis]:
    """Redis client for rate-limit counters (FastAPI dependency)."""
    settings = get_settings()
    if not settings.webhook_rate_limit_per_minute:
        return None
    return _redis_client(settings.redis_host, settings.redis_port)


def check_webhook_rate_limit(
    scope: str,
    client_ip: str,
    redis_client: Optional[object],
    limit_per_minute: Optional[int],
    namespace: str = "crm_sync",
) -> bool:
    """
    Check if client_ip is within the per-minute limit for scope.
    Returns True if allowed, False if rate limited.
    If redis_client or limit_per_minute is None, always returns True.
    """
    if redis_client is None or limit_per_minute is None or limit_per_minute <= 0:
        return True
    key = f"{namespace}:ratelimit:{scope}:{client_ip}"
    try:
        pipe = redis_client.pipeline()
        pipe.incr(key)
        pipe.ttl(key)
        count, ttl = pipe.execute()
        if ttl < 0:
            # New window: the TTL is set once so later hits do not extend it
            redis_client.expire(key, WINDOW_SECONDS)
        return count <= limit_per_minute
    except Exception as e:
        logger.warning("Rate limit check failed, allowing request: %s", e)
        return True

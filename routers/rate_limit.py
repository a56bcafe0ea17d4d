"""Redis-backed per-client rate limiting for engagement endpoints."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Dict, Optional, Tuple

from fastapi import HTTPException, Request
import redis.asyncio as redis

from config import settings

logger = logging.getLogger(__name__)

_local_counters: Dict[str, Tuple[int, float]] = {}
_local_lock = asyncio.Lock()


def _client_identifier(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


async def _consume_local_quota(key: str, limit: int, window_seconds: int) -> bool:
    now = time.time()
    async with _local_lock:
        count, reset_at = _local_counters.get(key, (0, now + window_seconds))
        if now >= reset_at:
            count = 0
            reset_at = now + window_seconds
        count += 1
        _local_counters[key] = (count, reset_at)
        return count <= limit


async def _consume_redis_quota(key: str, limit: int, window_seconds: int) -> bool:
    client = redis.from_url(settings.REDIS_URL, decode_responses=True)
    try:
        current = await client.incr(key)
        if current == 1:
            await client.expire(key, window_seconds)
    finally:
        await client.aclose()
    return current <= limit


def rate_limit(prefix: str, limit: Optional[int] = None, window_seconds: int = 60) -> Callable[..., None]:
    """Return a dependency enforcing a fixed-window quota per client.

    ``limit`` defaults to ENGAGEMENT_RATE_LIMIT_PER_MINUTE. When Redis is not
    reachable the quota is counted in-process instead.
    """

    async def _dependency(request: Request):
        if getattr(request.app.state, "disable_rate_limits", False):
            return

        quota = int(limit if limit is not None else settings.ENGAGEMENT_RATE_LIMIT_PER_MINUTE)
        key = f"feed:rate:{prefix}:{_client_identifier(request)}"
        try:
            allowed = await _consume_redis_quota(key, quota, window_seconds)
        except Exception as exc:
            logger.debug("Rate limit falling back to local counters: %s", exc)
            allowed = await _consume_local_quota(key, quota, window_seconds)

        if not allowed:
            raise HTTPException(
                status_code=429,
                detail=f"Rate limit exceeded for {prefix}. Try again later.",
            )

    return _dependency

"""
Health check endpoints.
"""

from fastapi import APIRouter
from sqlalchemy import text
import redis.asyncio as redis

from config import settings
from database import engine
from routers.responses import success_response

router = APIRouter()


@router.get("/health")
async def health_check():
    """
    Health check endpoint.
    Reports database and Redis reachability; Redis only backs caches and
    rate limits, so its absence degrades but does not fail the feed.
    """
    health_status = {
        "status": "healthy",
        "api": "up",
        "database": "unknown",
        "redis": "unknown",
    }

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        health_status["database"] = "up"
    except Exception as e:
        health_status["database"] = f"down: {str(e)}"
        health_status["status"] = "degraded"

    try:
        r = redis.from_url(settings.REDIS_URL)
        try:
            await r.ping()
        finally:
            await r.aclose()
        health_status["redis"] = "up"
    except Exception as e:
        health_status["redis"] = f"down: {str(e)}"
        health_status["status"] = "degraded"

    return success_response(health_status)


@router.get("/health/live")
async def liveness_check():
    """Kubernetes-style liveness probe."""
    return success_response({"alive": True})

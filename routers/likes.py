"""Like/unlike router."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from routers.auth_scope import AuthContext, get_auth_context
from routers.dependencies import get_engagement_ledger
from routers.rate_limit import rate_limit
from routers.responses import success_response
from services.engagement import EngagementLedger
from services.feed import parse_source_kind

router = APIRouter()


class LikeRequest(BaseModel):
    resource_id: str = Field(min_length=1)


@router.post("/toggle")
async def toggle_like(
    request: LikeRequest,
    _rate_limit: None = Depends(rate_limit("likes_toggle")),
    auth: AuthContext = Depends(get_auth_context),
    ledger: EngagementLedger = Depends(get_engagement_ledger),
    db: AsyncSession = Depends(get_db),
):
    result = await ledger.toggle_like(db, auth.user_id, request.resource_id)
    return success_response(result, "Liked." if result["liked"] else "Like removed.")


@router.post("")
async def like(
    request: LikeRequest,
    _rate_limit: None = Depends(rate_limit("likes_create")),
    auth: AuthContext = Depends(get_auth_context),
    ledger: EngagementLedger = Depends(get_engagement_ledger),
    db: AsyncSession = Depends(get_db),
):
    result = await ledger.like(db, auth.user_id, request.resource_id)
    return success_response(result, None if result["created"] else "Already liked.")


@router.delete("")
async def unlike(
    resource_id: str,
    _rate_limit: None = Depends(rate_limit("likes_delete")),
    auth: AuthContext = Depends(get_auth_context),
    ledger: EngagementLedger = Depends(get_engagement_ledger),
    db: AsyncSession = Depends(get_db),
):
    result = await ledger.unlike(db, auth.user_id, resource_id)
    return success_response(result, None if result["removed"] else "Not liked.")


@router.get("")
async def list_likes(
    type: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
    auth: AuthContext = Depends(get_auth_context),
    ledger: EngagementLedger = Depends(get_engagement_ledger),
    db: AsyncSession = Depends(get_db),
):
    result = await ledger.list_likes(
        db,
        auth.user_id,
        source_kind=parse_source_kind(type),
        page=max(page, 1),
        limit=max(1, min(limit, 100)),
    )
    return success_response(result)

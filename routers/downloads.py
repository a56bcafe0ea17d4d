"""Download tracking router."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from routers.auth_scope import AuthContext, get_auth_context
from routers.dependencies import get_access_gate, get_authenticated_requester, get_engagement_ledger
from routers.rate_limit import rate_limit
from routers.responses import success_response
from services.access_gate import AccessGate
from services.content_types import UserContext
from services.engagement import EngagementLedger, record_download_for_requester
from services.feed import parse_source_kind

router = APIRouter()


class TrackDownloadRequest(BaseModel):
    resource_id: str = Field(min_length=1)
    file_url: Optional[str] = None


@router.post("/track")
async def track_download(
    request: TrackDownloadRequest,
    _rate_limit: None = Depends(rate_limit("downloads_track")),
    requester: UserContext = Depends(get_authenticated_requester),
    ledger: EngagementLedger = Depends(get_engagement_ledger),
    gate: AccessGate = Depends(get_access_gate),
    db: AsyncSession = Depends(get_db),
):
    result = await record_download_for_requester(
        ledger=ledger,
        gate=gate,
        db=db,
        requester=requester,
        resource_id=request.resource_id,
        file_url=request.file_url,
    )
    if not result["download_eligible"]:
        return success_response(result, "An active subscription is required to download this item.")
    return success_response(result)


@router.get("")
async def download_history(
    type: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
    auth: AuthContext = Depends(get_auth_context),
    ledger: EngagementLedger = Depends(get_engagement_ledger),
    db: AsyncSession = Depends(get_db),
):
    result = await ledger.download_history(
        db,
        auth.user_id,
        source_kind=parse_source_kind(type),
        page=max(page, 1),
        limit=max(1, min(limit, 100)),
    )
    return success_response(result)

"""Balanced content feed router."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from database import get_db
from routers.dependencies import get_feed_assembler, get_requester
from routers.responses import success_response
from services.content_types import UserContext
from services.feed import FeedAssembler, build_feed_filter, serialize_feed_page

router = APIRouter()


@router.get("")
async def get_feed(
    search: Optional[str] = Query(default=None, description="Free-text search; may arrive URL-encoded twice."),
    types: Optional[str] = Query(default=None, description="Comma-separated content types, or 'all'."),
    category: Optional[str] = None,
    premium_only: bool = False,
    sort: Optional[str] = Query(default=None, description="popularity, recency (alias: upcoming) or relevance."),
    page: int = 1,
    page_size: Optional[int] = None,
    requester: UserContext = Depends(get_requester),
    assembler: FeedAssembler = Depends(get_feed_assembler),
    db: AsyncSession = Depends(get_db),
):
    feed_filter = build_feed_filter(
        search=search,
        content_types=types,
        category=category,
        premium_only=premium_only,
        sort=sort,
        page=page,
        page_size=page_size,
        default_page_size=settings.FEED_DEFAULT_PAGE_SIZE,
    )
    feed_page = await assembler.get_page(feed_filter, requester, db)
    message = "Some content sources are temporarily unavailable." if feed_page.partial else None
    return success_response(serialize_feed_page(feed_page), message)

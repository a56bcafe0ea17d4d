"""Per-request wiring of stores, ledger, gate and assembler."""

from typing import Optional

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config import settings
from database import get_db, get_session_maker
from routers.auth_scope import AuthContext, get_auth_context, get_optional_auth_context
from services.access_gate import AccessGate
from services.content_store import ContentStore, SqlContentStore
from services.content_types import UserContext
from services.engagement import EngagementLedger
from services.engagement_store import EngagementStore, SqlEngagementStore
from services.feed import FeedAssembler
from services.subscriptions import get_subscription_status


def get_content_store(session_maker: async_sessionmaker = Depends(get_session_maker)) -> ContentStore:
    return SqlContentStore(session_maker)


def get_engagement_store() -> EngagementStore:
    return SqlEngagementStore()


def get_access_gate() -> AccessGate:
    return AccessGate(settings.PREMIUM_PLACEHOLDER_URL)


def get_engagement_ledger(
    content_store: ContentStore = Depends(get_content_store),
    engagement_store: EngagementStore = Depends(get_engagement_store),
) -> EngagementLedger:
    return EngagementLedger(content_store, engagement_store)


def get_feed_assembler(
    content_store: ContentStore = Depends(get_content_store),
    ledger: EngagementLedger = Depends(get_engagement_ledger),
    access_gate: AccessGate = Depends(get_access_gate),
) -> FeedAssembler:
    return FeedAssembler(
        content_store,
        ledger,
        access_gate,
        source_timeout=settings.FEED_SOURCE_TIMEOUT_SECONDS,
        retry_backoff=settings.FEED_SOURCE_RETRY_BACKOFF_SECONDS,
        max_source_items=settings.FEED_SOURCE_MAX_ITEMS,
        max_page_size=settings.FEED_MAX_PAGE_SIZE,
    )


async def get_requester(
    auth: Optional[AuthContext] = Depends(get_optional_auth_context),
    db: AsyncSession = Depends(get_db),
) -> UserContext:
    """Verified requester, or the anonymous context when no token was sent."""
    if auth is None:
        return UserContext.anonymous()
    subscription = await get_subscription_status(auth.user_id, db)
    return UserContext(user_id=auth.user_id, subscription=subscription)


async def get_authenticated_requester(
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
) -> UserContext:
    subscription = await get_subscription_status(auth.user_id, db)
    return UserContext(user_id=auth.user_id, subscription=subscription)

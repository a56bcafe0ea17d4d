"""Subscription lookup for premium gating."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.subscription import Subscription
from services.content_types import SubscriptionStatus

logger = logging.getLogger(__name__)

ACTIVE_STATUS = "ACTIVE"


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


async def get_subscription_status(
    user_id: Optional[str],
    db: AsyncSession,
    *,
    now: Optional[datetime] = None,
) -> SubscriptionStatus:
    """Return the requester's current subscription; anonymous users are never active.

    A subscription counts when its status is ACTIVE and it has not ended yet.
    When several qualify, the most recently created one wins.
    """
    if not user_id:
        return SubscriptionStatus()

    reference = _as_utc(now) or datetime.now(timezone.utc)
    result = await db.execute(
        select(Subscription)
        .where(Subscription.user_id == user_id, Subscription.status == ACTIVE_STATUS)
        .order_by(Subscription.created_at.desc(), Subscription.id.desc())
    )
    for row in result.scalars().all():
        end_date = _as_utc(row.end_date)
        if end_date is not None and end_date < reference:
            continue
        return SubscriptionStatus(active=True, tier=row.tier or row.plan)

    logger.debug("No active subscription for user=%s", user_id)
    return SubscriptionStatus()

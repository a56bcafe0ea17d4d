"""Per-user like/download ledger with exactly-once counter updates."""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import Any, Dict, List, Optional, Sequence, Union

from sqlalchemy.ext.asyncio import AsyncSession

from models.download_event import DownloadEvent
from models.engagement_record import EngagementRecord
from services.access_gate import AccessGate
from services.content_store import ContentStore
from services.content_types import (
    AnnotatedItem,
    ContentItem,
    EngagementKind,
    PopularityCounter,
    SourceKind,
    UserContext,
)
from services.engagement_store import EngagementStore
from services.errors import ResourceNotFound

logger = logging.getLogger(__name__)


def _pagination(page: int, limit: int, total: int) -> Dict[str, int]:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": int(math.ceil(total / limit)) if limit else 0,
    }


def _serialize_record(record: EngagementRecord) -> Dict[str, Any]:
    return {
        "id": record.id,
        "resource_id": record.resource_id,
        "resource_type": record.source_kind,
        "kind": record.kind,
        "created_at": record.created_at.isoformat() if record.created_at else None,
    }


def _serialize_download(event: DownloadEvent) -> Dict[str, Any]:
    return {
        "id": event.id,
        "resource_id": event.resource_id,
        "resource_type": event.source_kind,
        "file_url": event.file_url,
        "downloaded_at": event.downloaded_at.isoformat() if event.downloaded_at else None,
    }


class EngagementLedger:
    """Like/download state keyed by (user, resource, kind).

    Each mutation is a single conditional statement in the engagement store,
    and the popularity counter update runs in the same transaction, only when
    that statement actually changed a row. Duplicate taps and client retries
    therefore never double count.
    """

    def __init__(self, content_store: ContentStore, engagement_store: EngagementStore) -> None:
        self._content = content_store
        self._engagements = engagement_store

    async def resolve_item(self, db: AsyncSession, resource_id: str) -> ContentItem:
        """Load an engageable item; inactive or unapproved content counts as missing."""
        item = await self._content.get_item(db, resource_id)
        if item is None or not item.is_eligible:
            raise ResourceNotFound(resource_id)
        return item

    async def like(self, db: AsyncSession, user_id: str, resource_id: str) -> Dict[str, Any]:
        item = await self.resolve_item(db, resource_id)
        created = await self._engagements.upsert_if_absent(
            db, user_id, resource_id, EngagementKind.LIKE, item.source_kind
        )
        if created:
            await self._content.increment_popularity(db, resource_id, item.source_kind, PopularityCounter.LIKES, 1)
        await db.commit()
        logger.info("Like user=%s resource=%s created=%s", user_id, resource_id, created)
        return {"resource_id": resource_id, "created": created, "liked": True}

    async def unlike(self, db: AsyncSession, user_id: str, resource_id: str) -> Dict[str, Any]:
        item = await self._content.get_item(db, resource_id)
        removed = await self._engagements.delete_if_present(db, user_id, resource_id, EngagementKind.LIKE)
        if removed and item is not None:
            await self._content.increment_popularity(db, resource_id, item.source_kind, PopularityCounter.LIKES, -1)
        await db.commit()
        logger.info("Unlike user=%s resource=%s removed=%s", user_id, resource_id, removed)
        return {"resource_id": resource_id, "removed": removed, "liked": False}

    async def toggle_like(self, db: AsyncSession, user_id: str, resource_id: str) -> Dict[str, Any]:
        item = await self.resolve_item(db, resource_id)
        liked = await self._engagements.upsert_if_absent(
            db, user_id, resource_id, EngagementKind.LIKE, item.source_kind
        )
        delta = 1
        if not liked:
            removed = await self._engagements.delete_if_present(db, user_id, resource_id, EngagementKind.LIKE)
            delta = -1 if removed else 0
        if delta:
            await self._content.increment_popularity(db, resource_id, item.source_kind, PopularityCounter.LIKES, delta)
        await db.commit()
        logger.info("Like toggle user=%s resource=%s liked=%s", user_id, resource_id, liked)
        return {"resource_id": resource_id, "liked": liked}

    async def record_download(
        self,
        db: AsyncSession,
        user_id: str,
        resource_id: str,
        *,
        item: Optional[ContentItem] = None,
        file_url: Optional[str] = None,
    ) -> Dict[str, Any]:
        item = item or await self.resolve_item(db, resource_id)
        await self._engagements.append_download_event(db, user_id, resource_id, item.source_kind, file_url)
        first = await self._engagements.upsert_if_absent(
            db, user_id, resource_id, EngagementKind.DOWNLOAD, item.source_kind
        )
        if first:
            await self._content.increment_popularity(
                db, resource_id, item.source_kind, PopularityCounter.DOWNLOADS, 1
            )
        await db.commit()
        logger.info("Download user=%s resource=%s first=%s", user_id, resource_id, first)
        return {"resource_id": resource_id, "is_first_download": first}

    async def annotate(
        self,
        db: AsyncSession,
        items: Sequence[Union[ContentItem, AnnotatedItem]],
        user_id: Optional[str],
    ) -> List[AnnotatedItem]:
        annotated = [
            entry if isinstance(entry, AnnotatedItem) else AnnotatedItem(item=entry, asset_url=entry.asset_url)
            for entry in items
        ]
        if not user_id or not annotated:
            return annotated

        resource_ids = [entry.item.id for entry in annotated]
        liked = await self._engagements.batch_exists(db, user_id, resource_ids, EngagementKind.LIKE)
        downloaded = await self._engagements.batch_exists(db, user_id, resource_ids, EngagementKind.DOWNLOAD)
        return [
            replace(
                entry,
                is_liked=entry.item.id in liked,
                is_downloaded=entry.item.id in downloaded,
            )
            for entry in annotated
        ]

    async def list_likes(
        self,
        db: AsyncSession,
        user_id: str,
        *,
        source_kind: Optional[SourceKind] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Dict[str, Any]:
        records, total = await self._engagements.list_records(
            db, user_id, EngagementKind.LIKE, source_kind=source_kind, page=page, limit=limit
        )
        return {
            "likes": [_serialize_record(record) for record in records],
            "pagination": _pagination(page, limit, total),
        }

    async def download_history(
        self,
        db: AsyncSession,
        user_id: str,
        *,
        source_kind: Optional[SourceKind] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Dict[str, Any]:
        events, total = await self._engagements.list_download_events(
            db, user_id, source_kind=source_kind, page=page, limit=limit
        )
        by_kind = await self._engagements.count_download_events_by_kind(db, user_id)
        return {
            "downloads": [_serialize_download(event) for event in events],
            "pagination": _pagination(page, limit, total),
            "statistics": {
                "total": sum(by_kind.values()),
                "by_type": by_kind,
            },
        }


async def record_download_for_requester(
    *,
    ledger: EngagementLedger,
    gate: AccessGate,
    db: AsyncSession,
    requester: UserContext,
    resource_id: str,
    file_url: Optional[str] = None,
) -> Dict[str, Any]:
    """Record a download when the requester may fetch the full asset."""
    item = await ledger.resolve_item(db, resource_id)
    if gate.is_locked(item, requester):
        logger.info("Download blocked user=%s resource=%s reason=subscription_required", requester.user_id, resource_id)
        return {
            "resource_id": resource_id,
            "download_eligible": False,
            "is_first_download": False,
            "reason": "subscription_required",
        }

    outcome = await ledger.record_download(db, str(requester.user_id), resource_id, item=item, file_url=file_url)
    return {**outcome, "download_eligible": True}

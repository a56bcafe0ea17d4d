"""Persistence contract for engagement records and its SQLAlchemy implementation."""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional, Set, Tuple

from sqlalchemy import delete, func
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.download_event import DownloadEvent
from models.engagement_record import EngagementRecord
from services.content_types import EngagementKind, SourceKind
from services.errors import ConflictingEngagementState

IDEMPOTENCY_KEY = ("user_id", "resource_id", "kind")


class EngagementStore(ABC):
    """Keyed (user, resource, kind) storage; every mutation is one conditional statement."""

    @abstractmethod
    async def upsert_if_absent(
        self,
        db: AsyncSession,
        user_id: str,
        resource_id: str,
        kind: EngagementKind,
        source_kind: SourceKind,
    ) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def delete_if_present(
        self,
        db: AsyncSession,
        user_id: str,
        resource_id: str,
        kind: EngagementKind,
    ) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def batch_exists(
        self,
        db: AsyncSession,
        user_id: str,
        resource_ids: Iterable[str],
        kind: EngagementKind,
    ) -> Set[str]:
        raise NotImplementedError

    @abstractmethod
    async def append_download_event(
        self,
        db: AsyncSession,
        user_id: str,
        resource_id: str,
        source_kind: SourceKind,
        file_url: Optional[str] = None,
    ) -> DownloadEvent:
        raise NotImplementedError

    @abstractmethod
    async def list_records(
        self,
        db: AsyncSession,
        user_id: str,
        kind: EngagementKind,
        *,
        source_kind: Optional[SourceKind] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[EngagementRecord], int]:
        raise NotImplementedError

    @abstractmethod
    async def list_download_events(
        self,
        db: AsyncSession,
        user_id: str,
        *,
        source_kind: Optional[SourceKind] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[DownloadEvent], int]:
        raise NotImplementedError

    @abstractmethod
    async def count_download_events_by_kind(self, db: AsyncSession, user_id: str) -> Dict[str, int]:
        raise NotImplementedError


def _checked_rowcount(rowcount: int, operation: str, user_id: str, resource_id: str) -> bool:
    if rowcount not in (0, 1):
        raise ConflictingEngagementState(
            f"{operation} touched {rowcount} engagement rows for user={user_id} resource={resource_id}; "
            "the (user, resource, kind) key must be unique."
        )
    return rowcount == 1


class SqlEngagementStore(EngagementStore):
    """EngagementStore on the engagement_records / download_events tables."""

    async def upsert_if_absent(
        self,
        db: AsyncSession,
        user_id: str,
        resource_id: str,
        kind: EngagementKind,
        source_kind: SourceKind,
    ) -> bool:
        values = {
            "id": str(uuid.uuid4()),
            "user_id": user_id,
            "resource_id": resource_id,
            "kind": kind.value,
            "source_kind": source_kind.value,
        }
        dialect = db.get_bind().dialect.name
        if dialect in ("postgresql", "sqlite"):
            insert = pg_insert if dialect == "postgresql" else sqlite_insert
            stmt = insert(EngagementRecord).values(**values).on_conflict_do_nothing(index_elements=list(IDEMPOTENCY_KEY))
            result = await db.execute(stmt)
            return _checked_rowcount(result.rowcount, "upsert", user_id, resource_id)

        try:
            async with db.begin_nested():
                db.add(EngagementRecord(**values))
        except IntegrityError:
            return False
        return True

    async def delete_if_present(
        self,
        db: AsyncSession,
        user_id: str,
        resource_id: str,
        kind: EngagementKind,
    ) -> bool:
        result = await db.execute(
            delete(EngagementRecord)
            .where(
                EngagementRecord.user_id == user_id,
                EngagementRecord.resource_id == resource_id,
                EngagementRecord.kind == kind.value,
            )
            .execution_options(synchronize_session=False)
        )
        return _checked_rowcount(result.rowcount, "delete", user_id, resource_id)

    async def batch_exists(
        self,
        db: AsyncSession,
        user_id: str,
        resource_ids: Iterable[str],
        kind: EngagementKind,
    ) -> Set[str]:
        ids = list(dict.fromkeys(resource_ids))
        if not ids:
            return set()
        result = await db.execute(
            select(EngagementRecord.resource_id).where(
                EngagementRecord.user_id == user_id,
                EngagementRecord.kind == kind.value,
                EngagementRecord.resource_id.in_(ids),
            )
        )
        return set(result.scalars().all())

    async def append_download_event(
        self,
        db: AsyncSession,
        user_id: str,
        resource_id: str,
        source_kind: SourceKind,
        file_url: Optional[str] = None,
    ) -> DownloadEvent:
        event = DownloadEvent(
            id=str(uuid.uuid4()),
            user_id=user_id,
            resource_id=resource_id,
            source_kind=source_kind.value,
            file_url=file_url or f"/{source_kind.value.lower()}/{resource_id}",
        )
        db.add(event)
        await db.flush()
        return event

    async def list_records(
        self,
        db: AsyncSession,
        user_id: str,
        kind: EngagementKind,
        *,
        source_kind: Optional[SourceKind] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[EngagementRecord], int]:
        conditions = [EngagementRecord.user_id == user_id, EngagementRecord.kind == kind.value]
        if source_kind is not None:
            conditions.append(EngagementRecord.source_kind == source_kind.value)
        total = await db.execute(select(func.count(EngagementRecord.id)).where(*conditions))
        result = await db.execute(
            select(EngagementRecord)
            .where(*conditions)
            .order_by(EngagementRecord.created_at.desc(), EngagementRecord.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), int(total.scalar() or 0)

    async def list_download_events(
        self,
        db: AsyncSession,
        user_id: str,
        *,
        source_kind: Optional[SourceKind] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[DownloadEvent], int]:
        conditions = [DownloadEvent.user_id == user_id]
        if source_kind is not None:
            conditions.append(DownloadEvent.source_kind == source_kind.value)
        total = await db.execute(select(func.count(DownloadEvent.id)).where(*conditions))
        result = await db.execute(
            select(DownloadEvent)
            .where(*conditions)
            .order_by(DownloadEvent.downloaded_at.desc(), DownloadEvent.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), int(total.scalar() or 0)

    async def count_download_events_by_kind(self, db: AsyncSession, user_id: str) -> Dict[str, int]:
        result = await db.execute(
            select(DownloadEvent.source_kind, func.count(DownloadEvent.id))
            .where(DownloadEvent.user_id == user_id)
            .group_by(DownloadEvent.source_kind)
        )
        counts = {kind.value: 0 for kind in SourceKind}
        for source_kind, count in result.all():
            counts[str(source_kind)] = int(count or 0)
        return counts

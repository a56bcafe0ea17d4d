"""Read contract over the four content collections, plus its SQLAlchemy implementation."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple, Type

from sqlalchemy import case, func, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.future import select

from models.business_category import BusinessCategory
from models.business_category_image import BusinessCategoryImage
from models.greeting_template import GreetingTemplate
from models.template import Template
from models.video_template import VideoTemplate
from services.content_types import (
    APPROVED,
    SOURCE_KIND_ORDER,
    ContentItem,
    PopularityCounter,
    SortKey,
    SourceFilter,
    SourceKind,
)
from services.search import matches_search

logger = logging.getLogger(__name__)


CONTENT_MODELS: Dict[SourceKind, Type[Any]] = {
    SourceKind.TEMPLATE: Template,
    SourceKind.VIDEO: VideoTemplate,
    SourceKind.GREETING: GreetingTemplate,
    SourceKind.BUSINESS_CATEGORY_IMAGE: BusinessCategoryImage,
}


class ContentStore(ABC):
    """Query contract the feed engine consumes; the store owns the content rows."""

    @abstractmethod
    async def query_source(
        self,
        kind: SourceKind,
        source_filter: SourceFilter,
        sort: SortKey = SortKey.POPULARITY,
        limit: Optional[int] = None,
    ) -> List[ContentItem]:
        raise NotImplementedError

    @abstractmethod
    async def get_item(self, db: AsyncSession, resource_id: str) -> Optional[ContentItem]:
        raise NotImplementedError

    @abstractmethod
    async def increment_popularity(
        self,
        db: AsyncSession,
        resource_id: str,
        kind: SourceKind,
        counter: PopularityCounter,
        delta: int,
    ) -> None:
        raise NotImplementedError

    def session(self) -> AsyncSession:
        """New session for callers that were not handed one."""
        raise NotImplementedError


def _safe_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _safe_tags(value: Any) -> Tuple[str, ...]:
    if isinstance(value, (list, tuple)):
        return tuple(str(tag).strip() for tag in value if str(tag).strip())
    if isinstance(value, str):
        return tuple(tag.strip() for tag in value.split(",") if tag.strip())
    return ()


def content_item_from_row(
    row: Any,
    kind: SourceKind,
    *,
    category_name: Optional[str] = None,
    category_id: Optional[str] = None,
) -> ContentItem:
    """Project an ORM row of any collection onto the shared ContentItem shape."""
    return ContentItem(
        id=row.id,
        source_kind=kind,
        category=str(category_name if category_name is not None else getattr(row, "category", "") or ""),
        category_id=category_id,
        title=row.title or "",
        description=row.description,
        tags=_safe_tags(row.tags),
        popularity_score=max(_safe_int(row.likes) + _safe_int(row.downloads), 0),
        is_premium=bool(row.is_premium),
        is_active=bool(row.is_active),
        approval_status=str(getattr(row, "approval_status", None) or APPROVED),
        created_at=row.created_at,
        asset_url=row.asset_url,
        preview_url=row.preview_url,
    )


class SqlContentStore(ContentStore):
    """ContentStore over the SQL content tables.

    ``query_source`` opens its own session from the session maker so the feed
    can read all sources concurrently; the write-side helpers run on the
    caller's session and join its transaction.
    """

    def __init__(self, session_maker: async_sessionmaker) -> None:
        self._session_maker = session_maker

    def session(self) -> AsyncSession:
        return self._session_maker()

    def _base_query(self, kind: SourceKind, source_filter: SourceFilter):
        model = CONTENT_MODELS[kind]
        if kind == SourceKind.BUSINESS_CATEGORY_IMAGE:
            query = select(BusinessCategoryImage, BusinessCategory).join(
                BusinessCategory,
                BusinessCategoryImage.business_category_id == BusinessCategory.id,
            )
            category_column = BusinessCategory.name
            if source_filter.active_only:
                query = query.where(
                    BusinessCategoryImage.is_active.is_(True),
                    BusinessCategoryImage.approval_status == APPROVED,
                    BusinessCategory.is_active.is_(True),
                )
        else:
            query = select(model)
            category_column = model.category
            if source_filter.active_only:
                query = query.where(model.is_active.is_(True))

        if source_filter.category:
            query = query.where(func.lower(category_column) == source_filter.category.strip().lower())
        if source_filter.premium_only:
            query = query.where(model.is_premium.is_(True))
        return query, model

    def _ordered(self, query, model, sort: SortKey):
        popularity = model.likes + model.downloads
        if sort == SortKey.RECENCY:
            return query.order_by(model.created_at.desc(), model.id)
        return query.order_by(popularity.desc(), model.id)

    def _project(self, kind: SourceKind, row: Any) -> ContentItem:
        if kind == SourceKind.BUSINESS_CATEGORY_IMAGE:
            image, category = row
            return content_item_from_row(image, kind, category_name=category.name, category_id=category.id)
        return content_item_from_row(row[0], kind)

    async def query_source(
        self,
        kind: SourceKind,
        source_filter: SourceFilter,
        sort: SortKey = SortKey.POPULARITY,
        limit: Optional[int] = None,
    ) -> List[ContentItem]:
        query, model = self._base_query(kind, source_filter)
        query = self._ordered(query, model, sort)
        # Search runs in Python (tags are JSON), so only cap in SQL without a term.
        if limit and not source_filter.search_term:
            query = query.limit(limit)

        async with self._session_maker() as db:
            result = await db.execute(query)
            rows = result.all()

        items = [self._project(kind, row) for row in rows]
        if source_filter.search_term:
            items = [item for item in items if matches_search(item, source_filter.search_term)]
            if limit:
                items = items[:limit]
        logger.debug("Content source=%s filter=%s rows=%s", kind.value, source_filter, len(items))
        return items

    async def get_item(self, db: AsyncSession, resource_id: str) -> Optional[ContentItem]:
        for kind in SOURCE_KIND_ORDER:
            if kind == SourceKind.BUSINESS_CATEGORY_IMAGE:
                result = await db.execute(
                    select(BusinessCategoryImage, BusinessCategory)
                    .join(BusinessCategory, BusinessCategoryImage.business_category_id == BusinessCategory.id)
                    .where(BusinessCategoryImage.id == resource_id)
                )
            else:
                model = CONTENT_MODELS[kind]
                result = await db.execute(select(model).where(model.id == resource_id))
            row = result.first()
            if row is not None:
                return self._project(kind, row)
        return None

    async def increment_popularity(
        self,
        db: AsyncSession,
        resource_id: str,
        kind: SourceKind,
        counter: PopularityCounter,
        delta: int,
    ) -> None:
        model = CONTENT_MODELS[kind]
        column = getattr(model, counter.value)
        next_value = case((column + delta < 0, 0), else_=column + delta)
        await db.execute(
            update(model)
            .where(model.id == resource_id)
            .values({counter.value: next_value})
            .execution_options(synchronize_session=False)
        )

"""Feed assembly: concurrent source fan-out, category balancing and per-requester annotation."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from services.access_gate import AccessGate
from services.balancer import CategoryBalancer
from services.content_store import ContentStore
from services.content_types import (
    SOURCE_KIND_ORDER,
    AnnotatedItem,
    ContentItem,
    FeedFilter,
    FeedPage,
    PoolKey,
    SortKey,
    SourceFilter,
    SourceKind,
    UserContext,
)
from services.engagement import EngagementLedger
from services.errors import FeedUnavailable, InvalidQuery, SourceUnavailable
from services.search import matches_search, normalize_search_term, relevance_score

logger = logging.getLogger(__name__)


MAX_PAGE_SIZE = 100
SOURCE_RETRY_ATTEMPTS = 1
TRANSIENT_SOURCE_ERRORS = (asyncio.TimeoutError, ConnectionError, OSError, OperationalError, InterfaceError)
CONTENT_TYPE_ALIASES = {
    "template": SourceKind.TEMPLATE,
    "templates": SourceKind.TEMPLATE,
    "video": SourceKind.VIDEO,
    "videos": SourceKind.VIDEO,
    "video_template": SourceKind.VIDEO,
    "greeting": SourceKind.GREETING,
    "greetings": SourceKind.GREETING,
    "greeting_template": SourceKind.GREETING,
    "business_category_image": SourceKind.BUSINESS_CATEGORY_IMAGE,
    "business_category_images": SourceKind.BUSINESS_CATEGORY_IMAGE,
    "business": SourceKind.BUSINESS_CATEGORY_IMAGE,
    "images": SourceKind.BUSINESS_CATEGORY_IMAGE,
}
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def is_transient_source_error(exc: BaseException) -> bool:
    if isinstance(exc, TRANSIENT_SOURCE_ERRORS):
        return True
    # Dropped pool connections surface as a DBAPIError flagged as invalidated.
    return isinstance(exc, DBAPIError) and bool(exc.connection_invalidated)


def _as_utc(value: Optional[datetime]) -> datetime:
    if value is None:
        return _EPOCH
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _parse_int(value: Any, name: str, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidQuery(f"{name} must be an integer.")


def _parse_content_types(value: Union[None, str, Iterable[Any]]) -> Optional[frozenset]:
    if value is None:
        return None
    raw = value.split(",") if isinstance(value, str) else list(value)
    kinds = set()
    for entry in raw:
        if isinstance(entry, SourceKind):
            kinds.add(entry)
            continue
        token = str(entry or "").strip()
        if not token or token.lower() == "all":
            continue
        kind = CONTENT_TYPE_ALIASES.get(token.lower())
        if kind is None:
            try:
                kind = SourceKind(token.upper())
            except ValueError:
                raise InvalidQuery(f"Unknown content type: {token}.")
        kinds.add(kind)
    return frozenset(kinds) or None


def parse_source_kind(value: Any) -> Optional[SourceKind]:
    """Parse one content type for history listings; 'all' or empty means every kind."""
    kinds = _parse_content_types(None if value is None else [value])
    if not kinds:
        return None
    return next(iter(kinds))


def _parse_sort(value: Any) -> Optional[SortKey]:
    if value is None or isinstance(value, SortKey):
        return value
    token = str(value).strip().lower()
    if not token:
        return None
    if token == "upcoming":
        return SortKey.RECENCY
    try:
        return SortKey(token)
    except ValueError:
        raise InvalidQuery(f"Unknown sort key: {value}.")


def build_feed_filter(
    *,
    search: Optional[str] = None,
    content_types: Union[None, str, Iterable[Any]] = None,
    category: Optional[str] = None,
    premium_only: bool = False,
    sort: Any = None,
    page: Any = 1,
    page_size: Any = None,
    default_page_size: int = 20,
) -> FeedFilter:
    """Parse raw query parameters into a FeedFilter; malformed values raise InvalidQuery."""
    category_text = str(category or "").strip()
    return FeedFilter(
        search_term=normalize_search_term(search),
        content_types=_parse_content_types(content_types),
        category=category_text or None,
        premium_only=bool(premium_only),
        sort=_parse_sort(sort),
        page=_parse_int(page, "page", 1),
        page_size=_parse_int(page_size, "page_size", default_page_size),
    )


def _pool_sort_key(sort: SortKey, term: Optional[str]) -> Callable[[ContentItem], Tuple[Any, ...]]:
    def _tail(item: ContentItem) -> Tuple[int, str]:
        return SOURCE_KIND_ORDER.index(item.source_kind), str(item.id)

    if sort == SortKey.RECENCY:
        return lambda item: (-_as_utc(item.created_at).timestamp(), *_tail(item))
    if sort == SortKey.RELEVANCE:
        return lambda item: (-relevance_score(item, term), -item.popularity_score, *_tail(item))
    return lambda item: (-item.popularity_score, *_tail(item))


class FeedAssembler:
    """Build one feed page from every requested content source.

    Sources are read concurrently, each bounded by ``source_timeout`` and
    retried once on transient errors. A source that still fails is dropped and
    the page is flagged ``partial``; only when every source fails does the call
    raise FeedUnavailable. The merged items are grouped per category,
    balanced with CategoryBalancer and finally annotated for the requester.
    Reads never touch engagement counters.
    """

    def __init__(
        self,
        content_store: ContentStore,
        ledger: EngagementLedger,
        access_gate: AccessGate,
        balancer: Optional[CategoryBalancer] = None,
        *,
        source_timeout: float = 2.5,
        retry_backoff: float = 0.2,
        max_source_items: Optional[int] = None,
        max_page_size: int = MAX_PAGE_SIZE,
    ) -> None:
        self._content = content_store
        self._ledger = ledger
        self._access_gate = access_gate
        self._balancer = balancer or CategoryBalancer()
        self._source_timeout = source_timeout
        self._retry_backoff = retry_backoff
        self._max_source_items = max_source_items
        self._max_page_size = max_page_size

    def _validate(self, feed_filter: FeedFilter) -> None:
        if feed_filter.page < 1:
            raise InvalidQuery("page must be >= 1.")
        if not 1 <= feed_filter.page_size <= self._max_page_size:
            raise InvalidQuery(f"page_size must be between 1 and {self._max_page_size}.")
        for kind in feed_filter.content_types or ():
            if not isinstance(kind, SourceKind):
                raise InvalidQuery(f"Unknown content type: {kind}.")
        if feed_filter.sort is not None and not isinstance(feed_filter.sort, SortKey):
            raise InvalidQuery(f"Unknown sort key: {feed_filter.sort}.")

    @staticmethod
    def _requested_kinds(feed_filter: FeedFilter) -> List[SourceKind]:
        requested = feed_filter.content_types or frozenset(SOURCE_KIND_ORDER)
        return [kind for kind in SOURCE_KIND_ORDER if kind in requested]

    @staticmethod
    def _resolved_sort(feed_filter: FeedFilter) -> SortKey:
        if feed_filter.sort == SortKey.RELEVANCE and not feed_filter.search_term:
            return SortKey.POPULARITY
        if feed_filter.sort is not None:
            return feed_filter.sort
        return SortKey.RELEVANCE if feed_filter.search_term else SortKey.POPULARITY

    async def _fetch_source(
        self,
        kind: SourceKind,
        source_filter: SourceFilter,
        sort: SortKey,
    ) -> Union[List[ContentItem], SourceUnavailable]:
        store_sort = SortKey.RECENCY if sort == SortKey.RECENCY else SortKey.POPULARITY
        last_error: Optional[BaseException] = None
        for attempt in range(SOURCE_RETRY_ATTEMPTS + 1):
            if attempt:
                await asyncio.sleep(self._retry_backoff)
            try:
                return await asyncio.wait_for(
                    self._content.query_source(kind, source_filter, sort=store_sort, limit=self._max_source_items),
                    timeout=self._source_timeout,
                )
            except Exception as exc:
                if not is_transient_source_error(exc):
                    raise
                last_error = exc
                logger.warning("Content source %s attempt %s failed: %r", kind.value, attempt + 1, exc)
        return SourceUnavailable(kind.value, reason=repr(last_error))

    @staticmethod
    def _matches_filter(item: ContentItem, feed_filter: FeedFilter) -> bool:
        if not item.is_eligible:
            return False
        if feed_filter.premium_only and not item.is_premium:
            return False
        if feed_filter.category and item.category.casefold() != feed_filter.category.strip().casefold():
            return False
        return matches_search(item, feed_filter.search_term)

    def _build_pools(
        self,
        items: Sequence[ContentItem],
        kinds: Sequence[SourceKind],
        sort: SortKey,
        term: Optional[str],
    ) -> Tuple[Dict[PoolKey, List[ContentItem]], Dict[str, str]]:
        fold_kind = len(kinds) == 1
        pools: Dict[PoolKey, List[ContentItem]] = {}
        display_names: Dict[str, str] = {}
        for item in items:
            folded = item.category.casefold()
            key = PoolKey(folded, item.source_kind.value if fold_kind else "")
            pools.setdefault(key, []).append(item)
            current = display_names.get(folded)
            display_names[folded] = item.category if current is None else min(current, item.category)

        sort_key = _pool_sort_key(sort, term)
        for pool in pools.values():
            pool.sort(key=sort_key)
        return pools, display_names

    async def _annotate_engagement(
        self,
        items: Sequence[AnnotatedItem],
        user_id: str,
        db: Optional[AsyncSession],
    ) -> List[AnnotatedItem]:
        if db is not None:
            return await self._ledger.annotate(db, items, user_id)
        async with self._content.session() as own_db:
            return await self._ledger.annotate(own_db, items, user_id)

    async def get_page(
        self,
        feed_filter: FeedFilter,
        requester: Optional[UserContext] = None,
        db: Optional[AsyncSession] = None,
    ) -> FeedPage:
        self._validate(feed_filter)
        requester = requester or UserContext.anonymous()
        kinds = self._requested_kinds(feed_filter)
        sort = self._resolved_sort(feed_filter)
        source_filter = SourceFilter(
            category=feed_filter.category,
            search_term=feed_filter.search_term,
            premium_only=feed_filter.premium_only,
        )

        outcomes = await asyncio.gather(
            *(self._fetch_source(kind, source_filter, sort) for kind in kinds),
            return_exceptions=True,
        )
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome

        items: List[ContentItem] = []
        failures: List[SourceUnavailable] = []
        for outcome in outcomes:
            if isinstance(outcome, SourceUnavailable):
                failures.append(outcome)
                continue
            items.extend(item for item in outcome if self._matches_filter(item, feed_filter))
        if failures and len(failures) == len(kinds):
            logger.error("Feed unavailable: all %s sources failed", len(kinds))
            raise FeedUnavailable(failures)
        for failure in failures:
            logger.warning("Serving partial feed without %s: %s", failure.source_kind, failure.reason)

        pools, display_names = self._build_pools(items, kinds, sort, feed_filter.search_term)
        offset = (feed_filter.page - 1) * feed_filter.page_size
        selected = self._balancer.interleave(pools, feed_filter.page_size, offset)
        total = self._balancer.total(pools)

        annotated = self._access_gate.annotate(selected, requester)
        if not requester.is_anonymous:
            annotated = await self._annotate_engagement(annotated, requester.user_id, db)

        page = FeedPage(
            items=annotated,
            page=feed_filter.page,
            page_size=feed_filter.page_size,
            total_estimate=total,
            categories_represented=frozenset(display_names[item.category.casefold()] for item in selected),
            has_more=offset + len(selected) < total,
            partial=bool(failures),
            unavailable_sources=tuple(SourceKind(failure.source_kind) for failure in failures),
        )
        logger.info(
            "Feed page user=%s page=%s size=%s items=%s total=%s categories=%s partial=%s",
            requester.user_id or "anonymous",
            page.page,
            page.page_size,
            len(page.items),
            page.total_estimate,
            len(page.categories_represented),
            page.partial,
        )
        return page


def serialize_annotated_item(entry: AnnotatedItem) -> Dict[str, Any]:
    item = entry.item
    return {
        "id": item.id,
        "resource_type": item.source_kind.value,
        "category": item.category,
        "category_id": item.category_id,
        "title": item.title,
        "description": item.description,
        "tags": list(item.tags),
        "popularity_score": item.popularity_score,
        "is_premium": item.is_premium,
        "created_at": item.created_at.isoformat() if item.created_at else None,
        "asset_url": entry.asset_url,
        "preview_url": item.preview_url,
        "is_locked": entry.is_locked,
        "preview_only": entry.preview_only,
        "is_liked": entry.is_liked,
        "is_downloaded": entry.is_downloaded,
    }


def serialize_feed_page(page: FeedPage) -> Dict[str, Any]:
    return {
        "items": [serialize_annotated_item(entry) for entry in page.items],
        "pagination": {
            "page": page.page,
            "page_size": page.page_size,
            "total_estimate": page.total_estimate,
            "has_more": page.has_more,
        },
        "categories_represented": sorted(page.categories_represented),
        "partial": page.partial,
        "unavailable_sources": [kind.value for kind in page.unavailable_sources],
    }

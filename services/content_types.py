"""Value types shared by the feed engine (content, engagement, pages, requesters)."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import FrozenSet, List, NamedTuple, Optional, Tuple


class SourceKind(str, Enum):
    TEMPLATE = "TEMPLATE"
    VIDEO = "VIDEO"
    GREETING = "GREETING"
    BUSINESS_CATEGORY_IMAGE = "BUSINESS_CATEGORY_IMAGE"


# Fixed order used for fan-out and as a tie-break inside category pools.
SOURCE_KIND_ORDER: Tuple[SourceKind, ...] = (
    SourceKind.TEMPLATE,
    SourceKind.VIDEO,
    SourceKind.GREETING,
    SourceKind.BUSINESS_CATEGORY_IMAGE,
)


class EngagementKind(str, Enum):
    LIKE = "LIKE"
    DOWNLOAD = "DOWNLOAD"


class PopularityCounter(str, Enum):
    LIKES = "likes"
    DOWNLOADS = "downloads"


class SortKey(str, Enum):
    POPULARITY = "popularity"
    RECENCY = "recency"
    RELEVANCE = "relevance"


APPROVED = "APPROVED"


@dataclass(frozen=True)
class ContentItem:
    """One piece of content from any of the four collections, tagged by ``source_kind``."""

    id: str
    source_kind: SourceKind
    category: str
    title: str
    popularity_score: int = 0
    is_premium: bool = False
    is_active: bool = True
    approval_status: str = APPROVED
    created_at: Optional[datetime] = None
    category_id: Optional[str] = None
    description: Optional[str] = None
    tags: Tuple[str, ...] = ()
    asset_url: Optional[str] = None
    preview_url: Optional[str] = None

    @property
    def is_eligible(self) -> bool:
        return bool(self.is_active) and str(self.approval_status or "").upper() == APPROVED


@dataclass(frozen=True)
class AnnotatedItem:
    """A content item plus the requester-specific view of it."""

    item: ContentItem
    asset_url: Optional[str] = None
    is_locked: bool = False
    preview_only: bool = False
    is_liked: bool = False
    is_downloaded: bool = False


@dataclass(frozen=True)
class SubscriptionStatus:
    active: bool = False
    tier: Optional[str] = None


@dataclass(frozen=True)
class UserContext:
    """Verified requester identity; ``user_id`` is None for anonymous callers."""

    user_id: Optional[str] = None
    subscription: SubscriptionStatus = field(default_factory=SubscriptionStatus)

    @classmethod
    def anonymous(cls) -> "UserContext":
        return cls()

    @property
    def is_anonymous(self) -> bool:
        return not self.user_id


@dataclass(frozen=True)
class SourceFilter:
    """Per-source query predicate handed to the content store."""

    category: Optional[str] = None
    search_term: Optional[str] = None
    premium_only: bool = False
    active_only: bool = True


@dataclass(frozen=True)
class FeedFilter:
    search_term: Optional[str] = None
    content_types: Optional[FrozenSet[SourceKind]] = None
    category: Optional[str] = None
    premium_only: bool = False
    sort: Optional[SortKey] = None
    page: int = 1
    page_size: int = 20


@dataclass(frozen=True)
class FeedPage:
    items: List[AnnotatedItem]
    page: int
    page_size: int
    total_estimate: int
    categories_represented: FrozenSet[str]
    has_more: bool = False
    partial: bool = False
    unavailable_sources: Tuple[SourceKind, ...] = ()


class PoolKey(NamedTuple):
    """Balancer pool key; tuple ordering gives category name first, then the discriminator."""

    category: str
    discriminator: str = ""

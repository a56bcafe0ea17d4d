"""Catalog views over the content sources: categories, search suggestions and statistics."""

from __future__ import annotations

import asyncio
import json
import logging
from collections import Counter
from typing import Any, Dict, List, Optional

import redis.asyncio as redis

from config import settings
from services.content_store import ContentStore
from services.content_types import SOURCE_KIND_ORDER, ContentItem, SourceFilter, SourceKind
from services.search import normalize_search_term

logger = logging.getLogger(__name__)

CATEGORY_CACHE_KEY = "feed:catalog:categories"
MAX_SUGGESTIONS = 10
TITLE_SUGGESTIONS_PER_SOURCE = 5
TAG_SUGGESTIONS = 5


async def _all_items(content_store: ContentStore) -> Dict[SourceKind, List[ContentItem]]:
    results = await asyncio.gather(
        *(
            content_store.query_source(kind, SourceFilter(), limit=settings.FEED_SOURCE_MAX_ITEMS)
            for kind in SOURCE_KIND_ORDER
        )
    )
    return {
        kind: [item for item in items if item.is_eligible]
        for kind, items in zip(SOURCE_KIND_ORDER, results)
    }


async def _load_cached_categories() -> Optional[List[Dict[str, Any]]]:
    ttl = int(settings.CATALOG_CACHE_TTL_SECONDS)
    if ttl <= 0:
        return None

    client = redis.from_url(settings.REDIS_URL, decode_responses=True)
    try:
        raw = await client.get(CATEGORY_CACHE_KEY)
        if not raw:
            return None
        parsed = json.loads(raw)
        return parsed if isinstance(parsed, list) else None
    except Exception as exc:
        logger.warning("Category cache read failed: %s", exc)
        return None
    finally:
        await client.aclose()


async def _store_cached_categories(categories: List[Dict[str, Any]]) -> None:
    ttl = int(settings.CATALOG_CACHE_TTL_SECONDS)
    if ttl <= 0:
        return

    client = redis.from_url(settings.REDIS_URL, decode_responses=True)
    try:
        await client.setex(CATEGORY_CACHE_KEY, ttl, json.dumps(categories, separators=(",", ":")))
    except Exception as exc:
        logger.warning("Category cache write failed: %s", exc)
    finally:
        await client.aclose()


def build_category_listing(items_by_kind: Dict[SourceKind, List[ContentItem]]) -> List[Dict[str, Any]]:
    """Merge categories across sources by case-insensitive name, with per-source counts."""
    merged: Dict[str, Dict[str, Any]] = {}
    for kind in SOURCE_KIND_ORDER:
        for item in items_by_kind.get(kind, []):
            name = item.category.strip()
            if not name:
                continue
            entry = merged.setdefault(
                name.casefold(),
                {
                    "name": name,
                    "category_id": None,
                    "count": 0,
                    "by_type": {source.value: 0 for source in SOURCE_KIND_ORDER},
                },
            )
            entry["name"] = min(entry["name"], name)
            entry["count"] += 1
            entry["by_type"][kind.value] += 1
            if item.category_id and not entry["category_id"]:
                entry["category_id"] = item.category_id
    return [merged[key] for key in sorted(merged)]


async def list_categories_service(*, content_store: ContentStore, use_cache: bool = True) -> Dict[str, Any]:
    if use_cache:
        cached = await _load_cached_categories()
        if cached is not None:
            return {"categories": cached, "cached": True}

    categories = build_category_listing(await _all_items(content_store))
    if use_cache:
        await _store_cached_categories(categories)
    return {"categories": categories, "cached": False}


async def search_suggestions_service(*, content_store: ContentStore, query: Any) -> Dict[str, Any]:
    """Suggest titles (a few per source) and then matching tags, deduplicated."""
    term = normalize_search_term(query)
    if not term:
        return {"query": "", "suggestions": []}
    needle = term.lower()

    items_by_kind = await _all_items(content_store)
    suggestions: List[Dict[str, str]] = []
    for kind in SOURCE_KIND_ORDER:
        titles = [item.title for item in items_by_kind[kind] if needle in item.title.lower()]
        suggestions.extend({"text": title, "type": kind.value} for title in titles[:TITLE_SUGGESTIONS_PER_SOURCE])

    tags = [
        tag
        for kind in SOURCE_KIND_ORDER
        for item in items_by_kind[kind]
        for tag in item.tags
        if needle in tag.lower()
    ]
    suggestions.extend({"text": tag, "type": "TAG"} for tag in tags[:TAG_SUGGESTIONS])

    seen = set()
    unique: List[Dict[str, str]] = []
    for suggestion in suggestions:
        if suggestion["text"] in seen:
            continue
        seen.add(suggestion["text"])
        unique.append(suggestion)
    return {"query": term, "suggestions": unique[:MAX_SUGGESTIONS]}


async def catalog_stats_service(*, content_store: ContentStore) -> Dict[str, Any]:
    items_by_kind = await _all_items(content_store)
    totals = {kind.value: len(items_by_kind[kind]) for kind in SOURCE_KIND_ORDER}
    all_items = [item for kind in SOURCE_KIND_ORDER for item in items_by_kind[kind]]

    distribution = Counter(item.category for item in all_items if item.category)
    unique_tags = {tag for item in all_items for tag in item.tags}
    return {
        "total_content": {**totals, "total": sum(totals.values())},
        "total_tags": len(unique_tags),
        "premium_count": sum(1 for item in all_items if item.is_premium),
        "category_distribution": [
            {"category": name, "count": count}
            for name, count in sorted(distribution.items(), key=lambda pair: (-pair[1], pair[0]))
        ],
    }

"""Search-term normalization, matching and relevance scoring."""

from __future__ import annotations

import re
from typing import Any, Optional
from urllib.parse import unquote

from services.content_types import ContentItem, SourceKind

MIN_CATEGORY_WORD_LENGTH = 3
CATEGORY_PREFIX_LENGTH = 10

# Relevance tiers; higher wins, popularity breaks ties.
SCORE_TITLE = 4
SCORE_TAG = 3
SCORE_CATEGORY = 2
SCORE_DESCRIPTION = 1
SCORE_RELAXED_CATEGORY = 1


def _normalize_text(value: Any) -> str:
    return str(value or "").strip()


def _squash(value: str) -> str:
    return re.sub(r"\s+", "", value.lower())


def normalize_search_term(raw: Any) -> Optional[str]:
    """Decode (at most twice, for double-encoded clients), trim and collapse whitespace."""
    text = _normalize_text(raw)
    if not text:
        return None
    for _ in range(2):
        if "%" not in text:
            break
        text = unquote(text)
    text = re.sub(r"\s+", " ", text).strip()
    return text or None


def category_name_matches(term: str, category_name: str) -> bool:
    """Relaxed category match: substring, then any significant word, then whitespace-insensitive."""
    needle = term.lower()
    name = _normalize_text(category_name).lower()
    if not needle or not name:
        return False
    if needle in name:
        return True

    words = [word for word in needle.split() if len(word) >= MIN_CATEGORY_WORD_LENGTH]
    if " " in needle and any(word in name for word in words):
        return True

    squashed_term = _squash(needle)
    squashed_name = _squash(name)
    return squashed_term in squashed_name or squashed_name[:CATEGORY_PREFIX_LENGTH] in squashed_term


def relevance_score(item: ContentItem, term: Optional[str]) -> int:
    """Score how strongly ``term`` matches ``item``; 0 means no match."""
    if not term:
        return 0
    needle = term.lower()
    score = 0
    if needle in _normalize_text(item.title).lower():
        score += SCORE_TITLE
    if any(needle in _normalize_text(tag).lower() for tag in item.tags):
        score += SCORE_TAG
    if needle in _normalize_text(item.category).lower():
        score += SCORE_CATEGORY
    elif item.source_kind == SourceKind.BUSINESS_CATEGORY_IMAGE and category_name_matches(term, item.category):
        score += SCORE_RELAXED_CATEGORY
    if needle in _normalize_text(item.description).lower():
        score += SCORE_DESCRIPTION
    return score


def matches_search(item: ContentItem, term: Optional[str]) -> bool:
    if not term:
        return True
    return relevance_score(item, term) > 0

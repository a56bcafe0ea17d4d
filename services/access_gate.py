"""Premium gating of content for requesters without an active subscription."""

from __future__ import annotations

from typing import Iterable, List, Optional, Union

from services.content_types import AnnotatedItem, ContentItem, UserContext


class AccessGate:
    """Lock premium items for non-subscribers while keeping them discoverable."""

    def __init__(self, placeholder_url: str) -> None:
        self._placeholder_url = placeholder_url

    @staticmethod
    def is_locked(item: ContentItem, requester: Optional[UserContext]) -> bool:
        subscribed = bool(requester and requester.subscription.active)
        return bool(item.is_premium) and not subscribed

    def annotate(
        self,
        items: Iterable[Union[ContentItem, AnnotatedItem]],
        requester: Optional[UserContext],
    ) -> List[AnnotatedItem]:
        annotated: List[AnnotatedItem] = []
        for entry in items:
            item = entry.item if isinstance(entry, AnnotatedItem) else entry
            locked = self.is_locked(item, requester)
            annotated.append(
                AnnotatedItem(
                    item=item,
                    asset_url=(item.preview_url or self._placeholder_url) if locked else item.asset_url,
                    is_locked=locked,
                    preview_only=locked,
                    is_liked=entry.is_liked if isinstance(entry, AnnotatedItem) else False,
                    is_downloaded=entry.is_downloaded if isinstance(entry, AnnotatedItem) else False,
                )
            )
        return annotated

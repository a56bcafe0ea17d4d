"""Feed engine error taxonomy."""

from __future__ import annotations

from typing import Optional, Sequence


class FeedEngineError(RuntimeError):
    """Base class for errors raised by the feed engine core."""


class InvalidQuery(FeedEngineError):
    """Malformed pagination or filter parameters supplied by the caller."""


class SourceUnavailable(FeedEngineError):
    """A single content source failed or timed out after its retry."""

    def __init__(self, source_kind: str, reason: Optional[str] = None) -> None:
        self.source_kind = source_kind
        self.reason = reason
        super().__init__(f"Content source {source_kind} unavailable: {reason or 'unknown error'}")


class FeedUnavailable(FeedEngineError):
    """Every requested content source failed; no page can be built."""

    def __init__(self, failures: Sequence[SourceUnavailable]) -> None:
        self.failures = list(failures)
        kinds = ", ".join(failure.source_kind for failure in self.failures) or "none requested"
        super().__init__(f"Feed unavailable: all content sources failed ({kinds}).")


class ConflictingEngagementState(FeedEngineError):
    """Storage reported an engagement state the atomic upsert should make impossible."""


class ResourceNotFound(FeedEngineError):
    """Engagement requested for a resource id no content source knows."""

    def __init__(self, resource_id: str) -> None:
        self.resource_id = resource_id
        super().__init__(f"Resource {resource_id} not found.")

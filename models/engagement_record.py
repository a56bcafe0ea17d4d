"""EngagementRecord model for per-user like/download state."""

import uuid

from sqlalchemy import Column, DateTime, String, UniqueConstraint
from sqlalchemy.sql import func

from database import Base


class EngagementRecord(Base):
    """At most one row per (user, resource, kind); the unique key is the idempotency key."""

    __tablename__ = "engagement_records"
    __table_args__ = (
        UniqueConstraint("user_id", "resource_id", "kind", name="uq_engagement_user_resource_kind"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, nullable=False, index=True)
    resource_id = Column(String, nullable=False, index=True)
    kind = Column(String, nullable=False)
    source_kind = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

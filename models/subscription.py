"""Subscription model (written by the billing flow, read by the feed)."""

import uuid

from sqlalchemy import Column, DateTime, String
from sqlalchemy.sql import func

from database import Base


class Subscription(Base):
    """User subscription period."""

    __tablename__ = "subscriptions"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, nullable=False, index=True)
    plan = Column(String, nullable=True)
    tier = Column(String, nullable=True)
    status = Column(String, nullable=False, default="ACTIVE", index=True)
    start_date = Column(DateTime(timezone=True), nullable=True)
    end_date = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

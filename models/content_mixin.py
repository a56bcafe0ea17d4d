"""Columns shared by every content collection table."""

import uuid

from sqlalchemy import Boolean, Column, DateTime, Integer, JSON, String, Text
from sqlalchemy.sql import func


class ContentColumnsMixin:
    """Title/asset/popularity columns common to templates, videos, greetings and images."""

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    tags = Column(JSON, nullable=True)
    asset_url = Column(String, nullable=True)
    preview_url = Column(String, nullable=True)
    is_premium = Column(Boolean, nullable=False, default=False, index=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    likes = Column(Integer, nullable=False, default=0)
    downloads = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

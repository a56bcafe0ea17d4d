"""DownloadEvent model (append-only download history)."""

import uuid

from sqlalchemy import Column, DateTime, String
from sqlalchemy.sql import func

from database import Base


class DownloadEvent(Base):
    """One row per download action, including repeats."""

    __tablename__ = "download_events"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, nullable=False, index=True)
    resource_id = Column(String, nullable=False, index=True)
    source_kind = Column(String, nullable=False)
    file_url = Column(String, nullable=True)
    downloaded_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

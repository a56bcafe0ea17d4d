"""VideoTemplate model."""

from sqlalchemy import Column, Integer, String

from database import Base
from models.content_mixin import ContentColumnsMixin


class VideoTemplate(ContentColumnsMixin, Base):
    """Short promotional video template."""

    __tablename__ = "video_templates"

    category = Column(String, nullable=False, index=True)
    duration_seconds = Column(Integer, nullable=True)

"""Template model for poster/design templates."""

from sqlalchemy import Column, String

from database import Base
from models.content_mixin import ContentColumnsMixin


class Template(ContentColumnsMixin, Base):
    """Design template (BUSINESS / FESTIVAL / GENERAL poster layouts)."""

    __tablename__ = "templates"

    category = Column(String, nullable=False, index=True)

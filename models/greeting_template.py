"""GreetingTemplate model."""

from sqlalchemy import Column, String

from database import Base
from models.content_mixin import ContentColumnsMixin


class GreetingTemplate(ContentColumnsMixin, Base):
    """Greeting card template (good morning, festivals, birthdays...)."""

    __tablename__ = "greeting_templates"

    category = Column(String, nullable=False, index=True)
    language = Column(String, nullable=False, default="en")

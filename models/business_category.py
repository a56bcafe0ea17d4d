"""BusinessCategory model for category-scoped marketing images."""

import uuid

from sqlalchemy import Boolean, Column, DateTime, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from database import Base


class BusinessCategory(Base):
    """Named business vertical (e.g. Restaurant, Motivational) owning images."""

    __tablename__ = "business_categories"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False, index=True)
    icon = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    images = relationship("BusinessCategoryImage", back_populates="business_category")

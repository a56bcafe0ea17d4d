"""BusinessCategoryImage model."""

from sqlalchemy import Column, ForeignKey, String
from sqlalchemy.orm import relationship

from database import Base
from models.content_mixin import ContentColumnsMixin


class BusinessCategoryImage(ContentColumnsMixin, Base):
    """Image uploaded under a business category; needs approval before it is listed."""

    __tablename__ = "business_category_images"

    business_category_id = Column(String, ForeignKey("business_categories.id"), nullable=False, index=True)
    approval_status = Column(String, nullable=False, default="APPROVED", index=True)

    business_category = relationship("BusinessCategory", back_populates="images")

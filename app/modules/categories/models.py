from sqlalchemy import Column, String, Boolean, Enum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from uuid import uuid4

from app.database.database import Base
from app.common.mixins import TimestampMixin
from app.modules.products.models import ProductType

class Category(Base, TimestampMixin):
    __tablename__ = "categories"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(String(255), nullable=True)
    product_type = Column(Enum(ProductType), nullable=False, default=ProductType.VITRINA)
    is_active = Column(Boolean, default=True)

    # Relationships
    products = relationship("Product", back_populates="category_ref")

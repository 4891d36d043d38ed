from pydantic import BaseModel, Field
from uuid import UUID
from typing import Optional
from datetime import datetime

from app.modules.products.models import ProductType

class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    product_type: ProductType = ProductType.VITRINA

class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    product_type: Optional[ProductType] = None
    is_active: Optional[bool] = None

class CategoryOut(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    product_type: ProductType
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True

class CategoryList(BaseModel):
    categories: list[CategoryOut]
    total: int

    class Config:
        from_attributes = True

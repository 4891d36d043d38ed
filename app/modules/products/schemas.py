from pydantic import BaseModel, Field, field_validator
from uuid import UUID
from typing import Optional, List
from datetime import datetime
from decimal import Decimal

from app.modules.products.models import ProductType, StockMovementType


class ProductBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    description: Optional[str] = Field(None, max_length=255)
    price: Decimal = Field(..., gt=0, description="Precio de venta")
    category: Optional[str] = Field(None, max_length=100)
    category_id: Optional[UUID] = None
    barcode: Optional[str] = Field(None, max_length=50)
    is_service: bool = False

    # Precio especial / promociones
    special_price: Optional[Decimal] = Field(None, ge=0)
    has_promotion: bool = False
    promotion_discount: Optional[Decimal] = Field(None, ge=0, le=100)
    promotion_start_date: Optional[datetime] = None
    promotion_end_date: Optional[datetime] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("El nombre es requerido")
        return v


class ProductCreate(ProductBase):
    stock: int = Field(..., ge=0)
    min_stock: Optional[int] = Field(None, ge=0)
    type: Optional[ProductType] = None


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    description: Optional[str] = Field(None, max_length=255)
    price: Optional[Decimal] = Field(None, gt=0)
    stock: Optional[int] = Field(None, ge=0)
    min_stock: Optional[int] = Field(None, ge=0)
    category: Optional[str] = Field(None, max_length=100)
    category_id: Optional[UUID] = None
    type: Optional[ProductType] = None
    barcode: Optional[str] = Field(None, max_length=50)
    is_active: Optional[bool] = None
    special_price: Optional[Decimal] = Field(None, ge=0)
    has_promotion: Optional[bool] = None
    promotion_discount: Optional[Decimal] = Field(None, ge=0, le=100)
    promotion_start_date: Optional[datetime] = None
    promotion_end_date: Optional[datetime] = None
    reason: Optional[str] = Field(None, description="Motivo del ajuste de stock")


class ProductOut(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    price: Decimal
    current_price: Decimal
    stock: int
    min_stock: int
    category: str
    category_id: Optional[UUID] = None
    type: ProductType
    barcode: Optional[str] = None
    is_service: bool
    is_active: bool
    is_low_stock: bool
    special_price: Optional[Decimal] = None
    has_promotion: bool
    promotion_discount: Optional[Decimal] = None
    promotion_start_date: Optional[datetime] = None
    promotion_end_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ProductList(BaseModel):
    products: List[ProductOut]
    total: int


class StockMovementOut(BaseModel):
    id: UUID
    product_id: UUID
    type: StockMovementType
    quantity: int
    previous_stock: int
    new_stock: int
    reason: Optional[str] = None
    user_id: Optional[UUID] = None
    created_at: datetime

    class Config:
        from_attributes = True


class LowStockProduct(BaseModel):
    id: UUID
    name: str
    stock: int
    min_stock: int
    type: ProductType

    class Config:
        from_attributes = True


class InventoryDashboard(BaseModel):
    total_products: int
    active_products: int
    low_stock_count: int
    out_of_stock_count: int
    inventory_value: Decimal
    low_stock_products: List[LowStockProduct]


class ImportResults(BaseModel):
    created: int
    updated: int
    errors: List[str]


class InventoryImportResult(BaseModel):
    message: str
    results: ImportResults

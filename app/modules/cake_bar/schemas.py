from pydantic import BaseModel, Field, field_validator
from uuid import UUID
from typing import Optional, List
from datetime import datetime
from decimal import Decimal

from app.modules.cake_bar.models import CakeBarOptionType, CakeBarOrderStatus
from app.modules.sales.models import PaymentType


# ===== OPTIONS =====

class CakeBarOptionCreate(BaseModel):
    product_id: Optional[UUID] = Field(None, description="Vacío para opción global")
    option_type: CakeBarOptionType
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=255)
    category: Optional[str] = Field(None, max_length=50)
    price_add: Decimal = Field(Decimal("0"), ge=0)
    is_default: bool = False
    allow_multiple: Optional[bool] = None
    display_order: int = 0


class CakeBarOptionUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=255)
    category: Optional[str] = Field(None, max_length=50)
    price_add: Optional[Decimal] = Field(None, ge=0)
    is_default: Optional[bool] = None
    allow_multiple: Optional[bool] = None
    is_active: Optional[bool] = None
    display_order: Optional[int] = None


class CakeBarOptionOut(BaseModel):
    id: UUID
    product_id: Optional[UUID] = None
    option_type: CakeBarOptionType
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    price_add: Decimal
    is_default: bool
    allow_multiple: bool
    is_active: bool
    display_order: int

    class Config:
        from_attributes = True


# ===== ORDERS =====

class CustomizationIn(BaseModel):
    option_id: UUID
    quantity: int = Field(1, ge=0)


class CakeBarOrderCreate(BaseModel):
    product_id: UUID
    size: str
    customizations: List[CustomizationIn] = Field(default_factory=list)
    customer_name: Optional[str] = Field(None, max_length=150)
    customer_phone: Optional[str] = Field(None, max_length=30)
    notes: Optional[str] = None

    @field_validator("size", mode="before")
    @classmethod
    def size_as_string(cls, v):
        return str(v)


class CakeBarOrderUpdate(BaseModel):
    status: Optional[CakeBarOrderStatus] = None
    notes: Optional[str] = None
    customer_name: Optional[str] = Field(None, max_length=150)
    customer_phone: Optional[str] = Field(None, max_length=30)


class CustomizationOut(BaseModel):
    option_id: UUID
    option_type: CakeBarOptionType
    option_name: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal

    class Config:
        from_attributes = True


class CakeBarPaymentCreate(BaseModel):
    amount: Decimal = Field(..., gt=0)
    payment_type: PaymentType = PaymentType.CASH
    description: Optional[str] = Field(None, max_length=255)


class CakeBarPaymentOut(BaseModel):
    id: UUID
    order_id: UUID
    amount: Decimal
    payment_type: PaymentType
    description: Optional[str] = None
    paid_by: Optional[UUID] = None
    created_at: datetime

    class Config:
        from_attributes = True


class CakeBarOrderOut(BaseModel):
    id: UUID
    order_number: str
    product_id: UUID
    product_name: Optional[str] = None
    size: str
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    base_price: Decimal
    total_price: Decimal
    amount_paid: Decimal
    remaining_amount: Decimal
    status: CakeBarOrderStatus
    notes: Optional[str] = None
    created_by: Optional[UUID] = None
    assigned_worker: Optional[UUID] = None
    completed_by: Optional[UUID] = None
    start_time: Optional[datetime] = None
    estimated_ready: Optional[datetime] = None
    completed_time: Optional[datetime] = None
    time_remaining: Optional[int] = Field(None, description="Milisegundos restantes (solo en preparación)")
    created_at: datetime
    customizations: List[CustomizationOut] = []
    payments: List[CakeBarPaymentOut] = []

    class Config:
        from_attributes = True


class PriceQuoteOut(BaseModel):
    base_price: Decimal
    multiplier: Decimal
    sized_price: Decimal
    addons_total: Decimal
    total: Decimal
    lines: List[CustomizationOut]

    class Config:
        from_attributes = True

from pydantic import BaseModel, Field, field_validator, EmailStr
from uuid import UUID
from typing import Optional, List
from datetime import datetime
from decimal import Decimal

from app.modules.custom_orders.models import CustomOrderStatus, PaymentMethod, CustomPaymentType


class CustomOrderCreate(BaseModel):
    customer_name: str = Field(..., min_length=1, max_length=150)
    customer_phone: Optional[str] = Field(None, max_length=30)
    customer_email: Optional[EmailStr] = None
    description: str = Field(..., min_length=1)
    delivery_date: datetime
    notes: Optional[str] = None
    estimated_price: Decimal = Field(..., gt=0)
    advance_amount: Decimal = Field(..., gt=0)
    payment_method: PaymentMethod = PaymentMethod.CASH

    @field_validator("customer_name", "description")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Campo requerido")
        return v


class CustomOrderPaymentCreate(BaseModel):
    amount: Decimal = Field(..., gt=0)
    payment_method: PaymentMethod = PaymentMethod.CASH
    payment_type: CustomPaymentType = CustomPaymentType.ANTICIPO
    description: Optional[str] = Field(None, max_length=255)


class CustomOrderStatusUpdate(BaseModel):
    status: str  # Se valida en el servicio


class CustomOrderPaymentOut(BaseModel):
    id: UUID
    custom_order_id: UUID
    amount: Decimal
    payment_method: PaymentMethod
    payment_type: CustomPaymentType
    description: Optional[str] = None
    user_id: Optional[UUID] = None
    created_at: datetime

    class Config:
        from_attributes = True


class CustomOrderOut(BaseModel):
    id: UUID
    order_number: str
    customer_name: str
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None
    description: str
    estimated_price: Decimal
    total_paid: Decimal
    remaining: Decimal
    status: CustomOrderStatus
    delivery_date: datetime
    notes: Optional[str] = None
    user_id: UUID
    created_at: datetime
    payments: List[CustomOrderPaymentOut] = []

    class Config:
        from_attributes = True

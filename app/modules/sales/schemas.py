from pydantic import BaseModel, Field
from uuid import UUID
from typing import Any, Optional, List
from datetime import datetime
from decimal import Decimal

from app.modules.sales.models import PaymentType, SaleStatus


class SaleItemCreate(BaseModel):
    product_id: UUID
    quantity: int = Field(..., gt=0)
    unit_price: Optional[Decimal] = Field(None, ge=0, description="Por defecto, el precio vigente del producto")


class SaleCreate(BaseModel):
    items: List[SaleItemCreate] = Field(default_factory=list)
    payment_method: Any = Field(
        "CASH",
        description="Texto ('CASH'), objeto {'type': 'CARD'} o JSON serializado"
    )
    discount: Decimal = Field(Decimal("0"), ge=0, le=100, description="Porcentaje de descuento")
    amount_received: Optional[Decimal] = Field(None, ge=0, description="Efectivo recibido; vacío = pago exacto")
    sale_type: str = Field("VITRINA", max_length=20)


class SaleItemOut(BaseModel):
    id: UUID
    product_id: UUID
    product_name: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal

    class Config:
        from_attributes = True


class SaleOut(BaseModel):
    id: UUID
    sale_number: str
    subtotal: Decimal
    discount: Decimal
    discount_amount: Decimal
    total: Decimal
    payment_type: PaymentType
    sale_type: str
    status: SaleStatus
    amount_received: Optional[Decimal] = None
    change: Decimal
    user_id: UUID
    cash_register_id: Optional[UUID] = None
    created_at: datetime
    items: List[SaleItemOut] = []

    class Config:
        from_attributes = True

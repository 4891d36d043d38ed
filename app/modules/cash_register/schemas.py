from pydantic import BaseModel, Field
from uuid import UUID
from typing import Optional, List, Dict
from datetime import date, datetime
from decimal import Decimal

from app.modules.cash_register.models import CashRegisterStatus


class CashClosureAction(BaseModel):
    """Abrir (action=open) o cerrar (action=close) la caja"""
    action: str
    opening_cash: Optional[Decimal] = Field(None, ge=0)
    actual_cash: Optional[Decimal] = Field(None, ge=0)
    notes: Optional[str] = None


class ExpenseCreate(BaseModel):
    amount: Decimal = Field(..., gt=0)
    category: str = Field("GENERAL", max_length=50)
    description: Optional[str] = Field(None, max_length=255)


class ExpenseOut(BaseModel):
    id: UUID
    cash_register_id: UUID
    amount: Decimal
    category: str
    description: Optional[str] = None
    user_id: UUID
    created_at: datetime

    class Config:
        from_attributes = True


class CashRegisterOut(BaseModel):
    id: UUID
    date: date
    status: CashRegisterStatus
    opening_cash: Decimal
    closing_cash: Optional[Decimal] = None
    total_sales: Decimal
    total_expenses: Decimal
    expected_cash: Optional[Decimal] = None
    difference: Optional[Decimal] = None
    opened_by: UUID
    closed_by: Optional[UUID] = None
    closed_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class PaymentBucket(BaseModel):
    total: Decimal
    count: int


class CashSummary(BaseModel):
    opening_cash: Decimal
    total_sales: Decimal
    cash_sales: Decimal
    card_sales: Decimal
    transfer_sales: Decimal
    total_expenses: Decimal
    expected_cash: Decimal
    actual_cash: Optional[Decimal] = None
    difference: Optional[Decimal] = None
    status: CashRegisterStatus


class RecentEntry(BaseModel):
    id: str
    type: str  # VITRINA, CAKE_BAR o CUSTOM_ORDER
    total: Decimal
    payment_type: str
    created_at: datetime
    customer_name: Optional[str] = None


class CashClosureStatus(BaseModel):
    has_open_register: bool
    register: Optional[CashRegisterOut] = None
    summary: Optional[CashSummary] = None
    sales_by_payment: Dict[str, PaymentBucket] = {}
    recent_sales: List[RecentEntry] = []
    expenses: List[ExpenseOut] = []


class CashClosureResult(BaseModel):
    message: str
    register: CashRegisterOut
    summary: Optional[CashSummary] = None

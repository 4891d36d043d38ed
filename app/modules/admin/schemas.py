from pydantic import BaseModel
from uuid import UUID
from typing import Optional, List, Dict
from datetime import date, datetime
from decimal import Decimal


class AlertEmployee(BaseModel):
    id: UUID
    name: str
    email: str

    class Config:
        from_attributes = True


class AdminAlert(BaseModel):
    id: str
    type: str  # meal_overtime, late_arrival o no_checkin
    severity: str  # error, warning o info
    employee: AlertEmployee
    message: str
    start_time: Optional[datetime] = None
    duration: Optional[int] = None
    overtime: Optional[int] = None
    minutes_late: Optional[int] = None
    expected_time: Optional[str] = None
    work_session_id: Optional[UUID] = None


class AlertSummary(BaseModel):
    total: int
    errors: int
    warnings: int
    info: int


class AlertsResponse(BaseModel):
    alerts: List[AdminAlert]
    summary: AlertSummary


class PaymentTotal(BaseModel):
    total: Decimal
    count: int


class TopProduct(BaseModel):
    product_id: UUID
    name: str
    category: str
    quantity: int
    revenue: Decimal


class SalesBreakdown(BaseModel):
    vitrina: Decimal
    cake_bar: Decimal
    custom_orders: Decimal


class OperationsSummary(BaseModel):
    active_cake_bar_orders: int
    pending_custom_orders: int
    low_stock_count: int
    total_products: int
    active_employees: int
    active_users: int


class DashboardResponse(BaseModel):
    period: str
    start_date: datetime
    end_date: datetime
    payment_totals: Dict[str, PaymentTotal]
    sales_breakdown: SalesBreakdown
    grand_total: Decimal
    total_transactions: int
    top_products: List[TopProduct]
    operations: OperationsSummary


# ===== Historial de ventas =====

class HistoryLine(BaseModel):
    name: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal


class HistoryEntry(BaseModel):
    id: str
    number: Optional[str] = None
    type: str  # VITRINA, CAKE_BAR o CUSTOM_ORDER
    total: Decimal
    payment_type: str
    created_at: datetime
    customer_name: Optional[str] = None
    user_id: Optional[UUID] = None
    employee_name: Optional[str] = None
    items: List[HistoryLine] = []


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class HistoryStats(BaseModel):
    total: Decimal
    count: int


class TypeTotal(BaseModel):
    sale_type: str
    total: Decimal
    count: int


class EmployeeTotal(BaseModel):
    employee_id: UUID
    employee_name: str
    total: Decimal
    count: int


class HistoryBreakdown(BaseModel):
    by_payment: Dict[str, PaymentTotal]
    by_type: List[TypeTotal]
    by_employee: List[EmployeeTotal]


class DailyTotal(BaseModel):
    day: date
    total: Decimal
    count: int


class SalesHistoryResponse(BaseModel):
    sales: List[HistoryEntry]
    pagination: Pagination
    stats: HistoryStats
    breakdown: HistoryBreakdown
    daily_sales: List[DailyTotal]

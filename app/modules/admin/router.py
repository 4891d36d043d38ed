from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from datetime import date
from typing import Optional
from uuid import UUID

from app.core.config import settings
from app.database.database import get_db
from app.modules.auth.dependencies import AuthDependencies
from app.modules.auth.models import User
from app.modules.admin.schemas import AlertsResponse, DashboardResponse, SalesHistoryResponse
from app.modules.admin.service import AdminService, SalesHistoryService

admin_router = APIRouter(prefix="/admin", tags=["Admin"])


@admin_router.get("/alerts", response_model=AlertsResponse)
def get_alerts(
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_admin_or_manager())
):
    """
    Alertas de asistencia del día, ordenadas por severidad:
    comidas excedidas, llegadas tarde y empleados sin check-in.
    """
    return AdminService(db).get_alerts()


@admin_router.get("/dashboard", response_model=DashboardResponse)
def get_dashboard(
    period: str = Query("today", description="today, week o month"),
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_admin_or_manager())
):
    return AdminService(db).get_dashboard(period)


@admin_router.get("/sales-history", response_model=None)
def get_sales_history(
    start_date: Optional[date] = Query(None, description="Fecha inicial (inclusiva)"),
    end_date: Optional[date] = Query(None, description="Fecha final (inclusiva)"),
    payment_type: Optional[str] = Query(None, description="CASH, CARD, TRANSFER, MIXED o ALL"),
    employee_id: Optional[UUID] = Query(None),
    sale_type: Optional[str] = Query(None, description="VITRINA, CAKE_BAR, CUSTOM_ORDER o ALL"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    export: Optional[str] = Query(None, pattern="^(csv)$", description="Formato de exportación: csv"),
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_admin_or_manager())
):
    """
    Historial unificado de ventas de Vitrina, Cake Bar y pedidos personalizados.

    Devuelve la página solicitada con estadísticas del periodo filtrado
    (totales por medio de pago, por tipo de venta, por empleado y por día).
    Con `export=csv` descarga todas las ventas filtradas sin paginar.
    """
    service = SalesHistoryService(db)
    filters = {
        "start_date": start_date,
        "end_date": end_date,
        "payment_type": payment_type,
        "employee_id": employee_id,
        "sale_type": sale_type
    }
    if export == "csv":
        return service.export_csv(**filters)
    return SalesHistoryResponse(**service.get_history(page=page, limit=limit, **filters))

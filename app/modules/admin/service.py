"""
Servicio de administración: alertas de asistencia, tablero e historial de ventas.
"""
from sqlalchemy.orm import Session, selectinload
from fastapi import HTTPException, status
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID
import math
import logging

from app.common.csv_export import create_csv_response
from app.core.config import settings
from app.modules.auth.models import User, UserRole
from app.modules.cake_bar.models import CakeBarOrder, CakeBarOrderStatus, CakeBarPayment
from app.modules.cash_register.reconciliation import summarize_payments
from app.modules.custom_orders.models import CustomOrder, CustomOrderPayment, CustomOrderStatus
from app.modules.employees.models import WorkSession, BreakSession, BreakType
from app.modules.employees.timekeeping import minutes_between
from app.modules.products.models import Product
from app.modules.products.service import get_low_stock_products
from app.modules.sales.ledger import SALE_TYPES, payment_entries, sort_entries, vitrina_entries
from app.modules.sales.models import PaymentType, Sale, SaleItem, SaleStatus

logger = logging.getLogger(__name__)

SEVERITY_ORDER = {"error": 3, "warning": 2, "info": 1}
PERIODS = ("today", "week", "month")


def period_range(period: str, now: datetime) -> Tuple[datetime, datetime]:
    """Rango [inicio, fin) del periodo: hoy, últimos 7 días o último mes"""
    end = datetime.combine(now.date(), time.min) + timedelta(days=1)
    if period == "week":
        start_day = now.date() - timedelta(days=7)
    elif period == "month":
        month = now.month - 1 or 12
        year = now.year if now.month > 1 else now.year - 1
        day = min(now.day, 28)
        start_day = date(year, month, day)
    else:
        start_day = now.date()
    return datetime.combine(start_day, time.min), end


def _employee(user: User) -> Dict[str, Any]:
    return {"id": user.id, "name": user.name, "email": user.email}


class AdminService:
    """Alertas y tablero para ADMIN / MANAGER"""

    def __init__(self, db: Session):
        self.db = db

    # ----- alertas -----

    def get_alerts(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or datetime.now()
        today = now.date()
        alerts: List[Dict[str, Any]] = []

        # Comidas en curso que exceden el tiempo permitido
        open_meals = self.db.query(BreakSession) \
            .join(WorkSession) \
            .options(selectinload(BreakSession.work_session).selectinload(WorkSession.user)) \
            .filter(
                BreakSession.break_type == BreakType.MEAL,
                BreakSession.end_time.is_(None),
                WorkSession.day_date == today
            ).all()
        for meal in open_meals:
            elapsed = minutes_between(meal.start_time, now)
            if elapsed > meal.max_allowed:
                user = meal.work_session.user
                overtime = round(elapsed - meal.max_allowed)
                alerts.append({
                    "id": str(meal.id),
                    "type": "meal_overtime",
                    "severity": "warning",
                    "employee": _employee(user),
                    "message": f"{user.name} ha excedido su tiempo de comida por {overtime} minutos",
                    "start_time": meal.start_time,
                    "duration": round(elapsed),
                    "overtime": overtime,
                    "work_session_id": meal.work_session_id
                })

        # Llegadas tarde (primera sesión del día)
        first_sessions = self.db.query(WorkSession) \
            .options(selectinload(WorkSession.user)) \
            .filter(WorkSession.day_date == today, WorkSession.session_number == 1) \
            .all()
        for session in first_sessions:
            if not session.is_on_time and session.minutes_late > settings.LATE_ALERT_MINUTES:
                alerts.append({
                    "id": f"late_{session.id}",
                    "type": "late_arrival",
                    "severity": "error" if session.minutes_late > settings.LATE_ERROR_MINUTES else "warning",
                    "employee": _employee(session.user),
                    "message": f"{session.user.name} llegó {session.minutes_late} minutos tarde",
                    "start_time": session.start_time,
                    "minutes_late": session.minutes_late,
                    "work_session_id": session.id
                })

        # Empleados sin check-in
        if now.hour >= settings.NO_CHECKIN_ALERT_HOUR:
            checked_in = {session.user_id for session in first_sessions}
            employees = self.db.query(User) \
                .options(selectinload(User.schedules)) \
                .filter(User.role == UserRole.EMPLOYEE, User.is_active.is_(True)) \
                .order_by(User.name) \
                .all()
            for employee in employees:
                if employee.id in checked_in:
                    continue
                schedule = next(
                    (s for s in employee.schedules if s.day_of_week == today.weekday()), None
                )
                if schedule is not None and schedule.is_day_off:
                    continue
                alerts.append({
                    "id": f"no_checkin_{employee.id}",
                    "type": "no_checkin",
                    "severity": "error" if now.hour >= settings.NO_CHECKIN_ERROR_HOUR else "warning",
                    "employee": _employee(employee),
                    "message": f"{employee.name} no ha hecho check-in hoy",
                    "expected_time": schedule.start_time if schedule else settings.DEFAULT_SHIFT_START
                })

        alerts.sort(key=lambda alert: SEVERITY_ORDER[alert["severity"]], reverse=True)
        summary = {
            "total": len(alerts),
            "errors": len([a for a in alerts if a["severity"] == "error"]),
            "warnings": len([a for a in alerts if a["severity"] == "warning"]),
            "info": len([a for a in alerts if a["severity"] == "info"])
        }
        return {"alerts": alerts, "summary": summary}

    # ----- tablero -----

    def get_dashboard(self, period: str = "today", now: Optional[datetime] = None) -> Dict[str, Any]:
        if period not in PERIODS:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Periodo no válido. Use: {', '.join(PERIODS)}"
            )
        now = now or datetime.now()
        start, end = period_range(period, now)

        sales = self.db.query(Sale) \
            .options(selectinload(Sale.items).selectinload(SaleItem.product)) \
            .filter(
                Sale.status == SaleStatus.COMPLETED,
                Sale.created_at >= start,
                Sale.created_at < end
            ).all()
        cake_bar_payments = self.db.query(CakeBarPayment).filter(
            CakeBarPayment.created_at >= start,
            CakeBarPayment.created_at < end
        ).all()
        custom_payments = self.db.query(CustomOrderPayment).filter(
            CustomOrderPayment.created_at >= start,
            CustomOrderPayment.created_at < end
        ).all()

        entries = [(s.payment_type, s.total) for s in sales]
        entries += [(p.payment_type, p.amount) for p in cake_bar_payments]
        entries += [(p.payment_method.value, p.amount) for p in custom_payments]
        payment_totals = summarize_payments(entries)

        vitrina_total = sum((Decimal(s.total) for s in sales), Decimal("0"))
        cake_bar_total = sum((Decimal(p.amount) for p in cake_bar_payments), Decimal("0"))
        custom_total = sum((Decimal(p.amount) for p in custom_payments), Decimal("0"))

        return {
            "period": period,
            "start_date": start,
            "end_date": end,
            "payment_totals": payment_totals,
            "sales_breakdown": {
                "vitrina": vitrina_total,
                "cake_bar": cake_bar_total,
                "custom_orders": custom_total
            },
            "grand_total": vitrina_total + cake_bar_total + custom_total,
            "total_transactions": len(entries),
            "top_products": self._top_products(sales),
            "operations": self._operations_summary()
        }

    def _top_products(self, sales: List[Sale], limit: int = 5) -> List[Dict[str, Any]]:
        totals: Dict[Any, Dict[str, Any]] = {}
        for sale in sales:
            for item in sale.items:
                if item.product is None:
                    continue
                entry = totals.setdefault(item.product_id, {
                    "product_id": item.product_id,
                    "name": item.product.name,
                    "category": item.product.category or "Sin categoría",
                    "quantity": 0,
                    "revenue": Decimal("0")
                })
                entry["quantity"] += item.quantity
                entry["revenue"] += Decimal(item.subtotal)
        return sorted(totals.values(), key=lambda e: e["quantity"], reverse=True)[:limit]

    def _operations_summary(self) -> Dict[str, int]:
        return {
            "active_cake_bar_orders": self.db.query(CakeBarOrder).filter(
                CakeBarOrder.status.in_([CakeBarOrderStatus.PENDING, CakeBarOrderStatus.IN_PROGRESS])
            ).count(),
            "pending_custom_orders": self.db.query(CustomOrder).filter(
                CustomOrder.status != CustomOrderStatus.ENTREGADO
            ).count(),
            "low_stock_count": len(get_low_stock_products(self.db)),
            "total_products": self.db.query(Product).filter(Product.is_active.is_(True)).count(),
            "active_employees": self.db.query(WorkSession).filter(WorkSession.end_time.is_(None)).count(),
            "active_users": self.db.query(User).filter(User.is_active.is_(True)).count()
        }


FILTER_ALL = "ALL"

HISTORY_CSV_HEADERS = {
    "created_at": "Fecha",
    "number": "Número",
    "type": "Tipo",
    "customer_name": "Cliente",
    "employee_name": "Empleado",
    "payment_type": "Método de pago",
    "total": "Total",
}


class SalesHistoryService:
    """
    Historial unificado de ventas: Vitrina, abonos de Cake Bar y abonos de
    pedidos personalizados en una sola lista con filtros y estadísticas.
    """

    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def _choice(value: Optional[str], allowed, message: str) -> Optional[str]:
        if value is None or value.strip().upper() in ("", FILTER_ALL):
            return None
        normalized = value.strip().upper()
        if normalized not in allowed:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)
        return normalized

    def get_entries(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        payment_type: Optional[str] = None,
        employee_id: Optional[UUID] = None,
        sale_type: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Entradas filtradas, más recientes primero. Las fechas son inclusivas."""
        if start_date and end_date and end_date < start_date:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="La fecha final debe ser igual o posterior a la inicial"
            )
        payment_key = self._choice(
            payment_type, {p.value for p in PaymentType}, "Tipo de pago no válido"
        )
        type_key = self._choice(sale_type, SALE_TYPES, "Tipo de venta no válido")

        start = datetime.combine(start_date, time.min) if start_date else None
        end = datetime.combine(end_date, time.min) + timedelta(days=1) if end_date else None

        entries = vitrina_entries(self.db, start, end, with_items=True)
        entries += payment_entries(self.db, start, end, with_items=True)

        if payment_key:
            entries = [e for e in entries if e["payment_type"] == payment_key]
        if employee_id:
            entries = [e for e in entries if e["user_id"] == employee_id]
        if type_key:
            entries = [e for e in entries if e["type"] == type_key]

        names = self._employee_names({e["user_id"] for e in entries if e["user_id"]})
        for entry in entries:
            entry["employee_name"] = names.get(entry["user_id"]) if entry["user_id"] else None
        return sort_entries(entries)

    def get_history(self, page: int = 1, limit: int = 20, **filters) -> Dict[str, Any]:
        entries = self.get_entries(**filters)
        total = len(entries)
        offset = (page - 1) * limit

        return {
            "sales": entries[offset:offset + limit],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": math.ceil(total / limit) if total else 0
            },
            "stats": {
                "total": sum((e["total"] for e in entries), Decimal("0")),
                "count": total
            },
            "breakdown": {
                "by_payment": summarize_payments((e["payment_type"], e["total"]) for e in entries),
                "by_type": self._by_type(entries),
                "by_employee": self._by_employee(entries)
            },
            "daily_sales": self._by_day(entries)
        }

    def export_csv(self, **filters):
        entries = self.get_entries(**filters)
        filename = f"historial_ventas_{date.today().isoformat()}.csv"
        return create_csv_response(entries, filename, HISTORY_CSV_HEADERS)

    def _employee_names(self, user_ids) -> Dict[UUID, str]:
        if not user_ids:
            return {}
        users = self.db.query(User).filter(User.id.in_(list(user_ids))).all()
        return {user.id: user.name for user in users}

    @staticmethod
    def _by_type(entries: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        totals = {sale_type: {"sale_type": sale_type, "total": Decimal("0"), "count": 0} for sale_type in SALE_TYPES}
        for entry in entries:
            bucket = totals.setdefault(entry["type"], {"sale_type": entry["type"], "total": Decimal("0"), "count": 0})
            bucket["total"] += entry["total"]
            bucket["count"] += 1
        return list(totals.values())

    @staticmethod
    def _by_employee(entries: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        totals: Dict[UUID, Dict[str, Any]] = {}
        for entry in entries:
            if not entry["user_id"]:
                continue
            bucket = totals.setdefault(entry["user_id"], {
                "employee_id": entry["user_id"],
                "employee_name": entry["employee_name"] or "Sistema",
                "total": Decimal("0"),
                "count": 0
            })
            bucket["total"] += entry["total"]
            bucket["count"] += 1
        return sorted(totals.values(), key=lambda b: b["total"], reverse=True)

    @staticmethod
    def _by_day(entries: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        totals: Dict[date, Dict[str, Any]] = {}
        for entry in entries:
            day = entry["created_at"].date()
            bucket = totals.setdefault(day, {"day": day, "total": Decimal("0"), "count": 0})
            bucket["total"] += entry["total"]
            bucket["count"] += 1
        return sorted(totals.values(), key=lambda b: b["day"], reverse=True)

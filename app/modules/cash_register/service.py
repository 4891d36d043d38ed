"""
Servicio de caja: apertura, arqueo, cierre y gastos.

Las ventas de la caja incluyen las ventas de Vitrina ligadas a ella y los
abonos de Cake Bar y pedidos personalizados registrados entre su apertura y
su cierre, de modo que dos cajas del mismo día nunca comparten abonos.
"""
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from fastapi import HTTPException, status
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
import logging

from app.modules.auth.models import User
from app.modules.cash_register.models import CashRegister, CashRegisterStatus, Expense
from app.modules.cash_register.reconciliation import (
    summarize_payments, cash_total, expected_cash, cash_difference
)
from app.modules.cash_register.schemas import CashClosureAction, ExpenseCreate
from app.modules.sales.ledger import payment_entries, sale_entry, sort_entries
from app.modules.sales.models import PaymentType, SaleStatus

logger = logging.getLogger(__name__)

RECENT_ENTRIES = 10


class CashRegisterService:
    """Servicio para gestión de la caja registradora"""

    def __init__(self, db: Session):
        self.db = db

    def get_open_register(self) -> Optional[CashRegister]:
        return self.db.query(CashRegister).filter(
            CashRegister.status == CashRegisterStatus.OPEN
        ).first()

    # ----- cálculo -----

    def collect_entries(self, register: CashRegister) -> List[Dict[str, Any]]:
        """
        Ingresos de la caja: ventas de Vitrina ligadas a ella y abonos
        registrados mientras estuvo abierta (de la apertura al cierre).
        """
        entries = [
            sale_entry(sale) for sale in register.sales
            if sale.status == SaleStatus.COMPLETED
        ]
        entries += payment_entries(self.db, start=register.created_at, end=register.closed_at)
        return sort_entries(entries)

    def build_summary(self, register: CashRegister, entries: List[Dict[str, Any]]) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        sales_by_payment = summarize_payments((e["payment_type"], e["total"]) for e in entries)
        total_sales = sum((e["total"] for e in entries), Decimal("0"))
        total_expenses = sum((Decimal(x.amount) for x in register.expenses), Decimal("0"))
        cash_sales = cash_total(sales_by_payment)
        expected = expected_cash(register.opening_cash, cash_sales, total_expenses)

        actual = register.closing_cash
        summary = {
            "opening_cash": Decimal(register.opening_cash),
            "total_sales": total_sales,
            "cash_sales": cash_sales,
            "card_sales": sales_by_payment.get(PaymentType.CARD.value, {}).get("total", Decimal("0")),
            "transfer_sales": sales_by_payment.get(PaymentType.TRANSFER.value, {}).get("total", Decimal("0")),
            "total_expenses": total_expenses,
            "expected_cash": expected,
            "actual_cash": actual,
            "difference": cash_difference(actual, expected) if actual is not None else None,
            "status": register.status
        }
        return summary, sales_by_payment

    # ----- operaciones -----

    def get_status(self) -> Dict[str, Any]:
        """Estado de la caja abierta con arqueo en curso"""
        register = self.get_open_register()
        if not register:
            return {"has_open_register": False}

        entries = self.collect_entries(register)
        summary, sales_by_payment = self.build_summary(register, entries)
        return {
            "has_open_register": True,
            "register": register,
            "summary": summary,
            "sales_by_payment": sales_by_payment,
            "recent_sales": entries[:RECENT_ENTRIES],
            "expenses": register.expenses
        }

    def handle_action(self, data: CashClosureAction, user: User) -> Dict[str, Any]:
        if data.action == "open":
            return self.open_register(data, user)
        if data.action == "close":
            return self.close_register(data, user)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Acción no válida"
        )

    def open_register(self, data: CashClosureAction, user: User, today: Optional[date] = None) -> Dict[str, Any]:
        """Abrir caja. Solo puede existir una caja abierta."""
        if data.opening_cash is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="El efectivo inicial es requerido"
            )
        if self.get_open_register():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Ya hay una caja abierta"
            )

        try:
            register = CashRegister(
                date=today or date.today(),
                status=CashRegisterStatus.OPEN,
                opening_cash=data.opening_cash,
                opened_by=user.id,
                notes=data.notes
            )
            self.db.add(register)
            self.db.commit()
            self.db.refresh(register)
            logger.info(f"Caja abierta por {user.email} con {register.opening_cash}")
            return {"message": "Caja abierta exitosamente", "register": register}

        except IntegrityError:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Error de integridad en base de datos"
            )
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error interno del servidor: {str(e)}"
            )

    def close_register(self, data: CashClosureAction, user: User) -> Dict[str, Any]:
        """Cerrar caja con arqueo. La diferencia se registra pero no bloquea el cierre."""
        if data.actual_cash is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="El efectivo contado es requerido"
            )
        register = self.get_open_register()
        if not register:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No hay caja abierta para cerrar"
            )

        try:
            entries = self.collect_entries(register)
            summary, _ = self.build_summary(register, entries)
            difference = cash_difference(data.actual_cash, summary["expected_cash"])

            register.status = CashRegisterStatus.CLOSED
            register.closing_cash = data.actual_cash
            register.total_sales = summary["total_sales"]
            register.total_expenses = summary["total_expenses"]
            register.expected_cash = summary["expected_cash"]
            register.difference = difference
            register.closed_by = user.id
            register.closed_at = datetime.now()
            register.notes = data.notes or register.notes

            self.db.commit()
            self.db.refresh(register)

            summary.update({
                "actual_cash": data.actual_cash,
                "difference": difference,
                "status": register.status
            })
            logger.info(
                f"Caja cerrada por {user.email}: ventas={summary['total_sales']} "
                f"esperado={summary['expected_cash']} contado={data.actual_cash} diferencia={difference}"
            )
            return {"message": "Caja cerrada exitosamente", "register": register, "summary": summary}

        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error interno del servidor: {str(e)}"
            )

    def add_expense(self, data: ExpenseCreate, user: User) -> Expense:
        """Registrar gasto pagado con efectivo de la caja abierta"""
        register = self.get_open_register()
        if not register:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No hay caja abierta"
            )

        expense = Expense(
            cash_register_id=register.id,
            amount=data.amount,
            category=data.category,
            description=data.description,
            user_id=user.id
        )
        self.db.add(expense)
        self.db.commit()
        self.db.refresh(expense)
        logger.info(f"Gasto de {expense.amount} ({expense.category}) registrado por {user.email}")
        return expense

    def get_history(self, limit: int = 30) -> List[CashRegister]:
        return self.db.query(CashRegister) \
            .order_by(CashRegister.date.desc(), CashRegister.created_at.desc()) \
            .limit(limit) \
            .all()

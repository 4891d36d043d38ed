from fastapi import APIRouter, status, Depends, Query
from sqlalchemy.orm import Session
from typing import List

from app.database.database import get_db
from app.modules.auth.dependencies import AuthDependencies
from app.modules.auth.models import User
from app.modules.cash_register.schemas import (
    CashClosureAction, CashClosureStatus, CashClosureResult,
    CashRegisterOut, ExpenseCreate, ExpenseOut
)
from app.modules.cash_register.service import CashRegisterService

cash_register_router = APIRouter(prefix="/admin/cash-closure", tags=["Cash Register"])


@cash_register_router.get("/", response_model=CashClosureStatus)
def get_cash_status(
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_admin_or_manager())
):
    """Estado de la caja abierta: resumen, ventas por medio de pago y últimos ingresos."""
    return CashRegisterService(db).get_status()


@cash_register_router.post("/", response_model=CashClosureResult)
def cash_action(
    data: CashClosureAction,
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_admin_or_manager())
):
    """
    Abrir o cerrar caja.

    - action=open: requiere opening_cash
    - action=close: requiere actual_cash; registra la diferencia del arqueo
    """
    return CashRegisterService(db).handle_action(data, current_user)


@cash_register_router.post("/expenses", response_model=ExpenseOut, status_code=status.HTTP_201_CREATED)
def add_expense(
    data: ExpenseCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_admin_or_manager())
):
    return CashRegisterService(db).add_expense(data, current_user)


@cash_register_router.get("/history", response_model=List[CashRegisterOut])
def cash_history(
    limit: int = Query(30, ge=1, le=365),
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_admin_or_manager())
):
    return CashRegisterService(db).get_history(limit)

from fastapi import APIRouter, status, Depends
from sqlalchemy.orm import Session
from typing import List

from app.database.database import get_db
from app.modules.auth.dependencies import AuthDependencies
from app.modules.auth.models import User
from app.modules.sales.schemas import SaleCreate, SaleOut
from app.modules.sales.service import SaleService

sales_router = APIRouter(prefix="/sales", tags=["Sales"])


@sales_router.post("/", response_model=SaleOut, status_code=status.HTTP_201_CREATED)
def create_sale(
    data: SaleCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.get_current_user)
):
    """
    Registrar venta de Vitrina.

    - Descuenta stock de productos (no servicios)
    - Se asocia a la caja abierta si existe
    - Calcula el cambio en pagos en efectivo
    """
    return SaleService(db).create_sale(data, current_user)


@sales_router.get("/", response_model=List[SaleOut])
def list_sales(
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.get_current_user)
):
    """Últimas 50 ventas completadas."""
    return SaleService(db).get_recent_sales()

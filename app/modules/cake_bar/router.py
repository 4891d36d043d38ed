from fastapi import APIRouter, status, Depends, Query
from sqlalchemy.orm import Session
from typing import Any, List, Optional
from uuid import UUID

from app.database.database import get_db
from app.modules.auth.dependencies import AuthDependencies
from app.modules.auth.models import User
from app.modules.cake_bar.models import CakeBarOptionType, CakeBarOrderStatus
from app.modules.cake_bar.schemas import (
    CakeBarOptionCreate, CakeBarOptionUpdate, CakeBarOptionOut,
    CakeBarOrderCreate, CakeBarOrderUpdate, CakeBarOrderOut,
    CakeBarPaymentCreate, CakeBarPaymentOut, PriceQuoteOut
)
from app.modules.cake_bar.service import CakeBarOptionService, CakeBarOrderService

cake_bar_router = APIRouter(prefix="/cake-bar", tags=["Cake Bar"])


# ===== OPTIONS =====

@cake_bar_router.get("/options")
def list_options(
    product_id: Optional[UUID] = Query(None, description="Opciones del producto más las globales"),
    type: Optional[CakeBarOptionType] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.get_current_user)
) -> Any:
    """
    Opciones agrupadas por tipo (TOPPING agrupado por categoría).
    Con `type` se devuelve solo ese grupo.
    """
    grouped = CakeBarOptionService(db).get_grouped_options(product_id=product_id, option_type=type)
    return _serialize_options(grouped)


@cake_bar_router.post("/options", response_model=CakeBarOptionOut, status_code=status.HTTP_201_CREATED)
def create_option(
    data: CakeBarOptionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_admin_or_manager())
):
    return CakeBarOptionService(db).create_option(data)


@cake_bar_router.get("/options/{option_id}", response_model=CakeBarOptionOut)
def get_option(
    option_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.get_current_user)
):
    return CakeBarOptionService(db).get_option(option_id)


@cake_bar_router.patch("/options/{option_id}", response_model=CakeBarOptionOut)
def update_option(
    option_id: UUID,
    data: CakeBarOptionUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_admin_or_manager())
):
    return CakeBarOptionService(db).update_option(option_id, data)


@cake_bar_router.delete("/options/{option_id}")
def delete_option(
    option_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_admin_or_manager())
):
    return CakeBarOptionService(db).delete_option(option_id)


# ===== ORDERS =====

@cake_bar_router.post("/orders/quote", response_model=PriceQuoteOut)
def quote_order(
    data: CakeBarOrderCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.get_current_user)
):
    """Calcular el precio de una orden sin crearla."""
    return CakeBarOrderService(db).quote(data)


@cake_bar_router.post("/orders", response_model=CakeBarOrderOut, status_code=status.HTTP_201_CREATED)
def create_order(
    data: CakeBarOrderCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.get_current_user)
):
    order_service = CakeBarOrderService(db)
    order = order_service.create_order(data, current_user)
    return order_service.to_response(order)


@cake_bar_router.get("/orders", response_model=List[CakeBarOrderOut])
def list_orders(
    today: bool = Query(False, description="Solo órdenes de hoy"),
    status_filter: Optional[CakeBarOrderStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.get_current_user)
):
    order_service = CakeBarOrderService(db)
    orders = order_service.get_orders(today_only=today, order_status=status_filter)
    return [order_service.to_response(order) for order in orders]


@cake_bar_router.get("/orders/{order_id}", response_model=CakeBarOrderOut)
def get_order(
    order_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.get_current_user)
):
    order_service = CakeBarOrderService(db)
    return order_service.to_response(order_service.get_order(order_id))


@cake_bar_router.patch("/orders/{order_id}", response_model=CakeBarOrderOut)
def update_order(
    order_id: UUID,
    data: CakeBarOrderUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.get_current_user)
):
    order_service = CakeBarOrderService(db)
    order = order_service.update_order(order_id, data, current_user)
    return order_service.to_response(order)


@cake_bar_router.post(
    "/orders/{order_id}/payments",
    response_model=CakeBarPaymentOut,
    status_code=status.HTTP_201_CREATED
)
def add_payment(
    order_id: UUID,
    data: CakeBarPaymentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.get_current_user)
):
    return CakeBarOrderService(db).add_payment(order_id, data, current_user)


def _serialize_options(grouped: Any) -> Any:
    if isinstance(grouped, dict):
        return {key: _serialize_options(value) for key, value in grouped.items()}
    return [CakeBarOptionOut.model_validate(option).model_dump(mode="json") for option in grouped]

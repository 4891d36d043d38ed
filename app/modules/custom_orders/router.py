from fastapi import APIRouter, status, Depends
from sqlalchemy.orm import Session
from typing import List
from uuid import UUID

from app.database.database import get_db
from app.modules.auth.dependencies import AuthDependencies
from app.modules.auth.models import User
from app.modules.custom_orders.schemas import (
    CustomOrderCreate, CustomOrderOut, CustomOrderPaymentCreate,
    CustomOrderPaymentOut, CustomOrderStatusUpdate
)
from app.modules.custom_orders.service import CustomOrderService

custom_orders_router = APIRouter(prefix="/custom-orders", tags=["Custom Orders"])


@custom_orders_router.post("/", response_model=CustomOrderOut, status_code=status.HTTP_201_CREATED)
def create_custom_order(
    data: CustomOrderCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.get_current_user)
):
    """Crear pedido personalizado con anticipo (mínimo 50% del estimado)."""
    return CustomOrderService(db).create_order(data, current_user)


@custom_orders_router.get("/", response_model=List[CustomOrderOut])
def list_custom_orders(
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.get_current_user)
):
    return CustomOrderService(db).get_orders()


@custom_orders_router.get("/{order_id}", response_model=CustomOrderOut)
def get_custom_order(
    order_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.get_current_user)
):
    return CustomOrderService(db).get_order(order_id)


@custom_orders_router.post(
    "/{order_id}/payments",
    response_model=CustomOrderPaymentOut,
    status_code=status.HTTP_201_CREATED
)
def add_custom_order_payment(
    order_id: UUID,
    data: CustomOrderPaymentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.get_current_user)
):
    return CustomOrderService(db).add_payment(order_id, data, current_user)


@custom_orders_router.patch("/{order_id}/status", response_model=CustomOrderOut)
def update_custom_order_status(
    order_id: UUID,
    data: CustomOrderStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.get_current_user)
):
    return CustomOrderService(db).update_status(order_id, data.status)

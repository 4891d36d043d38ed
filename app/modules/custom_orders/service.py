"""
Servicio de pedidos personalizados con anticipo y abonos.
"""
from sqlalchemy.orm import Session, selectinload
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from fastapi import HTTPException, status
from datetime import datetime
from decimal import Decimal
from typing import List
from uuid import UUID
import logging

from app.core.config import settings
from app.modules.auth.models import User
from app.modules.custom_orders.models import (
    CustomOrder, CustomOrderPayment, CustomOrderStatus, CustomPaymentType
)
from app.modules.custom_orders.schemas import CustomOrderCreate, CustomOrderPaymentCreate
from app.modules.custom_orders.validators import validate_advance

logger = logging.getLogger(__name__)


class CustomOrderService:
    """Pedidos personalizados"""

    def __init__(self, db: Session):
        self.db = db

    def _next_order_number(self) -> str:
        year = datetime.now().year
        count = self.db.query(func.count(CustomOrder.id)).scalar() or 0
        return f"CUSTOM-{year}-{count + 1:04d}"

    def create_order(self, data: CustomOrderCreate, user: User) -> CustomOrder:
        """
        Crear pedido con su anticipo inicial.

        El anticipo debe cubrir al menos MIN_ADVANCE_RATIO del precio estimado.
        """
        error = validate_advance(data.estimated_price, data.advance_amount, settings.MIN_ADVANCE_RATIO)
        if error:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=error
            )

        try:
            order = CustomOrder(
                order_number=self._next_order_number(),
                customer_name=data.customer_name,
                customer_phone=data.customer_phone,
                customer_email=data.customer_email,
                description=data.description,
                estimated_price=data.estimated_price,
                total_paid=data.advance_amount,
                status=CustomOrderStatus.PENDIENTE,
                delivery_date=data.delivery_date,
                notes=data.notes,
                user_id=user.id
            )
            self.db.add(order)
            self.db.flush()

            self.db.add(CustomOrderPayment(
                custom_order_id=order.id,
                amount=data.advance_amount,
                payment_method=data.payment_method,
                payment_type=CustomPaymentType.ANTICIPO,
                description="Anticipo inicial del pedido",
                user_id=user.id
            ))

            self.db.commit()
            self.db.refresh(order)
            logger.info(
                f"Pedido {order.order_number} creado: estimado={order.estimated_price} anticipo={order.total_paid}"
            )
            return order

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

    def get_orders(self) -> List[CustomOrder]:
        return self.db.query(CustomOrder) \
            .options(selectinload(CustomOrder.payments)) \
            .order_by(CustomOrder.created_at.desc()) \
            .all()

    def get_order(self, order_id: UUID) -> CustomOrder:
        order = self.db.query(CustomOrder).filter(CustomOrder.id == order_id).first()
        if not order:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Pedido no encontrado"
            )
        return order

    def add_payment(self, order_id: UUID, data: CustomOrderPaymentCreate, user: User) -> CustomOrderPayment:
        """Registrar abono; el total pagado no puede exceder el precio estimado"""
        try:
            order = self.get_order(order_id)
            new_total = Decimal(order.total_paid) + data.amount

            if new_total > Decimal(order.estimated_price):
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="El total de pagos no puede exceder el precio estimado"
                )

            payment = CustomOrderPayment(
                custom_order_id=order.id,
                amount=data.amount,
                payment_method=data.payment_method,
                payment_type=data.payment_type,
                description=data.description,
                user_id=user.id
            )
            self.db.add(payment)
            order.total_paid = new_total

            self.db.commit()
            self.db.refresh(payment)
            logger.info(f"Abono de {data.amount} al pedido {order.order_number} (pagado={new_total})")
            return payment

        except HTTPException:
            raise
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error interno del servidor: {str(e)}"
            )

    def update_status(self, order_id: UUID, new_status: str) -> CustomOrder:
        valid = [s.value for s in CustomOrderStatus]
        if new_status not in valid:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Estado no válido. Use uno de: {', '.join(valid)}"
            )

        order = self.get_order(order_id)
        order.status = CustomOrderStatus(new_status)
        self.db.commit()
        self.db.refresh(order)
        return order

"""
Servicios del Cake Bar: opciones de personalización, órdenes y abonos.
"""
from sqlalchemy.orm import Session, selectinload
from sqlalchemy import or_, func
from sqlalchemy.exc import IntegrityError
from fastapi import HTTPException, status
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID
import logging

from app.core.config import settings
from app.modules.auth.models import User
from app.modules.cake_bar.models import (
    CakeBarOption, CakeBarOrder, CakeBarOrderCustomization, CakeBarPayment,
    CakeBarOptionType, CakeBarOrderStatus
)
from app.modules.cake_bar.schemas import (
    CakeBarOptionCreate, CakeBarOptionUpdate, CakeBarOrderCreate,
    CakeBarOrderUpdate, CakeBarOrderOut, CakeBarPaymentCreate
)
from app.modules.cake_bar.pricing import calculate_order_price, validate_selections, PriceBreakdown
from app.modules.products.models import Product

logger = logging.getLogger(__name__)

# Transiciones de estado permitidas
ORDER_TRANSITIONS: Dict[CakeBarOrderStatus, set] = {
    CakeBarOrderStatus.PENDING: {CakeBarOrderStatus.IN_PROGRESS, CakeBarOrderStatus.CANCELLED},
    CakeBarOrderStatus.IN_PROGRESS: {CakeBarOrderStatus.READY, CakeBarOrderStatus.CANCELLED},
    CakeBarOrderStatus.READY: {CakeBarOrderStatus.COMPLETED},
    CakeBarOrderStatus.COMPLETED: set(),
    CakeBarOrderStatus.CANCELLED: set(),
}


class CakeBarOptionService:
    """Opciones de personalización de pasteles"""

    def __init__(self, db: Session):
        self.db = db

    def get_grouped_options(
        self,
        product_id: Optional[UUID] = None,
        option_type: Optional[CakeBarOptionType] = None
    ) -> Any:
        """
        Opciones activas agrupadas por tipo. Los toppings se agrupan además
        por categoría. Con `option_type` se devuelve solo ese grupo.
        """
        query = self.db.query(CakeBarOption).filter(CakeBarOption.is_active.is_(True))
        if product_id:
            query = query.filter(or_(
                CakeBarOption.product_id == product_id,
                CakeBarOption.product_id.is_(None)
            ))
        if option_type:
            query = query.filter(CakeBarOption.option_type == option_type)

        options = query.order_by(
            CakeBarOption.option_type,
            CakeBarOption.display_order,
            CakeBarOption.name
        ).all()

        grouped: Dict[str, Any] = {}
        for option in options:
            grouped.setdefault(option.option_type.value, []).append(option)

        toppings = grouped.get(CakeBarOptionType.TOPPING.value)
        if toppings:
            by_category: Dict[str, list] = {}
            for topping in toppings:
                by_category.setdefault(topping.category or "OTROS", []).append(topping)
            grouped[CakeBarOptionType.TOPPING.value] = by_category

        if option_type:
            return grouped.get(option_type.value, [])
        return grouped

    def get_option(self, option_id: UUID) -> CakeBarOption:
        option = self.db.query(CakeBarOption).filter(CakeBarOption.id == option_id).first()
        if not option:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Opción no encontrada"
            )
        return option

    def create_option(self, data: CakeBarOptionCreate) -> CakeBarOption:
        try:
            if data.product_id:
                product = self.db.query(Product).filter(Product.id == data.product_id).first()
                if not product:
                    raise HTTPException(
                        status_code=status.HTTP_404_NOT_FOUND,
                        detail="Producto no encontrado"
                    )

            allow_multiple = data.allow_multiple
            if allow_multiple is None:
                allow_multiple = data.option_type == CakeBarOptionType.TOPPING

            option = CakeBarOption(
                product_id=data.product_id,
                option_type=data.option_type,
                name=data.name,
                description=data.description,
                category=data.category,
                price_add=data.price_add,
                is_default=data.is_default,
                allow_multiple=allow_multiple,
                display_order=data.display_order,
                is_active=True
            )
            self.db.add(option)
            self.db.commit()
            self.db.refresh(option)
            return option

        except HTTPException:
            raise
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error interno del servidor: {str(e)}"
            )

    def update_option(self, option_id: UUID, data: CakeBarOptionUpdate) -> CakeBarOption:
        option = self.get_option(option_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(option, field, value)
        self.db.commit()
        self.db.refresh(option)
        return option

    def delete_option(self, option_id: UUID) -> Dict[str, str]:
        """Desactiva la opción; las órdenes existentes conservan su referencia"""
        option = self.get_option(option_id)
        option.is_active = False
        self.db.commit()
        return {"message": "Opción desactivada exitosamente"}


class CakeBarOrderService:
    """Órdenes del Cake Bar y sus abonos"""

    def __init__(self, db: Session):
        self.db = db

    # ----- helpers -----

    def _load_options(self, option_ids: List[UUID]) -> Dict[UUID, CakeBarOption]:
        if not option_ids:
            return {}
        options = self.db.query(CakeBarOption).filter(
            CakeBarOption.id.in_(option_ids),
            CakeBarOption.is_active.is_(True)
        ).all()
        return {option.id: option for option in options}

    def _next_order_number(self) -> str:
        count = self.db.query(func.count(CakeBarOrder.id)).scalar() or 0
        return f"CB{count + 1:04d}"

    def to_response(self, order: CakeBarOrder, now: Optional[datetime] = None) -> CakeBarOrderOut:
        data = CakeBarOrderOut.model_validate(order)
        data.product_name = order.product.name if order.product else None
        data.time_remaining = order.time_remaining_ms(settings.CAKE_BAR_PREP_MINUTES, now)
        return data

    # ----- pricing -----

    def quote(self, data: CakeBarOrderCreate) -> PriceBreakdown:
        """Calcula el precio de una orden sin guardarla"""
        product = self.db.query(Product).filter(
            Product.id == data.product_id,
            Product.is_active.is_(True)
        ).first()
        if not product:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Producto no encontrado"
            )

        options = self._load_options([c.option_id for c in data.customizations])
        try:
            validate_selections(data.customizations, options)
            return calculate_order_price(product.price, data.size, data.customizations, options)
        except ValueError as e:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=str(e)
            )

    # ----- orders -----

    def create_order(self, data: CakeBarOrderCreate, user: User) -> CakeBarOrder:
        """Crear orden: el precio se calcula en el servidor"""
        try:
            breakdown = self.quote(data)

            order = CakeBarOrder(
                order_number=self._next_order_number(),
                product_id=data.product_id,
                size=data.size,
                customer_name=data.customer_name,
                customer_phone=data.customer_phone,
                base_price=breakdown.sized_price,
                total_price=breakdown.total,
                amount_paid=Decimal("0"),
                remaining_amount=breakdown.total,
                status=CakeBarOrderStatus.PENDING,
                notes=data.notes,
                created_by=user.id
            )
            self.db.add(order)
            self.db.flush()

            for line in breakdown.lines:
                self.db.add(CakeBarOrderCustomization(
                    order_id=order.id,
                    option_id=line.option_id,
                    option_type=line.option_type,
                    option_name=line.option_name,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    total_price=line.total_price
                ))

            self.db.commit()
            self.db.refresh(order)
            logger.info(f"Orden Cake Bar {order.order_number} creada por {user.email}: total={order.total_price}")
            return order

        except HTTPException:
            raise
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

    def get_orders(self, today_only: bool = False, order_status: Optional[CakeBarOrderStatus] = None) -> List[CakeBarOrder]:
        query = self.db.query(CakeBarOrder).options(
            selectinload(CakeBarOrder.customizations),
            selectinload(CakeBarOrder.payments),
            selectinload(CakeBarOrder.product)
        )
        if today_only:
            start_of_day = datetime.combine(datetime.now().date(), datetime.min.time())
            query = query.filter(
                CakeBarOrder.created_at >= start_of_day,
                CakeBarOrder.created_at < start_of_day + timedelta(days=1)
            )
        if order_status:
            query = query.filter(CakeBarOrder.status == order_status)
        return query.order_by(CakeBarOrder.created_at.desc()).all()

    def get_order(self, order_id: UUID) -> CakeBarOrder:
        order = self.db.query(CakeBarOrder).filter(CakeBarOrder.id == order_id).first()
        if not order:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Orden no encontrada"
            )
        return order

    def update_order(
        self,
        order_id: UUID,
        data: CakeBarOrderUpdate,
        user: User,
        now: Optional[datetime] = None
    ) -> CakeBarOrder:
        """Actualizar estado/notas. Cada transición registra sus tiempos."""
        order = self.get_order(order_id)
        now = now or datetime.now()
        update_dict = data.model_dump(exclude_unset=True)
        new_status = update_dict.pop("status", None)

        if new_status is not None and new_status != order.status:
            if new_status not in ORDER_TRANSITIONS[order.status]:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Transición de estado inválida: {order.status.value} → {new_status.value}"
                )

            if new_status == CakeBarOrderStatus.IN_PROGRESS:
                order.start_time = now
                order.assigned_worker = user.id
                order.estimated_ready = now + timedelta(minutes=settings.CAKE_BAR_PREP_MINUTES)
            elif new_status in (CakeBarOrderStatus.READY, CakeBarOrderStatus.COMPLETED):
                if order.completed_time is None:
                    order.completed_time = now
                order.completed_by = user.id

            logger.info(f"Orden {order.order_number}: {order.status.value} → {new_status.value}")
            order.status = new_status

        for field, value in update_dict.items():
            setattr(order, field, value)

        self.db.commit()
        self.db.refresh(order)
        return order

    # ----- payments -----

    def add_payment(self, order_id: UUID, data: CakeBarPaymentCreate, user: User) -> CakeBarPayment:
        """Registrar abono. El acumulado no puede superar el total de la orden."""
        try:
            order = self.get_order(order_id)

            if order.status == CakeBarOrderStatus.CANCELLED:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="No se pueden registrar pagos en una orden cancelada"
                )

            paid = sum((Decimal(p.amount) for p in order.payments), Decimal("0"))
            total = Decimal(order.total_price)
            if paid + data.amount > total:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="El monto excede el total de la orden"
                )

            payment = CakeBarPayment(
                order_id=order.id,
                amount=data.amount,
                payment_type=data.payment_type,
                description=data.description,
                paid_by=user.id
            )
            self.db.add(payment)

            order.amount_paid = paid + data.amount
            order.remaining_amount = total - order.amount_paid

            self.db.commit()
            self.db.refresh(payment)
            logger.info(f"Abono de {data.amount} ({data.payment_type.value}) a la orden {order.order_number}")
            return payment

        except HTTPException:
            raise
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error interno del servidor: {str(e)}"
            )

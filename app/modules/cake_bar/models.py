"""
Modelos SQLAlchemy para el Cake Bar (pasteles personalizados)

- CakeBarOption: Opciones de personalización (sabor, relleno, color, toppings)
- CakeBarOrder: Orden de pastel con precio calculado y saldo pendiente
- CakeBarOrderCustomization: Opciones elegidas con su precio al momento de la orden
- CakeBarPayment: Abonos a la orden
"""

from app.database.database import Base
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, Numeric, Enum, Text
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import UUID
from datetime import datetime, timedelta
from typing import Optional
from uuid import uuid4
from app.common.mixins import TimestampMixin
from app.modules.sales.models import PaymentType
import enum


# ===== ENUMS =====

class CakeBarOptionType(str, enum.Enum):
    BREAD_FLAVOR = "BREAD_FLAVOR"   # Sabor de pan
    FILLING = "FILLING"             # Relleno
    COLOR = "COLOR"                 # Color del betún
    TOPPING = "TOPPING"             # Toppings (se cobran por cantidad)


class CakeBarOrderStatus(str, enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    READY = "ready"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# ===== MODELOS =====

class CakeBarOption(Base, TimestampMixin):
    __tablename__ = "cake_bar_options"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    product_id = Column(UUID(as_uuid=True), ForeignKey("products.id"), nullable=True, index=True)  # NULL = global
    option_type = Column(Enum(CakeBarOptionType), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(String(255), nullable=True)
    category = Column(String(50), nullable=True)  # Sub-categoría de toppings
    price_add = Column(Numeric(12, 2), nullable=False, default=0)
    is_default = Column(Boolean, nullable=False, default=False)
    allow_multiple = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    display_order = Column(Integer, nullable=False, default=0)

    # Relationships
    product = relationship("Product")


class CakeBarOrder(Base, TimestampMixin):
    __tablename__ = "cake_bar_orders"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    order_number = Column(String(20), nullable=False, unique=True, index=True)
    product_id = Column(UUID(as_uuid=True), ForeignKey("products.id"), nullable=False)
    size = Column(String(5), nullable=False)  # "10", "20" o "30" personas
    customer_name = Column(String(150), nullable=True)
    customer_phone = Column(String(30), nullable=True)

    base_price = Column(Numeric(12, 2), nullable=False)
    total_price = Column(Numeric(12, 2), nullable=False)
    amount_paid = Column(Numeric(12, 2), nullable=False, default=0)
    remaining_amount = Column(Numeric(12, 2), nullable=False)

    status = Column(Enum(CakeBarOrderStatus), nullable=False, default=CakeBarOrderStatus.PENDING, index=True)
    notes = Column(Text, nullable=True)

    created_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    assigned_worker = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    completed_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)

    # Tiempos de preparación
    start_time = Column(DateTime, nullable=True)
    estimated_ready = Column(DateTime, nullable=True)
    completed_time = Column(DateTime, nullable=True)

    # Relationships
    product = relationship("Product")
    customizations = relationship("CakeBarOrderCustomization", back_populates="order", cascade="all, delete-orphan")
    payments = relationship(
        "CakeBarPayment", back_populates="order", cascade="all, delete-orphan",
        order_by="CakeBarPayment.created_at"
    )

    def time_remaining_ms(self, prep_minutes: int, now: Optional[datetime] = None) -> Optional[int]:
        """Milisegundos restantes de preparación, solo para órdenes en progreso"""
        if self.status != CakeBarOrderStatus.IN_PROGRESS or self.start_time is None:
            return None
        now = now or datetime.now()
        deadline = self.start_time + timedelta(minutes=prep_minutes)
        return max(0, int((deadline - now).total_seconds() * 1000))


class CakeBarOrderCustomization(Base, TimestampMixin):
    __tablename__ = "cake_bar_order_customizations"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    order_id = Column(UUID(as_uuid=True), ForeignKey("cake_bar_orders.id"), nullable=False, index=True)
    option_id = Column(UUID(as_uuid=True), ForeignKey("cake_bar_options.id"), nullable=False)
    option_type = Column(Enum(CakeBarOptionType), nullable=False)
    option_name = Column(String(100), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    unit_price = Column(Numeric(12, 2), nullable=False, default=0)
    total_price = Column(Numeric(12, 2), nullable=False, default=0)

    # Relationships
    order = relationship("CakeBarOrder", back_populates="customizations")
    option = relationship("CakeBarOption")


class CakeBarPayment(Base, TimestampMixin):
    __tablename__ = "cake_bar_payments"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    order_id = Column(UUID(as_uuid=True), ForeignKey("cake_bar_orders.id"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    payment_type = Column(Enum(PaymentType), nullable=False, default=PaymentType.CASH)
    description = Column(String(255), nullable=True)
    paid_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)

    # Relationships
    order = relationship("CakeBarOrder", back_populates="payments")

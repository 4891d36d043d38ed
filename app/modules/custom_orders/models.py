"""
Modelos SQLAlchemy para pedidos personalizados (pasteles por encargo)

Un pedido se registra con un anticipo mínimo y se liquida con abonos
posteriores hasta cubrir el precio estimado.
"""

from app.database.database import Base
from sqlalchemy import Column, String, DateTime, ForeignKey, Numeric, Enum, Text
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import UUID
from decimal import Decimal
from uuid import uuid4
from app.common.mixins import TimestampMixin
import enum


class CustomOrderStatus(str, enum.Enum):
    PENDIENTE = "PENDIENTE"   # Recibido, pendiente de producción
    HORNEADO = "HORNEADO"     # En producción
    LISTO = "LISTO"           # Listo para entrega
    ENTREGADO = "ENTREGADO"   # Entregado al cliente


class PaymentMethod(str, enum.Enum):
    CASH = "CASH"
    CARD = "CARD"
    TRANSFER = "TRANSFER"


class CustomPaymentType(str, enum.Enum):
    ANTICIPO = "ANTICIPO"         # Anticipo / abono
    LIQUIDACION = "LIQUIDACION"   # Pago final


class CustomOrder(Base, TimestampMixin):
    __tablename__ = "custom_orders"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    order_number = Column(String(30), nullable=False, unique=True, index=True)
    customer_name = Column(String(150), nullable=False)
    customer_phone = Column(String(30), nullable=True)
    customer_email = Column(String(150), nullable=True)
    description = Column(Text, nullable=False)
    estimated_price = Column(Numeric(12, 2), nullable=False)
    total_paid = Column(Numeric(12, 2), nullable=False, default=0)
    status = Column(Enum(CustomOrderStatus), nullable=False, default=CustomOrderStatus.PENDIENTE, index=True)
    delivery_date = Column(DateTime, nullable=False)
    notes = Column(Text, nullable=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)

    # Relationships
    payments = relationship(
        "CustomOrderPayment", back_populates="custom_order", cascade="all, delete-orphan",
        order_by="CustomOrderPayment.created_at"
    )
    user = relationship("User")

    @property
    def remaining(self) -> Decimal:
        return Decimal(self.estimated_price) - Decimal(self.total_paid or 0)


class CustomOrderPayment(Base, TimestampMixin):
    __tablename__ = "custom_order_payments"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    custom_order_id = Column(UUID(as_uuid=True), ForeignKey("custom_orders.id"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    payment_method = Column(Enum(PaymentMethod), nullable=False, default=PaymentMethod.CASH)
    payment_type = Column(Enum(CustomPaymentType), nullable=False, default=CustomPaymentType.ANTICIPO)
    description = Column(String(255), nullable=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)

    # Relationships
    custom_order = relationship("CustomOrder", back_populates="payments")

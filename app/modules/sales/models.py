"""
Modelos SQLAlchemy para ventas de Vitrina

- Sale: Venta de mostrador con descuento y cambio
- SaleItem: Líneas de la venta

Las ventas descuentan stock y quedan ligadas a la caja abierta.
"""

from app.database.database import Base
from sqlalchemy import Column, String, Integer, ForeignKey, Numeric, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import UUID
from uuid import uuid4
from app.common.mixins import TimestampMixin
import enum


# ===== ENUMS =====

class PaymentType(str, enum.Enum):
    """Medios de pago aceptados en caja"""
    CASH = "CASH"           # Efectivo
    CARD = "CARD"           # Tarjeta
    TRANSFER = "TRANSFER"   # Transferencia
    MIXED = "MIXED"         # Mixto


class SaleStatus(str, enum.Enum):
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


# ===== MODELOS =====

class Sale(Base, TimestampMixin):
    __tablename__ = "sales"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    sale_number = Column(String(30), nullable=False, unique=True, index=True)
    subtotal = Column(Numeric(12, 2), nullable=False, default=0)
    discount = Column(Numeric(5, 2), nullable=False, default=0)  # Porcentaje
    discount_amount = Column(Numeric(12, 2), nullable=False, default=0)
    total = Column(Numeric(12, 2), nullable=False, default=0)
    payment_type = Column(Enum(PaymentType), nullable=False, default=PaymentType.CASH, index=True)
    sale_type = Column(String(20), nullable=False, default="VITRINA")
    status = Column(Enum(SaleStatus), nullable=False, default=SaleStatus.COMPLETED, index=True)
    amount_received = Column(Numeric(12, 2), nullable=True)
    change = Column(Numeric(12, 2), nullable=False, default=0)

    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    cash_register_id = Column(UUID(as_uuid=True), ForeignKey("cash_registers.id"), nullable=True, index=True)

    # Relationships
    items = relationship("SaleItem", back_populates="sale", cascade="all, delete-orphan")
    user = relationship("User")
    cash_register = relationship("CashRegister", back_populates="sales")


class SaleItem(Base, TimestampMixin):
    __tablename__ = "sale_items"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    sale_id = Column(UUID(as_uuid=True), ForeignKey("sales.id"), nullable=False, index=True)
    product_id = Column(UUID(as_uuid=True), ForeignKey("products.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)
    subtotal = Column(Numeric(12, 2), nullable=False)

    # Relationships
    sale = relationship("Sale", back_populates="items")
    product = relationship("Product")

    @property
    def product_name(self) -> str:
        return self.product.name if self.product else ""

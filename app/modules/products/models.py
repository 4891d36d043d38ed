from app.database.database import Base
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Numeric, Enum, Text
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import UUID
from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import uuid4
from app.common.mixins import TimestampMixin
import enum


class ProductType(str, enum.Enum):
    """Segmento de venta del producto"""
    VITRINA = "VITRINA"     # Vitrina: pan, pasteles, bebidas
    CAKE_BAR = "CAKE_BAR"   # Pasteles personalizados
    SERVICE = "SERVICE"     # Servicios (sin inventario)


class StockMovementType(str, enum.Enum):
    ADJUSTMENT = "adjustment"
    SALE = "sale"
    RESTOCK = "restock"


class Product(Base, TimestampMixin):
    __tablename__ = "products"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    name = Column(String(150), nullable=False, index=True)
    description = Column(String(255), nullable=True)
    price = Column(Numeric(12, 2), nullable=False, default=0)
    stock = Column(Integer, nullable=False, default=0)
    min_stock = Column(Integer, nullable=False, default=5)  # Umbral de alerta de stock bajo
    category = Column(String(100), nullable=False, default="Sin Categoría")
    category_id = Column(UUID(as_uuid=True), ForeignKey("categories.id"), nullable=True, index=True)
    type = Column(Enum(ProductType), nullable=False, default=ProductType.VITRINA, index=True)
    barcode = Column(String(50), nullable=True, unique=True)
    is_service = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    # Precio especial / promociones
    special_price = Column(Numeric(12, 2), nullable=True)
    has_promotion = Column(Boolean, nullable=False, default=False)
    promotion_discount = Column(Numeric(5, 2), nullable=True)  # Porcentaje 0-100
    promotion_start_date = Column(DateTime, nullable=True)
    promotion_end_date = Column(DateTime, nullable=True)

    created_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)

    # Relationships
    category_ref = relationship("Category", back_populates="products")
    movements = relationship("StockMovement", back_populates="product", cascade="all, delete-orphan")

    @property
    def current_price(self) -> Decimal:
        return self.effective_price()

    @property
    def is_low_stock(self) -> bool:
        return not self.is_service and self.stock <= self.min_stock

    def effective_price(self, today: Optional[date] = None) -> Decimal:
        """
        Precio de venta vigente: precio especial, luego promoción activa,
        luego precio de lista.
        """
        if self.special_price is not None:
            return Decimal(self.special_price)

        price = Decimal(self.price)
        if self.has_promotion and self.promotion_discount:
            today = today or date.today()
            starts = self.promotion_start_date.date() if self.promotion_start_date else None
            ends = self.promotion_end_date.date() if self.promotion_end_date else None
            if (starts is None or starts <= today) and (ends is None or today <= ends):
                discount = price * Decimal(self.promotion_discount) / Decimal("100")
                return (price - discount).quantize(Decimal("0.01"))
        return price


class StockMovement(Base, TimestampMixin):
    """Auditoría de cambios de inventario"""
    __tablename__ = "stock_movements"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    product_id = Column(UUID(as_uuid=True), ForeignKey("products.id"), nullable=False, index=True)
    type = Column(Enum(StockMovementType), nullable=False)
    quantity = Column(Integer, nullable=False)  # Puede ser positivo o negativo
    previous_stock = Column(Integer, nullable=False)
    new_stock = Column(Integer, nullable=False)
    reason = Column(Text, nullable=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)

    # Relationships
    product = relationship("Product", back_populates="movements")
    user = relationship("User")

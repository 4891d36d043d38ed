"""
Modelos SQLAlchemy para la caja del local

- CashRegister: Apertura/cierre diario con arqueo
- Expense: Gastos pagados con efectivo de la caja

Solo puede existir una caja abierta a la vez.
"""

from app.database.database import Base
from sqlalchemy import Column, String, Date, DateTime, ForeignKey, Numeric, Enum, Text
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import UUID
from uuid import uuid4
from app.common.mixins import TimestampMixin
import enum


class CashRegisterStatus(str, enum.Enum):
    """Estados de caja registradora"""
    OPEN = "open"       # Caja abierta
    CLOSED = "closed"   # Caja cerrada


class CashRegister(Base, TimestampMixin):
    __tablename__ = "cash_registers"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    date = Column(Date, nullable=False, index=True)
    status = Column(Enum(CashRegisterStatus), nullable=False, default=CashRegisterStatus.OPEN, index=True)

    # Balances
    opening_cash = Column(Numeric(12, 2), nullable=False, default=0)
    closing_cash = Column(Numeric(12, 2), nullable=True)  # Solo se llena al cerrar
    total_sales = Column(Numeric(12, 2), nullable=False, default=0)
    total_expenses = Column(Numeric(12, 2), nullable=False, default=0)
    expected_cash = Column(Numeric(12, 2), nullable=True)
    difference = Column(Numeric(12, 2), nullable=True)

    # Control de apertura/cierre
    opened_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    closed_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    closed_at = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)

    # Relationships
    opened_by_user = relationship("User", foreign_keys=[opened_by])
    closed_by_user = relationship("User", foreign_keys=[closed_by])
    sales = relationship("Sale", back_populates="cash_register")
    expenses = relationship(
        "Expense", back_populates="cash_register", cascade="all, delete-orphan",
        order_by="Expense.created_at.desc()"
    )


class Expense(Base, TimestampMixin):
    """Gasto pagado desde la caja (reduce el efectivo esperado)"""
    __tablename__ = "expenses"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    cash_register_id = Column(UUID(as_uuid=True), ForeignKey("cash_registers.id"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    category = Column(String(50), nullable=False, default="GENERAL")
    description = Column(String(255), nullable=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)

    # Relationships
    cash_register = relationship("CashRegister", back_populates="expenses")

"""
Modelos SQLAlchemy para control de asistencia

- WorkSession: Entrada/salida del empleado (varias por día)
- BreakSession: Comida o descanso dentro de una sesión
- WeeklySchedule: Horario semanal por empleado (0 = lunes ... 6 = domingo)
"""

from app.database.database import Base
from sqlalchemy import Column, String, Integer, Boolean, Date, DateTime, ForeignKey, Numeric, Enum, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import UUID
from uuid import uuid4
from app.common.mixins import TimestampMixin
import enum


class ExitType(str, enum.Enum):
    TEMPORARY = "temporary"   # Salida temporal, se regresa el mismo día
    FINAL = "final"           # Fin de jornada


class BreakType(str, enum.Enum):
    MEAL = "meal"     # Hora de comida (no pagada)
    BREAK = "break"   # Descanso corto (pagado)


class WorkSession(Base, TimestampMixin):
    __tablename__ = "work_sessions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    day_date = Column(Date, nullable=False, index=True)
    session_number = Column(Integer, nullable=False, default=1)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=True, index=True)  # NULL = sesión activa
    exit_type = Column(Enum(ExitType), nullable=True)

    # Puntualidad (solo primera sesión del día)
    is_on_time = Column(Boolean, nullable=False, default=True)
    minutes_late = Column(Integer, nullable=False, default=0)

    hours_worked = Column(Numeric(6, 2), nullable=True)
    net_hours_worked = Column(Numeric(6, 2), nullable=True)  # Sin tiempo de comida
    week_number = Column(Integer, nullable=False)
    year_number = Column(Integer, nullable=False)
    notes = Column(Text, nullable=True)

    # Relationships
    user = relationship("User", back_populates="work_sessions")
    breaks = relationship(
        "BreakSession", back_populates="work_session", cascade="all, delete-orphan",
        order_by="BreakSession.start_time"
    )

    @property
    def is_active(self) -> bool:
        return self.end_time is None

    @property
    def user_name(self) -> str:
        return self.user.name if self.user else ""


class BreakSession(Base, TimestampMixin):
    __tablename__ = "break_sessions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    work_session_id = Column(UUID(as_uuid=True), ForeignKey("work_sessions.id"), nullable=False, index=True)
    break_type = Column(Enum(BreakType), nullable=False, default=BreakType.MEAL)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=True)
    max_allowed = Column(Integer, nullable=False, default=60)  # Minutos
    duration = Column(Integer, nullable=True)  # Minutos
    is_overtime = Column(Boolean, nullable=False, default=False)
    overtime_minutes = Column(Integer, nullable=False, default=0)
    is_paid = Column(Boolean, nullable=False, default=False)

    # Relationships
    work_session = relationship("WorkSession", back_populates="breaks")


class WeeklySchedule(Base, TimestampMixin):
    __tablename__ = "weekly_schedules"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    day_of_week = Column(Integer, nullable=False)  # 0 = lunes ... 6 = domingo
    start_time = Column(String(5), nullable=False, default="08:00")  # "HH:MM"
    end_time = Column(String(5), nullable=False, default="17:00")
    is_day_off = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=True)
    updated_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)

    # Relationships
    user = relationship("User", foreign_keys=[user_id], back_populates="schedules")

    __table_args__ = (
        UniqueConstraint("user_id", "day_of_week", name="uq_weekly_schedule_user_day"),
    )

from pydantic import BaseModel, Field
from uuid import UUID
from typing import Optional, List
from datetime import date, datetime
from decimal import Decimal

from app.modules.employees.models import ExitType, BreakType

HHMM_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


# ===== CLOCK / BREAK =====

class ClockRequest(BaseModel):
    """action: checkin, checkout o return_from_break. exit_type solo para checkout."""
    action: str
    exit_type: Optional[str] = None


class BreakRequest(BaseModel):
    """action: start o end"""
    action: str
    break_type: BreakType = BreakType.MEAL


class BreakSessionOut(BaseModel):
    id: UUID
    work_session_id: UUID
    break_type: BreakType
    start_time: datetime
    end_time: Optional[datetime] = None
    max_allowed: int
    duration: Optional[int] = None
    is_overtime: bool
    overtime_minutes: int
    is_paid: bool

    class Config:
        from_attributes = True


class WorkSessionOut(BaseModel):
    id: UUID
    user_id: UUID
    user_name: Optional[str] = None
    day_date: date
    session_number: int
    start_time: datetime
    end_time: Optional[datetime] = None
    exit_type: Optional[ExitType] = None
    is_on_time: bool
    minutes_late: int
    hours_worked: Optional[Decimal] = None
    net_hours_worked: Optional[Decimal] = None
    week_number: int
    year_number: int
    notes: Optional[str] = None
    breaks: List[BreakSessionOut] = []

    class Config:
        from_attributes = True


class ClockResponse(BaseModel):
    message: str
    work_session: Optional[WorkSessionOut] = None
    break_session: Optional[BreakSessionOut] = None
    exit_type: Optional[str] = None
    hours_worked: Optional[Decimal] = None
    net_hours_worked: Optional[Decimal] = None
    meal_duration: Optional[int] = None
    is_overtime: Optional[bool] = None
    overtime_minutes: Optional[int] = None
    overtime: Optional[str] = None


# ===== STATUS =====

class HoursTotal(BaseModel):
    total: float
    net: float


class TimeAlert(BaseModel):
    type: str
    message: str
    severity: str


class EmployeeStatusOut(BaseModel):
    status: str
    current_session: Optional[WorkSessionOut] = None
    active_break: Optional[BreakSessionOut] = None
    meal_taken_today: bool
    hours_today: HoursTotal
    hours_week: HoursTotal
    alerts: List[TimeAlert] = []


# ===== SCHEDULES =====

class ScheduleEntry(BaseModel):
    day_of_week: int = Field(..., ge=0, le=6, description="0 = lunes ... 6 = domingo")
    start_time: str = Field("08:00", pattern=HHMM_PATTERN)
    end_time: str = Field("17:00", pattern=HHMM_PATTERN)
    is_day_off: bool = False
    notes: Optional[str] = None


class ScheduleUpdate(BaseModel):
    user_id: Optional[UUID] = None
    schedules: List[ScheduleEntry] = Field(default_factory=list)


class WeeklyScheduleOut(BaseModel):
    id: UUID
    user_id: UUID
    day_of_week: int
    start_time: str
    end_time: str
    is_day_off: bool
    notes: Optional[str] = None
    updated_by: Optional[UUID] = None

    class Config:
        from_attributes = True


# ===== ADMIN =====

class AdminClockRequest(BaseModel):
    """action: check-in o check-out en nombre de un empleado"""
    action: str
    employee_id: UUID
    notes: Optional[str] = None


class WorkSessionStats(BaseModel):
    active_employees: int
    total_hours_today: float
    punctuality_rate: float


class WorkSessionsOverview(BaseModel):
    work_sessions: List[WorkSessionOut]
    active_employees: List[WorkSessionOut]
    stats: WorkSessionStats

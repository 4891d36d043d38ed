from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from datetime import date
from typing import List, Optional
from uuid import UUID

from app.database.database import get_db
from app.modules.auth.dependencies import AuthDependencies
from app.modules.auth.models import User
from app.modules.employees.schemas import (
    ClockRequest, BreakRequest, ClockResponse, EmployeeStatusOut,
    ScheduleUpdate, WeeklyScheduleOut, AdminClockRequest, WorkSessionsOverview
)
from app.modules.employees.service import TimeClockService, ScheduleService, WorkSessionAdminService

employee_router = APIRouter(prefix="/employee", tags=["Time Clock"])


@employee_router.post("/clock", response_model=ClockResponse)
def clock(
    data: ClockRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.get_current_user)
):
    """
    Reloj de asistencia.

    - checkin: inicia sesión de trabajo
    - checkout: exit_type = meal | temporary | final
    - return_from_break: regreso de comida o de salida temporal
    """
    return TimeClockService(db).clock(current_user, data.action, data.exit_type)


@employee_router.post("/break", response_model=ClockResponse)
def take_break(
    data: BreakRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.get_current_user)
):
    """Iniciar (start) o terminar (end) comida o descanso corto."""
    return TimeClockService(db).handle_break(current_user, data.action, data.break_type)


@employee_router.get("/status", response_model=EmployeeStatusOut)
def get_status(
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.get_current_user)
):
    return TimeClockService(db).get_status(current_user)


# ===== HORARIOS =====

schedule_router = APIRouter(prefix="/employees", tags=["Schedules"])


@schedule_router.get("/schedule", response_model=List[WeeklyScheduleOut])
def get_schedule(
    user_id: Optional[UUID] = Query(None, description="Solo ADMIN puede consultar otros empleados"),
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.get_current_user)
):
    return ScheduleService(db).get_schedule(current_user, user_id)


@schedule_router.put("/schedule", response_model=List[WeeklyScheduleOut])
def update_schedule(
    data: ScheduleUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.get_current_user)
):
    return ScheduleService(db).update_schedule(current_user, data)


# ===== ADMIN =====

work_sessions_router = APIRouter(prefix="/admin/work-sessions", tags=["Work Sessions"])


@work_sessions_router.get("/", response_model=WorkSessionsOverview)
def list_work_sessions(
    day: Optional[date] = Query(None, alias="date"),
    employee_id: Optional[UUID] = Query(None),
    status: Optional[str] = Query(None, description="active para solo sesiones abiertas"),
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_admin_or_manager())
):
    return WorkSessionAdminService(db).get_overview(
        day=day, employee_id=employee_id, active_only=status == "active"
    )


@work_sessions_router.post("/", response_model=ClockResponse)
def admin_clock(
    data: AdminClockRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_admin_or_manager())
):
    """Registrar check-in / check-out en nombre de un empleado."""
    return WorkSessionAdminService(db).admin_clock(data.action, data.employee_id, data.notes)

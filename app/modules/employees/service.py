"""
Servicio de control de asistencia: entradas, salidas, comidas, descansos,
horarios semanales y supervisión de sesiones.
"""
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.exc import IntegrityError
from fastapi import HTTPException, status
from datetime import date, datetime, time
from typing import Any, Dict, List, Optional
from uuid import UUID
import logging

from app.core.config import settings
from app.modules.auth.models import User, UserRole
from app.modules.employees.models import (
    WorkSession, BreakSession, WeeklySchedule, ExitType, BreakType
)
from app.modules.employees.schemas import ScheduleUpdate
from app.modules.employees.timekeeping import (
    TimeStatus, active_break, active_meal_break, break_overtime, derive_status,
    meal_alerts, parse_hhmm, punctuality, week_bounds, week_number, worked_hours
)

logger = logging.getLogger(__name__)

VALID_EXIT_TYPES = ("temporary", "meal", "final")


class TimeClockService:
    """Entradas y salidas del personal"""

    def __init__(self, db: Session):
        self.db = db

    # ----- consultas -----

    def get_active_session(self, user_id: UUID) -> Optional[WorkSession]:
        return self.db.query(WorkSession).filter(
            WorkSession.user_id == user_id,
            WorkSession.end_time.is_(None)
        ).first()

    def get_day_sessions(self, user_id: UUID, day: date) -> List[WorkSession]:
        return self.db.query(WorkSession).filter(
            WorkSession.user_id == user_id,
            WorkSession.day_date == day
        ).order_by(WorkSession.session_number).all()

    def get_schedule_for(self, user_id: UUID, day: date) -> Optional[WeeklySchedule]:
        return self.db.query(WeeklySchedule).filter(
            WeeklySchedule.user_id == user_id,
            WeeklySchedule.day_of_week == day.weekday()
        ).first()

    def meal_taken_today(self, user_id: UUID, day: date) -> bool:
        return self.db.query(BreakSession).join(WorkSession).filter(
            WorkSession.user_id == user_id,
            WorkSession.day_date == day,
            BreakSession.break_type == BreakType.MEAL
        ).count() > 0

    # ----- helpers -----

    def _close_break(self, break_session: BreakSession, now: datetime) -> BreakSession:
        duration, is_overtime, overtime_minutes = break_overtime(
            break_session.start_time, now, break_session.max_allowed
        )
        break_session.end_time = now
        break_session.duration = duration
        break_session.is_overtime = is_overtime
        break_session.overtime_minutes = overtime_minutes
        return break_session

    def _close_session(self, session: WorkSession, exit_type: ExitType, now: datetime) -> WorkSession:
        for break_session in session.breaks:
            if break_session.end_time is None:
                self._close_break(break_session, now)

        meal_minutes = sum(
            b.duration or 0 for b in session.breaks if b.break_type == BreakType.MEAL
        )
        hours, net_hours = worked_hours(session.start_time, now, meal_minutes)

        session.end_time = now
        session.exit_type = exit_type
        session.hours_worked = hours
        session.net_hours_worked = net_hours
        return session

    def _open_session(self, user: User, now: datetime, notes: Optional[str] = None) -> WorkSession:
        today = now.date()
        session_number = len(self.get_day_sessions(user.id, today)) + 1

        is_on_time, minutes_late = True, 0
        if session_number == 1:
            schedule = self.get_schedule_for(user.id, today)
            if schedule is None:
                is_on_time, minutes_late = punctuality(now, settings.DEFAULT_SHIFT_START)
            elif not schedule.is_day_off:
                is_on_time, minutes_late = punctuality(now, schedule.start_time)

        session = WorkSession(
            user_id=user.id,
            day_date=today,
            session_number=session_number,
            start_time=now,
            is_on_time=is_on_time,
            minutes_late=minutes_late,
            week_number=week_number(now),
            year_number=now.year,
            notes=notes
        )
        self.db.add(session)
        return session

    def _commit(self, *instances) -> None:
        try:
            self.db.commit()
            for instance in instances:
                self.db.refresh(instance)
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

    # ----- reloj -----

    def clock(self, user: User, action: str, exit_type: Optional[str] = None,
              now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or datetime.now()
        if action == "checkin":
            return self.checkin(user, now)
        if action == "checkout":
            return self.checkout(user, exit_type, now)
        if action == "return_from_break":
            return self.return_from_break(user, now)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Acción no válida"
        )

    def checkin(self, user: User, now: datetime, notes: Optional[str] = None) -> Dict[str, Any]:
        """Registrar entrada. La puntualidad solo se evalúa en la primera sesión del día."""
        if self.get_active_session(user.id):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Ya tienes una sesión activa"
            )

        session = self._open_session(user, now, notes)
        self._commit(session)
        logger.info(
            f"Check-in de {user.email} sesión #{session.session_number} "
            f"(tarde: {session.minutes_late} min)"
        )
        return {"message": "Check-in exitoso", "work_session": session}

    def checkout(self, user: User, exit_type: Optional[str], now: datetime) -> Dict[str, Any]:
        active = self.get_active_session(user.id)
        if not active:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No hay sesión activa para cerrar"
            )
        if exit_type not in VALID_EXIT_TYPES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Tipo de salida no válido. Use: temporary, meal, final"
            )

        if exit_type == "meal":
            if self.meal_taken_today(user.id, now.date()):
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Ya has tomado tu hora de comida hoy"
                )
            if active_break(active) is not None:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Ya tienes un descanso activo"
                )

            meal = BreakSession(
                work_session_id=active.id,
                break_type=BreakType.MEAL,
                start_time=now,
                max_allowed=settings.MEAL_BREAK_MAX_MINUTES,
                is_paid=False
            )
            self.db.add(meal)
            self._commit(meal)
            logger.info(f"{user.email} inicia hora de comida")
            return {"message": "Inicio de hora de comida registrado", "break_session": meal}

        if exit_type == "temporary":
            self._close_session(active, ExitType.TEMPORARY, now)
            self._commit(active)
            logger.info(f"Salida temporal de {user.email}")
            return {
                "message": "Salida temporal registrada",
                "exit_type": ExitType.TEMPORARY.value,
                "work_session": active
            }

        self._close_session(active, ExitType.FINAL, now)
        self._commit(active)
        logger.info(f"Fin de jornada de {user.email}: {active.hours_worked} h ({active.net_hours_worked} netas)")
        return {
            "message": "Jornada laboral finalizada",
            "exit_type": ExitType.FINAL.value,
            "work_session": active,
            "hours_worked": active.hours_worked,
            "net_hours_worked": active.net_hours_worked
        }

    def return_from_break(self, user: User, now: datetime) -> Dict[str, Any]:
        """Regreso de comida (cierra la comida) o de salida temporal (abre nueva sesión)"""
        active = self.get_active_session(user.id)
        if active:
            meal = active_meal_break(active)
            if meal:
                self._close_break(meal, now)
                self._commit(meal)
                logger.info(f"{user.email} regresa de comida ({meal.duration} min)")
                return {
                    "message": "Regreso de comida registrado",
                    "break_session": meal,
                    "meal_duration": meal.duration,
                    "is_overtime": meal.is_overtime,
                    "overtime_minutes": meal.overtime_minutes
                }
        else:
            sessions = self.get_day_sessions(user.id, now.date())
            last = sessions[-1] if sessions else None
            if last is not None and last.exit_type == ExitType.TEMPORARY:
                session = self._open_session(user, now)
                self._commit(session)
                logger.info(f"{user.email} regresa de salida temporal (sesión #{session.session_number})")
                return {"message": "Regreso de salida temporal registrado", "work_session": session}

        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No hay salida temporal o comida activa"
        )

    # ----- descansos -----

    def handle_break(self, user: User, action: str, break_type: BreakType,
                     now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or datetime.now()
        if action == "start":
            return self.start_break(user, break_type, now)
        if action == "end":
            return self.end_break(user, now)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Acción no válida"
        )

    def start_break(self, user: User, break_type: BreakType, now: datetime) -> Dict[str, Any]:
        active = self.get_active_session(user.id)
        if not active:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Debes estar trabajando para tomar un descanso"
            )
        if active_break(active) is not None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Ya tienes un descanso activo"
            )
        if break_type == BreakType.MEAL and self.meal_taken_today(user.id, now.date()):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Ya has tomado tu hora de comida hoy"
            )

        is_meal = break_type == BreakType.MEAL
        break_session = BreakSession(
            work_session_id=active.id,
            break_type=break_type,
            start_time=now,
            max_allowed=settings.MEAL_BREAK_MAX_MINUTES if is_meal else settings.SHORT_BREAK_MAX_MINUTES,
            is_paid=not is_meal  # Los descansos cortos se pagan, la comida no
        )
        self.db.add(break_session)
        self._commit(break_session)
        return {
            "message": f"{'Tiempo de comida' if is_meal else 'Descanso'} iniciado",
            "break_session": break_session
        }

    def end_break(self, user: User, now: datetime) -> Dict[str, Any]:
        active = self.get_active_session(user.id)
        if not active:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No hay sesión activa"
            )
        break_session = active_break(active)
        if break_session is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No hay descanso activo para terminar"
            )

        self._close_break(break_session, now)
        self._commit(break_session)
        label = "Tiempo de comida" if break_session.break_type == BreakType.MEAL else "Descanso"
        return {
            "message": f"{label} terminado",
            "break_session": break_session,
            "is_overtime": break_session.is_overtime,
            "overtime_minutes": break_session.overtime_minutes,
            "overtime": (
                f"Te excediste {break_session.overtime_minutes} minutos"
                if break_session.is_overtime else None
            )
        }

    # ----- estado -----

    def get_status(self, user: User, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or datetime.now()
        today = now.date()

        active = self.get_active_session(user.id)
        today_sessions = self.get_day_sessions(user.id, today)
        last_today = today_sessions[-1] if today_sessions else None

        current_status = derive_status(active, last_today)
        current_session = active
        if current_status in (TimeStatus.TEMPORARY_EXIT, TimeStatus.FINISHED):
            current_session = last_today

        open_break = active_break(active)

        monday, sunday = week_bounds(today)
        week_sessions = self.db.query(WorkSession).filter(
            WorkSession.user_id == user.id,
            WorkSession.day_date >= monday,
            WorkSession.day_date <= sunday
        ).all()

        alerts = []
        if open_break is not None and open_break.break_type == BreakType.MEAL:
            alerts = meal_alerts(
                open_break.start_time, now, open_break.max_allowed, settings.MEAL_WARNING_MINUTES
            )

        return {
            "status": current_status.value,
            "current_session": current_session,
            "active_break": open_break,
            "meal_taken_today": self.meal_taken_today(user.id, today),
            "hours_today": _sum_hours(today_sessions),
            "hours_week": _sum_hours(week_sessions),
            "alerts": alerts
        }

    # ----- mantenimiento -----

    def close_stale_sessions(self, now: Optional[datetime] = None) -> List[WorkSession]:
        """
        Cierra sesiones abiertas de días anteriores en la hora de salida
        del horario (o al final de ese día si no hay horario).
        """
        now = now or datetime.now()
        stale = self.db.query(WorkSession).filter(
            WorkSession.end_time.is_(None),
            WorkSession.day_date < now.date()
        ).all()

        for session in stale:
            schedule = self.get_schedule_for(session.user_id, session.day_date)
            if schedule is not None and not schedule.is_day_off:
                end = datetime.combine(session.day_date, parse_hhmm(schedule.end_time))
            else:
                end = datetime.combine(session.day_date, time(23, 59, 59))
            end = max(end, session.start_time)

            self._close_session(session, ExitType.FINAL, end)
            session.notes = ((session.notes or "") + " [Cierre automático]").strip()

        if stale:
            self.db.commit()
        return stale


class ScheduleService:
    """Horarios semanales del personal"""

    def __init__(self, db: Session):
        self.db = db

    def get_schedule(self, current_user: User, user_id: Optional[UUID] = None) -> List[WeeklySchedule]:
        target_id = user_id or current_user.id
        if target_id != current_user.id and current_user.role != UserRole.ADMIN:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="No tienes permisos para ver horarios de otros empleados"
            )
        return self.db.query(WeeklySchedule) \
            .filter(WeeklySchedule.user_id == target_id) \
            .order_by(WeeklySchedule.day_of_week) \
            .all()

    def can_edit(self, current_user: User, target_id: UUID) -> bool:
        if current_user.role == UserRole.ADMIN:
            return True
        return target_id == current_user.id and settings.EMPLOYEES_CAN_EDIT_SCHEDULE

    def update_schedule(self, current_user: User, data: ScheduleUpdate) -> List[WeeklySchedule]:
        """Crea o actualiza los días indicados del horario semanal"""
        target_id = data.user_id or current_user.id
        if not self.can_edit(current_user, target_id):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="No tienes permisos para editar horarios"
            )
        if not data.schedules:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Debe proporcionar al menos un horario"
            )
        if not self.db.query(User).filter(User.id == target_id).first():
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Usuario no encontrado"
            )

        for entry in data.schedules:
            if not entry.is_day_off and parse_hhmm(entry.start_time) >= parse_hhmm(entry.end_time):
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="La hora de inicio debe ser anterior a la hora de fin"
                )

        try:
            for entry in data.schedules:
                schedule = self.db.query(WeeklySchedule).filter(
                    WeeklySchedule.user_id == target_id,
                    WeeklySchedule.day_of_week == entry.day_of_week
                ).first()
                if schedule is None:
                    schedule = WeeklySchedule(user_id=target_id, day_of_week=entry.day_of_week)
                    self.db.add(schedule)

                schedule.start_time = entry.start_time
                schedule.end_time = entry.end_time
                schedule.is_day_off = entry.is_day_off
                schedule.notes = entry.notes
                schedule.updated_by = current_user.id

            self.db.commit()
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error interno del servidor: {str(e)}"
            )

        logger.info(f"Horario de {target_id} actualizado por {current_user.email}")
        return self.get_schedule(current_user, target_id)


class WorkSessionAdminService:
    """Supervisión de asistencia para administradores"""

    def __init__(self, db: Session):
        self.db = db

    def get_overview(
        self,
        day: Optional[date] = None,
        employee_id: Optional[UUID] = None,
        active_only: bool = False
    ) -> Dict[str, Any]:
        day = day or date.today()
        query = self.db.query(WorkSession) \
            .options(selectinload(WorkSession.user), selectinload(WorkSession.breaks)) \
            .filter(WorkSession.day_date == day)
        if employee_id:
            query = query.filter(WorkSession.user_id == employee_id)
        if active_only:
            query = query.filter(WorkSession.end_time.is_(None))
        sessions = query.order_by(WorkSession.start_time.desc()).all()

        active_sessions = self.db.query(WorkSession) \
            .options(selectinload(WorkSession.user), selectinload(WorkSession.breaks)) \
            .filter(WorkSession.end_time.is_(None)) \
            .order_by(WorkSession.start_time.desc()) \
            .all()

        closed_hours = sum(
            (s.end_time - s.start_time).total_seconds() / 3600 for s in sessions if s.end_time
        )
        punctuality_rate = (
            len([s for s in sessions if s.is_on_time]) / len(sessions) * 100 if sessions else 100.0
        )

        return {
            "work_sessions": sessions,
            "active_employees": active_sessions,
            "stats": {
                "active_employees": len(active_sessions),
                "total_hours_today": round(closed_hours, 2),
                "punctuality_rate": round(punctuality_rate, 2)
            }
        }

    def admin_clock(self, action: str, employee_id: UUID, notes: Optional[str] = None,
                    now: Optional[datetime] = None) -> Dict[str, Any]:
        """Entrada o salida registrada por un administrador en nombre del empleado"""
        now = now or datetime.now()
        employee = self.db.query(User).filter(User.id == employee_id).first()
        if not employee:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Empleado no encontrado"
            )

        clock_service = TimeClockService(self.db)
        if action == "check-in":
            if clock_service.get_active_session(employee.id):
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="El empleado ya tiene una sesión activa"
                )
            result = clock_service.checkin(employee, now, notes)
            result["message"] = "Check-in registrado exitosamente"
            return result

        if action == "check-out":
            active = clock_service.get_active_session(employee.id)
            if not active:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail="No se encontró sesión activa para este empleado"
                )
            if notes:
                active.notes = notes
            result = clock_service.checkout(employee, "final", now)
            result["message"] = "Check-out registrado exitosamente"
            return result

        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Acción no válida"
        )


def _sum_hours(sessions: List[WorkSession]) -> Dict[str, float]:
    total = sum(float(s.hours_worked or 0) for s in sessions)
    net = sum(float(s.net_hours_worked or 0) for s in sessions)
    return {"total": round(total, 2), "net": round(net, 2)}

"""
Cálculos de asistencia sin acceso a base de datos.

Estados del empleado durante el día:

    not_checked_in → working ⇄ on_meal_break
    working → temporary_exit → working
    working → finished
"""
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, List, Optional, Tuple, Union
import enum
import math

from app.modules.employees.models import BreakType, ExitType


class TimeStatus(str, enum.Enum):
    NOT_CHECKED_IN = "not_checked_in"
    WORKING = "working"
    ON_MEAL_BREAK = "on_meal_break"
    TEMPORARY_EXIT = "temporary_exit"
    FINISHED = "finished"


def parse_hhmm(value: Union[str, time]) -> time:
    """'08:30' → time(8, 30)"""
    if isinstance(value, time):
        return value
    hours, minutes = value.strip().split(":")
    return time(int(hours), int(minutes))


def minutes_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 60


def active_meal_break(session: Any) -> Optional[Any]:
    """Comida en curso dentro de la sesión, si existe"""
    if session is None:
        return None
    for break_session in session.breaks:
        if break_session.break_type == BreakType.MEAL and break_session.end_time is None:
            return break_session
    return None


def active_break(session: Any) -> Optional[Any]:
    if session is None:
        return None
    for break_session in session.breaks:
        if break_session.end_time is None:
            return break_session
    return None


def derive_status(active_session: Any, today_session: Any) -> TimeStatus:
    """
    Estado actual a partir de la sesión abierta (sin hora de salida)
    y la última sesión del día.
    """
    if active_session is not None:
        if active_meal_break(active_session) is not None:
            return TimeStatus.ON_MEAL_BREAK
        return TimeStatus.WORKING

    if today_session is not None:
        if today_session.exit_type == ExitType.TEMPORARY:
            return TimeStatus.TEMPORARY_EXIT
        if today_session.exit_type == ExitType.FINAL:
            return TimeStatus.FINISHED

    return TimeStatus.NOT_CHECKED_IN


def punctuality(check_in: datetime, scheduled_start: Union[str, time]) -> Tuple[bool, int]:
    """(a_tiempo, minutos_tarde) comparando contra la hora de entrada del día"""
    expected = datetime.combine(check_in.date(), parse_hhmm(scheduled_start))
    minutes_late = max(0, round(minutes_between(expected, check_in)))
    return minutes_late == 0, minutes_late


def worked_hours(start: datetime, end: datetime, meal_minutes: float = 0) -> Tuple[float, float]:
    """(horas, horas_netas) redondeadas a 2 decimales; las netas descuentan la comida"""
    total_minutes = max(0.0, minutes_between(start, end))
    net_minutes = max(0.0, total_minutes - (meal_minutes or 0))
    return round(total_minutes / 60, 2), round(net_minutes / 60, 2)


def break_overtime(start: datetime, end: datetime, max_allowed: int) -> Tuple[int, bool, int]:
    """(duración, excedido, minutos_excedidos) de un descanso, en minutos"""
    duration = max(0.0, minutes_between(start, end))
    is_overtime = duration > max_allowed
    overtime_minutes = max(0, round(duration - max_allowed)) if is_overtime else 0
    return round(duration), is_overtime, overtime_minutes


def meal_alerts(
    meal_start: datetime,
    now: datetime,
    max_allowed: int = 60,
    warning_minutes: int = 10
) -> List[Dict[str, str]]:
    """Aviso al exceder la comida; información en los últimos minutos permitidos"""
    elapsed = minutes_between(meal_start, now)
    if elapsed > max_allowed:
        return [{
            "type": "meal_overtime",
            "message": f"Has excedido tu tiempo de comida por {round(elapsed - max_allowed)} minutos",
            "severity": "warning"
        }]
    if elapsed > max_allowed - warning_minutes:
        return [{
            "type": "meal_warning",
            "message": f"Te quedan {round(max_allowed - elapsed)} minutos de comida",
            "severity": "info"
        }]
    return []


def week_number(day: Union[date, datetime]) -> int:
    """Semana del año contando desde la semana que contiene el 1 de enero (inicio en domingo)"""
    if isinstance(day, datetime):
        day = day.date()
    first_day = date(day.year, 1, 1)
    past_days = (day - first_day).days
    first_weekday = (first_day.weekday() + 1) % 7  # domingo = 0
    return math.ceil((past_days + first_weekday + 1) / 7)


def week_bounds(day: date) -> Tuple[date, date]:
    """Lunes y domingo de la semana del día dado"""
    monday = day - timedelta(days=day.weekday())
    return monday, monday + timedelta(days=6)

"""
Tests de control de asistencia: reloj, comidas, descansos, horarios y supervisión
"""
import pytest
from datetime import date, datetime, time, timedelta
from types import SimpleNamespace
from fastapi import HTTPException

from app.modules.employees.models import BreakType, ExitType, WeeklySchedule
from app.modules.employees.service import TimeClockService
from app.modules.employees.timekeeping import (
    TimeStatus, break_overtime, derive_status, meal_alerts, punctuality,
    week_bounds, week_number, worked_hours
)

MONDAY = date(2026, 3, 2)


def at(hour, minute=0, day=MONDAY):
    return datetime.combine(day, time(hour, minute))


# ===== CÁLCULOS =====

class TestTimekeeping:

    def test_punctuality(self):
        assert punctuality(at(8, 20), "08:00") == (False, 20)
        assert punctuality(at(7, 55), "08:00") == (True, 0)
        assert punctuality(at(9, 0), "09:00") == (True, 0)

    def test_worked_hours_discount_meal(self):
        assert worked_hours(at(8), at(17), 60) == (9.0, 8.0)
        assert worked_hours(at(8), at(8)) == (0.0, 0.0)

    def test_break_overtime(self):
        assert break_overtime(at(12), at(13, 10), 60) == (70, True, 10)
        assert break_overtime(at(12), at(12, 45), 60) == (45, False, 0)

    def test_meal_alerts(self):
        assert meal_alerts(at(12), at(12, 30)) == []
        warning = meal_alerts(at(12), at(12, 55))
        assert warning[0]["severity"] == "info"
        assert warning[0]["message"] == "Te quedan 5 minutos de comida"
        overtime = meal_alerts(at(12), at(13, 5))
        assert overtime[0]["type"] == "meal_overtime"
        assert overtime[0]["severity"] == "warning"

    def test_derive_status(self):
        working = SimpleNamespace(breaks=[], exit_type=None)
        on_meal = SimpleNamespace(
            breaks=[SimpleNamespace(break_type=BreakType.MEAL, end_time=None)], exit_type=None
        )
        assert derive_status(None, None) == TimeStatus.NOT_CHECKED_IN
        assert derive_status(working, working) == TimeStatus.WORKING
        assert derive_status(on_meal, on_meal) == TimeStatus.ON_MEAL_BREAK
        assert derive_status(None, SimpleNamespace(exit_type=ExitType.TEMPORARY)) == TimeStatus.TEMPORARY_EXIT
        assert derive_status(None, SimpleNamespace(exit_type=ExitType.FINAL)) == TimeStatus.FINISHED

    def test_weeks(self):
        assert week_number(date(2026, 1, 1)) == 1
        assert week_number(date(2026, 1, 4)) == 2
        assert week_bounds(date(2026, 3, 4)) == (date(2026, 3, 2), date(2026, 3, 8))


# ===== SERVICIO =====

class TestTimeClockService:

    def test_full_day_with_meal(self, db_session, employee_user):
        service = TimeClockService(db_session)

        checkin = service.clock(employee_user, "checkin", now=at(8, 10))
        assert checkin["work_session"].minutes_late == 10
        assert checkin["work_session"].is_on_time is False

        with pytest.raises(HTTPException) as exc_info:
            service.clock(employee_user, "checkin", now=at(8, 15))
        assert exc_info.value.detail == "Ya tienes una sesión activa"

        service.clock(employee_user, "checkout", "meal", now=at(12))
        status = service.get_status(employee_user, now=at(12, 55))
        assert status["status"] == "on_meal_break"
        assert status["alerts"][0]["severity"] == "info"

        back = service.clock(employee_user, "return_from_break", now=at(13, 10))
        assert back["meal_duration"] == 70
        assert back["is_overtime"] is True
        assert back["overtime_minutes"] == 10

        with pytest.raises(HTTPException) as exc_info:
            service.clock(employee_user, "checkout", "meal", now=at(15))
        assert exc_info.value.detail == "Ya has tomado tu hora de comida hoy"

        final = service.clock(employee_user, "checkout", "final", now=at(17, 10))
        assert float(final["hours_worked"]) == 9.0
        assert float(final["net_hours_worked"]) == 7.83

        status = service.get_status(employee_user, now=at(17, 30))
        assert status["status"] == "finished"
        assert status["meal_taken_today"] is True
        assert status["hours_today"] == {"total": 9.0, "net": 7.83}

    def test_no_consecutive_checkouts(self, db_session, employee_user):
        service = TimeClockService(db_session)
        service.clock(employee_user, "checkin", now=at(8))
        service.clock(employee_user, "checkout", "final", now=at(16))

        with pytest.raises(HTTPException) as exc_info:
            service.clock(employee_user, "checkout", "final", now=at(16, 5))
        assert exc_info.value.status_code == 400
        assert exc_info.value.detail == "No hay sesión activa para cerrar"

    def test_invalid_exit_type(self, db_session, employee_user):
        service = TimeClockService(db_session)
        service.clock(employee_user, "checkin", now=at(8))

        with pytest.raises(HTTPException) as exc_info:
            service.clock(employee_user, "checkout", "vacaciones", now=at(9))
        assert exc_info.value.detail == "Tipo de salida no válido. Use: temporary, meal, final"

    def test_temporary_exit_opens_new_session(self, db_session, employee_user):
        service = TimeClockService(db_session)
        service.clock(employee_user, "checkin", now=at(8))

        exit_ = service.clock(employee_user, "checkout", "temporary", now=at(10))
        assert float(exit_["work_session"].hours_worked) == 2.0
        assert service.get_status(employee_user, now=at(10, 30))["status"] == "temporary_exit"

        back = service.clock(employee_user, "return_from_break", now=at(10, 45))
        assert back["work_session"].session_number == 2
        assert back["work_session"].is_on_time is True
        assert service.get_status(employee_user, now=at(11))["status"] == "working"

        service.clock(employee_user, "checkout", "final", now=at(14, 45))
        status = service.get_status(employee_user, now=at(15))
        assert status["hours_today"]["total"] == 6.0

    def test_return_without_exit(self, db_session, employee_user):
        service = TimeClockService(db_session)
        with pytest.raises(HTTPException) as exc_info:
            service.clock(employee_user, "return_from_break", now=at(9))
        assert exc_info.value.detail == "No hay salida temporal o comida activa"

    def test_short_break_overtime(self, db_session, employee_user):
        service = TimeClockService(db_session)

        with pytest.raises(HTTPException) as exc_info:
            service.handle_break(employee_user, "start", BreakType.BREAK, now=at(7))
        assert exc_info.value.detail == "Debes estar trabajando para tomar un descanso"

        service.clock(employee_user, "checkin", now=at(8))
        started = service.handle_break(employee_user, "start", BreakType.BREAK, now=at(10))
        assert started["break_session"].is_paid is True
        assert started["break_session"].max_allowed == 15

        with pytest.raises(HTTPException):
            service.handle_break(employee_user, "start", BreakType.MEAL, now=at(10, 5))

        ended = service.handle_break(employee_user, "end", BreakType.BREAK, now=at(10, 20))
        assert ended["message"] == "Descanso terminado"
        assert ended["is_overtime"] is True
        assert ended["overtime_minutes"] == 5

        with pytest.raises(HTTPException) as exc_info:
            service.handle_break(employee_user, "end", BreakType.BREAK, now=at(10, 30))
        assert exc_info.value.detail == "No hay descanso activo para terminar"

    def test_lateness_uses_schedule(self, db_session, employee_user):
        db_session.add(WeeklySchedule(
            user_id=employee_user.id, day_of_week=MONDAY.weekday(), start_time="09:00", end_time="18:00"
        ))
        db_session.commit()

        checkin = TimeClockService(db_session).clock(employee_user, "checkin", now=at(9, 40))
        assert checkin["work_session"].minutes_late == 40

    def test_day_off_is_never_late(self, db_session, employee_user):
        db_session.add(WeeklySchedule(
            user_id=employee_user.id, day_of_week=MONDAY.weekday(), is_day_off=True
        ))
        db_session.commit()

        checkin = TimeClockService(db_session).clock(employee_user, "checkin", now=at(11))
        assert checkin["work_session"].is_on_time is True

    def test_close_stale_sessions(self, db_session, employee_user):
        db_session.add(WeeklySchedule(
            user_id=employee_user.id, day_of_week=MONDAY.weekday(), start_time="08:00", end_time="17:00"
        ))
        db_session.commit()
        service = TimeClockService(db_session)
        service.clock(employee_user, "checkin", now=at(8))

        closed = service.close_stale_sessions(now=at(3, day=MONDAY + timedelta(days=1)))
        assert len(closed) == 1
        assert closed[0].end_time == at(17)
        assert closed[0].exit_type == ExitType.FINAL
        assert float(closed[0].hours_worked) == 9.0
        assert "Cierre automático" in closed[0].notes

    def test_today_sessions_are_not_stale(self, db_session, employee_user):
        service = TimeClockService(db_session)
        service.clock(employee_user, "checkin", now=at(8))
        assert service.close_stale_sessions(now=at(22)) == []


# ===== API =====

class TestClockAPI:

    def test_checkin_and_status(self, client, employee_headers):
        response = client.post("/api/employee/clock", headers=employee_headers, json={"action": "checkin"})
        assert response.status_code == 200
        assert response.json()["message"] == "Check-in exitoso"

        status = client.get("/api/employee/status", headers=employee_headers).json()
        assert status["status"] == "working"
        assert status["current_session"]["session_number"] == 1

    def test_invalid_action(self, client, employee_headers):
        response = client.post("/api/employee/clock", headers=employee_headers, json={"action": "dormir"})
        assert response.status_code == 400
        assert response.json() == {"error": "Acción no válida"}

    def test_status_before_checkin(self, client, employee_headers):
        status = client.get("/api/employee/status", headers=employee_headers).json()
        assert status["status"] == "not_checked_in"
        assert status["current_session"] is None
        assert status["hours_week"] == {"total": 0.0, "net": 0.0}


class TestScheduleAPI:

    def _week_entry(self, **overrides):
        entry = {"day_of_week": 0, "start_time": "09:00", "end_time": "18:00"}
        entry.update(overrides)
        return entry

    def test_admin_sets_employee_schedule(self, client, admin_headers, employee_user, employee_headers):
        response = client.put("/api/employees/schedule", headers=admin_headers, json={
            "user_id": str(employee_user.id),
            "schedules": [self._week_entry(), self._week_entry(day_of_week=6, is_day_off=True)]
        })
        assert response.status_code == 200
        assert [s["day_of_week"] for s in response.json()] == [0, 6]

        own = client.get("/api/employees/schedule", headers=employee_headers).json()
        assert own[0]["start_time"] == "09:00"
        assert own[1]["is_day_off"] is True

    def test_employee_cannot_edit(self, client, employee_headers):
        response = client.put("/api/employees/schedule", headers=employee_headers, json={
            "schedules": [self._week_entry()]
        })
        assert response.status_code == 403

    def test_employee_cannot_read_others(self, client, employee_headers, admin_user):
        response = client.get(f"/api/employees/schedule?user_id={admin_user.id}", headers=employee_headers)
        assert response.status_code == 403

    def test_start_must_precede_end(self, client, admin_headers, employee_user):
        response = client.put("/api/employees/schedule", headers=admin_headers, json={
            "user_id": str(employee_user.id),
            "schedules": [self._week_entry(start_time="18:00", end_time="09:00")]
        })
        assert response.status_code == 400
        assert response.json() == {"error": "La hora de inicio debe ser anterior a la hora de fin"}

    def test_empty_schedule_rejected(self, client, admin_headers):
        response = client.put("/api/employees/schedule", headers=admin_headers, json={"schedules": []})
        assert response.status_code == 400

    def test_bad_time_format(self, client, admin_headers):
        response = client.put("/api/employees/schedule", headers=admin_headers, json={
            "schedules": [self._week_entry(start_time="9:00")]
        })
        assert response.status_code == 422


class TestWorkSessionsAPI:

    def test_admin_clock_for_employee(self, client, manager_headers, employee_user):
        url = "/api/admin/work-sessions/"
        checkin = client.post(url, headers=manager_headers, json={
            "action": "check-in", "employee_id": str(employee_user.id)
        })
        assert checkin.status_code == 200
        assert checkin.json()["message"] == "Check-in registrado exitosamente"

        overview = client.get(url, headers=manager_headers).json()
        assert overview["stats"]["active_employees"] == 1
        assert overview["work_sessions"][0]["user_name"] == "Eva Empleada"

        checkout = client.post(url, headers=manager_headers, json={
            "action": "check-out", "employee_id": str(employee_user.id), "notes": "Olvidó checar"
        })
        assert checkout.json()["message"] == "Check-out registrado exitosamente"

        active = client.get(url + "?status=active", headers=manager_headers).json()
        assert active["work_sessions"] == []
        assert active["stats"]["active_employees"] == 0

    def test_checkout_without_session(self, client, admin_headers, employee_user):
        response = client.post("/api/admin/work-sessions/", headers=admin_headers, json={
            "action": "check-out", "employee_id": str(employee_user.id)
        })
        assert response.status_code == 404

    def test_employees_have_no_access(self, client, employee_headers):
        assert client.get("/api/admin/work-sessions/", headers=employee_headers).status_code == 403


class TestStaleSessionsTask:

    def test_closes_sessions_from_previous_days(self, db_session, employee_user):
        from app.modules.employees.tasks import close_stale_sessions

        two_days_ago = date.today() - timedelta(days=2)
        TimeClockService(db_session).clock(employee_user, "checkin", now=at(8, day=two_days_ago))

        assert close_stale_sessions() == {"status": "completed", "closed": 1}

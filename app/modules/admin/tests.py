"""
Tests del panel de administración: alertas, tablero e historial de ventas
"""
from datetime import date, datetime, time, timedelta
from decimal import Decimal

from app.modules.admin.service import AdminService, period_range
from app.modules.auth.models import User, UserRole
from app.modules.employees.models import WeeklySchedule
from app.modules.employees.service import TimeClockService
from app.modules.products.models import ProductType

TODAY = date.today()


def today_at(hour, minute=0):
    return datetime.combine(TODAY, time(hour, minute))


def _employee(db_session, name, email):
    user = User(name=name, email=email, password="sin-uso", role=UserRole.EMPLOYEE, is_active=True)
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


class TestAlerts:
    """Comidas excedidas, llegadas tarde y empleados sin check-in"""

    def test_alerts_sorted_by_severity(self, db_session, employee_user):
        clock = TimeClockService(db_session)
        absent = _employee(db_session, "Luis Ausente", "luis@pasteleria.com")
        on_meal = _employee(db_session, "Marta Comida", "marta@pasteleria.com")

        clock.clock(employee_user, "checkin", now=today_at(9, 40))
        clock.clock(on_meal, "checkin", now=today_at(8))
        clock.clock(on_meal, "checkout", "meal", now=today_at(9, 50))

        result = AdminService(db_session).get_alerts(now=today_at(11))
        assert result["summary"] == {"total": 3, "errors": 2, "warnings": 1, "info": 0}

        alerts = result["alerts"]
        assert [a["severity"] for a in alerts] == ["error", "error", "warning"]
        by_type = {a["type"]: a for a in alerts}
        assert by_type["late_arrival"]["minutes_late"] == 100
        assert by_type["late_arrival"]["employee"]["id"] == employee_user.id
        assert by_type["no_checkin"]["employee"]["id"] == absent.id
        assert by_type["no_checkin"]["expected_time"] == "08:00"
        assert by_type["meal_overtime"]["overtime"] == 10
        assert by_type["meal_overtime"]["message"] == "Marta Comida ha excedido su tiempo de comida por 10 minutos"

    def test_no_checkin_alert_waits_until_nine(self, db_session, employee_user):
        service = AdminService(db_session)
        assert service.get_alerts(now=today_at(8, 30))["alerts"] == []

        warning = service.get_alerts(now=today_at(9, 30))["alerts"]
        assert [(a["type"], a["severity"]) for a in warning] == [("no_checkin", "warning")]

    def test_day_off_skips_no_checkin(self, db_session, employee_user):
        db_session.add(WeeklySchedule(
            user_id=employee_user.id, day_of_week=TODAY.weekday(), is_day_off=True
        ))
        db_session.commit()

        assert AdminService(db_session).get_alerts(now=today_at(11))["alerts"] == []

    def test_lateness_thresholds(self, db_session, employee_user):
        slightly_late = _employee(db_session, "Pablo Puntual", "pablo@pasteleria.com")
        clock = TimeClockService(db_session)
        clock.clock(employee_user, "checkin", now=today_at(8, 20))
        clock.clock(slightly_late, "checkin", now=today_at(8, 10))

        alerts = AdminService(db_session).get_alerts(now=today_at(8, 45))["alerts"]
        assert len(alerts) == 1
        assert alerts[0]["type"] == "late_arrival"
        assert alerts[0]["severity"] == "warning"
        assert alerts[0]["employee"]["id"] == employee_user.id

    def test_alerts_endpoint_permissions(self, client, manager_headers, employee_headers):
        response = client.get("/api/admin/alerts", headers=manager_headers)
        assert response.status_code == 200
        assert set(response.json()["summary"].keys()) == {"total", "errors", "warnings", "info"}

        assert client.get("/api/admin/alerts", headers=employee_headers).status_code == 403


class TestDashboard:
    """Totales de ventas por medio de pago y estado de la operación"""

    def test_period_ranges(self):
        now = datetime(2026, 3, 15, 12, 0)
        assert period_range("today", now) == (datetime(2026, 3, 15), datetime(2026, 3, 16))
        assert period_range("week", now)[0] == datetime(2026, 3, 8)
        assert period_range("month", now)[0] == datetime(2026, 2, 15)
        assert period_range("month", datetime(2026, 1, 31))[0] == datetime(2025, 12, 28)

    def test_dashboard_totals(self, client, admin_headers, employee_headers, make_product):
        concha = make_product(name="Concha", price="50.00", stock=10)
        cake = make_product(
            name="Pastel de chocolate", price="300.00", stock=3, min_stock=1,
            product_type=ProductType.CAKE_BAR, category="CAKE_BAR"
        )

        client.post("/api/sales/", headers=employee_headers, json={
            "items": [{"product_id": str(concha.id), "quantity": 2}],
            "payment_method": "CARD"
        })
        order = client.post("/api/cake-bar/orders", headers=employee_headers, json={
            "product_id": str(cake.id), "size": "10"
        }).json()
        client.post(f"/api/cake-bar/orders/{order['id']}/payments", headers=employee_headers, json={
            "amount": "100", "payment_type": "CASH"
        })
        client.post("/api/custom-orders/", headers=employee_headers, json={
            "customer_name": "Rosa",
            "description": "Pastel de XV años",
            "delivery_date": "2026-12-24T10:00:00",
            "estimated_price": "200.00",
            "advance_amount": "100.00",
            "payment_method": "TRANSFER"
        })

        response = client.get("/api/admin/dashboard?period=today", headers=admin_headers)
        assert response.status_code == 200
        body = response.json()

        totals = body["payment_totals"]
        assert set(totals.keys()) == {"CASH", "CARD", "TRANSFER"}
        assert Decimal(str(totals["CARD"]["total"])) == Decimal("100.00")
        assert totals["CASH"]["count"] == 1
        assert Decimal(str(body["grand_total"])) == Decimal("300.00")
        assert body["total_transactions"] == 3
        assert Decimal(str(body["sales_breakdown"]["cake_bar"])) == Decimal("100.00")

        assert body["top_products"][0]["name"] == "Concha"
        assert body["top_products"][0]["quantity"] == 2

        operations = body["operations"]
        assert operations["active_cake_bar_orders"] == 1
        assert operations["pending_custom_orders"] == 1
        assert operations["low_stock_count"] == 0
        assert operations["total_products"] == 2
        assert operations["active_users"] == 2

    def test_invalid_period(self, client, admin_headers):
        response = client.get("/api/admin/dashboard?period=year", headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["error"].startswith("Periodo no válido")

    def test_week_and_month(self, client, manager_headers):
        for period in ("week", "month"):
            response = client.get(f"/api/admin/dashboard?period={period}", headers=manager_headers)
            assert response.status_code == 200
            assert response.json()["grand_total"] in ("0", 0, "0.00")


HISTORY_URL = "/api/admin/sales-history"


def _sell_every_channel(client, headers, make_product):
    """Venta de Vitrina con tarjeta, abono de Cake Bar en efectivo y anticipo por transferencia"""
    concha = make_product(name="Concha", price="50.00", stock=10)
    cake = make_product(
        name="Pastel de chocolate", price="300.00", stock=3, min_stock=1,
        product_type=ProductType.CAKE_BAR, category="CAKE_BAR"
    )
    client.post("/api/sales/", headers=headers, json={
        "items": [{"product_id": str(concha.id), "quantity": 2}],
        "payment_method": "CARD"
    })
    order = client.post("/api/cake-bar/orders", headers=headers, json={
        "product_id": str(cake.id), "size": "10", "customer_name": "Lucía"
    }).json()
    client.post(f"/api/cake-bar/orders/{order['id']}/payments", headers=headers, json={
        "amount": "100", "payment_type": "CASH"
    })
    client.post("/api/custom-orders/", headers=headers, json={
        "customer_name": "Rosa",
        "description": "Pastel de XV años",
        "delivery_date": "2026-12-24T10:00:00",
        "estimated_price": "200.00",
        "advance_amount": "100.00",
        "payment_method": "TRANSFER"
    })


class TestSalesHistory:
    """Historial unificado de Vitrina, Cake Bar y pedidos personalizados"""

    def test_merges_every_channel(self, client, admin_headers, employee_headers, employee_user, make_product):
        _sell_every_channel(client, employee_headers, make_product)

        response = client.get(HISTORY_URL, headers=admin_headers)
        assert response.status_code == 200
        body = response.json()

        by_type = {entry["type"]: entry for entry in body["sales"]}
        assert set(by_type) == {"VITRINA", "CAKE_BAR", "CUSTOM_ORDER"}
        assert by_type["VITRINA"]["items"][0]["name"] == "Concha"
        assert by_type["VITRINA"]["items"][0]["quantity"] == 2
        assert by_type["CAKE_BAR"]["number"] == "CB0001"
        assert by_type["CAKE_BAR"]["customer_name"] == "Lucía"
        assert by_type["CAKE_BAR"]["items"][0]["name"] == "Pastel de chocolate (10 personas)"
        assert by_type["CUSTOM_ORDER"]["payment_type"] == "TRANSFER"
        assert by_type["CUSTOM_ORDER"]["employee_name"] == "Eva Empleada"

        assert body["pagination"] == {"page": 1, "limit": 20, "total": 3, "pages": 1}
        assert Decimal(str(body["stats"]["total"])) == Decimal("300.00")
        assert body["stats"]["count"] == 3

        breakdown = body["breakdown"]
        assert set(breakdown["by_payment"]) == {"CASH", "CARD", "TRANSFER"}
        assert [t["sale_type"] for t in breakdown["by_type"]] == ["VITRINA", "CAKE_BAR", "CUSTOM_ORDER"]
        assert all(t["count"] == 1 for t in breakdown["by_type"])
        assert breakdown["by_employee"][0]["employee_id"] == str(employee_user.id)
        assert breakdown["by_employee"][0]["count"] == 3

        assert body["daily_sales"][0]["day"] == TODAY.isoformat()
        assert body["daily_sales"][0]["count"] == 3

    def test_filters(self, client, admin_headers, employee_headers, manager_user, make_product):
        _sell_every_channel(client, employee_headers, make_product)

        def count(**params):
            response = client.get(HISTORY_URL, headers=admin_headers, params=params)
            assert response.status_code == 200
            return response.json()["pagination"]["total"]

        assert count(payment_type="card") == 1
        assert count(payment_type="ALL") == 3
        assert count(sale_type="CUSTOM_ORDER") == 1
        assert count(employee_id=str(manager_user.id)) == 0
        assert count(start_date=TODAY.isoformat(), end_date=TODAY.isoformat()) == 3
        assert count(start_date=(TODAY + timedelta(days=1)).isoformat()) == 0
        assert count(end_date=(TODAY - timedelta(days=1)).isoformat()) == 0

        cash_only = client.get(HISTORY_URL, headers=admin_headers, params={"payment_type": "CASH"}).json()
        assert cash_only["sales"][0]["type"] == "CAKE_BAR"
        assert Decimal(str(cash_only["stats"]["total"])) == Decimal("100.00")

    def test_pagination_newest_first(self, client, admin_headers, employee_headers, make_product):
        product = make_product(stock=20)
        for _ in range(5):
            client.post("/api/sales/", headers=employee_headers, json={
                "items": [{"product_id": str(product.id), "quantity": 1}]
            })

        first = client.get(HISTORY_URL, headers=admin_headers, params={"limit": 2}).json()
        assert first["pagination"] == {"page": 1, "limit": 2, "total": 5, "pages": 3}
        assert first["sales"][0]["number"].endswith("000005")
        assert first["stats"]["count"] == 5

        last = client.get(HISTORY_URL, headers=admin_headers, params={"limit": 2, "page": 3}).json()
        assert len(last["sales"]) == 1
        assert last["sales"][0]["number"].endswith("000001")

    def test_invalid_filters(self, client, admin_headers):
        response = client.get(HISTORY_URL, headers=admin_headers, params={"payment_type": "bitcoin"})
        assert response.status_code == 400
        assert response.json() == {"error": "Tipo de pago no válido"}

        response = client.get(HISTORY_URL, headers=admin_headers, params={"sale_type": "MAYOREO"})
        assert response.json() == {"error": "Tipo de venta no válido"}

        response = client.get(HISTORY_URL, headers=admin_headers, params={
            "start_date": "2026-03-10", "end_date": "2026-03-01"
        })
        assert response.status_code == 400

    def test_csv_export(self, client, manager_headers, employee_headers, make_product):
        _sell_every_channel(client, employee_headers, make_product)

        response = client.get(HISTORY_URL, headers=manager_headers, params={"export": "csv", "limit": 1})
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "attachment; filename=historial_ventas_" in response.headers["content-disposition"]

        lines = response.text.splitlines()
        assert lines[0] == "Fecha,Número,Tipo,Cliente,Empleado,Método de pago,Total"
        assert len(lines) == 4

    def test_employees_have_no_access(self, client, employee_headers):
        assert client.get(HISTORY_URL, headers=employee_headers).status_code == 403

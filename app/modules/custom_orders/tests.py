"""
Tests de pedidos personalizados: anticipo mínimo, abonos y estados
"""
from datetime import datetime
from decimal import Decimal

from app.modules.custom_orders.validators import minimum_advance, validate_advance


def _order_payload(**overrides):
    payload = {
        "customer_name": "Rosa Martínez",
        "customer_phone": "5551234567",
        "description": "Pastel de bodas de tres pisos, betún blanco",
        "delivery_date": "2026-12-24T10:00:00",
        "estimated_price": "200.00",
        "advance_amount": "100.00",
        "payment_method": "CASH"
    }
    payload.update(overrides)
    return payload


class TestAdvanceRules:
    """El anticipo cubre al menos la mitad del precio estimado"""

    def test_minimum_advance(self):
        assert minimum_advance(Decimal("200")) == Decimal("100.00")
        assert minimum_advance("355", "0.5") == Decimal("177.50")

    def test_half_is_accepted(self):
        assert validate_advance(Decimal("200"), Decimal("100")) is None
        assert validate_advance(Decimal("200"), Decimal("200")) is None

    def test_below_half_is_rejected(self):
        assert validate_advance(Decimal("200"), Decimal("99")) == \
            "El anticipo debe ser mínimo el 50% del precio estimado"

    def test_ratio_changes_message(self):
        assert validate_advance(200, 50, "0.3") == \
            "El anticipo debe ser mínimo el 30% del precio estimado"

    def test_advance_over_estimate(self):
        assert validate_advance(Decimal("200"), Decimal("250")) == \
            "El anticipo no puede exceder el precio estimado"


class TestCustomOrdersAPI:

    def test_create_order_with_advance(self, client, employee_headers):
        response = client.post("/api/custom-orders/", headers=employee_headers, json=_order_payload())
        assert response.status_code == 201
        body = response.json()
        assert body["order_number"] == f"CUSTOM-{datetime.now().year}-0001"
        assert body["status"] == "PENDIENTE"
        assert Decimal(str(body["total_paid"])) == Decimal("100.00")
        assert Decimal(str(body["remaining"])) == Decimal("100.00")
        assert len(body["payments"]) == 1
        assert body["payments"][0]["payment_type"] == "ANTICIPO"

    def test_advance_below_minimum_rejected(self, client, employee_headers):
        response = client.post(
            "/api/custom-orders/", headers=employee_headers, json=_order_payload(advance_amount="99.00")
        )
        assert response.status_code == 400
        assert response.json() == {"error": "El anticipo debe ser mínimo el 50% del precio estimado"}

        assert client.get("/api/custom-orders/", headers=employee_headers).json() == []

    def test_payments_up_to_estimated_price(self, client, employee_headers):
        order = client.post("/api/custom-orders/", headers=employee_headers, json=_order_payload()).json()
        url = f"/api/custom-orders/{order['id']}/payments"

        settled = client.post(url, headers=employee_headers, json={
            "amount": "100.00", "payment_method": "CARD", "payment_type": "LIQUIDACION"
        })
        assert settled.status_code == 201

        detail = client.get(f"/api/custom-orders/{order['id']}", headers=employee_headers).json()
        assert Decimal(str(detail["remaining"])) == Decimal("0")
        assert len(detail["payments"]) == 2

        extra = client.post(url, headers=employee_headers, json={"amount": "1.00"})
        assert extra.status_code == 400
        assert extra.json() == {"error": "El total de pagos no puede exceder el precio estimado"}

    def test_status_update(self, client, employee_headers):
        order = client.post("/api/custom-orders/", headers=employee_headers, json=_order_payload()).json()
        url = f"/api/custom-orders/{order['id']}/status"

        baked = client.patch(url, headers=employee_headers, json={"status": "HORNEADO"})
        assert baked.status_code == 200
        assert baked.json()["status"] == "HORNEADO"

        invalid = client.patch(url, headers=employee_headers, json={"status": "PERDIDO"})
        assert invalid.status_code == 400
        assert invalid.json()["error"].startswith("Estado no válido")

    def test_unknown_order(self, client, employee_headers):
        response = client.get(
            "/api/custom-orders/00000000-0000-0000-0000-000000000000", headers=employee_headers
        )
        assert response.status_code == 404
        assert response.json() == {"error": "Pedido no encontrado"}

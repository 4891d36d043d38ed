"""
Tests de caja: arqueo, apertura/cierre y gastos
"""
from decimal import Decimal

from app.modules.products.models import ProductType
from app.modules.cash_register.reconciliation import (
    cash_difference, cash_total, expected_cash, summarize_payments
)

URL = "/api/admin/cash-closure/"


class TestReconciliation:
    """efectivo_esperado = apertura + ventas_en_efectivo - gastos"""

    def test_expected_cash(self):
        assert expected_cash(Decimal("100"), Decimal("25"), Decimal("10")) == Decimal("115")

    def test_difference_sign(self):
        assert cash_difference(Decimal("110"), Decimal("115")) == Decimal("-5")
        assert cash_difference("120", "115") == Decimal("5")

    def test_summarize_normalizes_payment_types(self):
        summary = summarize_payments([
            ("CASH", Decimal("25")),
            ("card", Decimal("40")),
            ('{"type": "CASH"}', "10.50"),
            ("otro", Decimal("5")),
        ])
        # Los medios desconocidos cuentan como efectivo
        assert summary["CASH"] == {"total": Decimal("40.50"), "count": 3}
        assert summary["CARD"] == {"total": Decimal("40"), "count": 1}
        assert cash_total(summary) == Decimal("40.50")
        assert cash_total({}) == Decimal("0")


def _sell(client, headers, product, quantity=1, payment="CASH"):
    return client.post("/api/sales/", headers=headers, json={
        "items": [{"product_id": str(product.id), "quantity": quantity}],
        "payment_method": payment,
        "amount_received": str(product.price * quantity)
    })


class TestCashClosureAPI:

    def test_open_sale_expense_close(self, client, manager_headers, employee_headers, make_product):
        product = make_product(price="25.00", stock=10)

        opened = client.post(URL, headers=manager_headers, json={"action": "open", "opening_cash": "100"})
        assert opened.status_code == 200
        assert opened.json()["register"]["status"] == "open"

        _sell(client, employee_headers, product)
        _sell(client, employee_headers, product, payment="CARD")
        expense = client.post(URL + "expenses", headers=manager_headers, json={
            "amount": "10", "category": "INSUMOS", "description": "Leche"
        })
        assert expense.status_code == 201

        state = client.get(URL, headers=manager_headers).json()
        assert state["has_open_register"] is True
        summary = state["summary"]
        assert Decimal(str(summary["cash_sales"])) == Decimal("25.00")
        assert Decimal(str(summary["card_sales"])) == Decimal("25.00")
        assert Decimal(str(summary["total_sales"])) == Decimal("50.00")
        assert Decimal(str(summary["expected_cash"])) == Decimal("115.00")
        assert len(state["recent_sales"]) == 2
        assert len(state["expenses"]) == 1

        closed = client.post(URL, headers=manager_headers, json={
            "action": "close", "actual_cash": "110", "notes": "Faltan 5"
        })
        assert closed.status_code == 200
        body = closed.json()
        assert body["register"]["status"] == "closed"
        assert Decimal(str(body["register"]["expected_cash"])) == Decimal("115.00")
        assert Decimal(str(body["register"]["difference"])) == Decimal("-5.00")
        assert Decimal(str(body["summary"]["difference"])) == Decimal("-5")

        assert client.get(URL, headers=manager_headers).json()["has_open_register"] is False
        assert len(client.get(URL + "history", headers=manager_headers).json()) == 1

    def test_single_open_register(self, client, manager_headers):
        client.post(URL, headers=manager_headers, json={"action": "open", "opening_cash": "100"})

        again = client.post(URL, headers=manager_headers, json={"action": "open", "opening_cash": "50"})
        assert again.status_code == 400
        assert again.json() == {"error": "Ya hay una caja abierta"}

    def test_close_without_open_register(self, client, admin_headers):
        response = client.post(URL, headers=admin_headers, json={"action": "close", "actual_cash": "0"})
        assert response.status_code == 400
        assert response.json() == {"error": "No hay caja abierta para cerrar"}

    def test_invalid_action(self, client, admin_headers):
        response = client.post(URL, headers=admin_headers, json={"action": "reabrir"})
        assert response.status_code == 400
        assert response.json() == {"error": "Acción no válida"}

    def test_expense_requires_open_register(self, client, admin_headers):
        response = client.post(URL + "expenses", headers=admin_headers, json={"amount": "10"})
        assert response.status_code == 400
        assert response.json() == {"error": "No hay caja abierta"}

    def test_order_payments_count_in_register(self, client, manager_headers, employee_headers, make_product):
        client.post(URL, headers=manager_headers, json={"action": "open", "opening_cash": "0"})
        client.post("/api/custom-orders/", headers=employee_headers, json={
            "customer_name": "Rosa",
            "description": "Pastel de cumpleaños",
            "delivery_date": "2026-12-24T10:00:00",
            "estimated_price": "400.00",
            "advance_amount": "200.00",
            "payment_method": "TRANSFER"
        })

        state = client.get(URL, headers=manager_headers).json()
        assert Decimal(str(state["summary"]["transfer_sales"])) == Decimal("200.00")
        assert Decimal(str(state["summary"]["expected_cash"])) == Decimal("0")
        assert state["recent_sales"][0]["type"] == "CUSTOM_ORDER"
        assert state["recent_sales"][0]["customer_name"] == "Rosa"

    def test_employees_have_no_access(self, client, employee_headers):
        assert client.get(URL, headers=employee_headers).status_code == 403

    def test_second_register_same_day_does_not_recount_payments(
        self, client, manager_headers, employee_headers, make_product
    ):
        cake = make_product(
            name="Pastel de vainilla", price="300.00", stock=0,
            product_type=ProductType.CAKE_BAR, category="CAKE_BAR"
        )
        client.post(URL, headers=manager_headers, json={"action": "open", "opening_cash": "100"})
        order = client.post("/api/cake-bar/orders", headers=employee_headers, json={
            "product_id": str(cake.id), "size": "10"
        }).json()
        client.post(
            f"/api/cake-bar/orders/{order['id']}/payments",
            headers=employee_headers, json={"amount": "50", "payment_type": "CASH"}
        )

        first = client.post(URL, headers=manager_headers, json={"action": "close", "actual_cash": "150"}).json()
        assert Decimal(str(first["summary"]["expected_cash"])) == Decimal("150.00")
        assert Decimal(str(first["summary"]["difference"])) == Decimal("0")

        client.post(URL, headers=manager_headers, json={"action": "open", "opening_cash": "150"})
        state = client.get(URL, headers=manager_headers).json()
        assert Decimal(str(state["summary"]["total_sales"])) == Decimal("0")
        assert Decimal(str(state["summary"]["expected_cash"])) == Decimal("150.00")
        assert state["recent_sales"] == []

        # Los abonos nuevos sí cuentan en la segunda caja
        client.post(
            f"/api/cake-bar/orders/{order['id']}/payments",
            headers=employee_headers, json={"amount": "25", "payment_type": "CASH"}
        )
        state = client.get(URL, headers=manager_headers).json()
        assert Decimal(str(state["summary"]["expected_cash"])) == Decimal("175.00")

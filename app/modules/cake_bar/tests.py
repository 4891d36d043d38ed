"""
Tests del Cake Bar: cálculo de precios, ciclo de vida de órdenes y abonos
"""
import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4

from app.modules.cake_bar.models import CakeBarOptionType, CakeBarOrder, CakeBarOrderStatus
from app.modules.cake_bar.pricing import calculate_order_price, size_multiplier, validate_selections
from app.modules.products.models import ProductType


def _option(option_type, price, name="Opción", allow_multiple=None):
    if allow_multiple is None:
        allow_multiple = option_type == CakeBarOptionType.TOPPING
    return SimpleNamespace(
        option_type=option_type, price_add=Decimal(price), name=name, allow_multiple=allow_multiple
    )


# ===== PRECIOS =====

class TestPricing:
    """total = precio_base * multiplicador + Σ(precio * cantidad)"""

    def test_size_multipliers(self):
        assert size_multiplier("10") == Decimal("1.0")
        assert size_multiplier(20) == Decimal("1.8")
        assert size_multiplier("30") == Decimal("2.5")
        with pytest.raises(ValueError):
            size_multiplier("15")

    def test_base_price_by_size(self):
        breakdown = calculate_order_price(Decimal("100"), "20", [], {})
        assert breakdown.sized_price == Decimal("180.00")
        assert breakdown.total == Decimal("180.00")

    def test_toppings_charged_by_quantity(self):
        sprinkles, filling = uuid4(), uuid4()
        options = {
            sprinkles: _option(CakeBarOptionType.TOPPING, "5.00", "Chispas"),
            filling: _option(CakeBarOptionType.FILLING, "20.00", "Cajeta"),
        }
        selections = [
            {"option_id": sprinkles, "quantity": 3},
            {"option_id": filling, "quantity": 2},
        ]

        breakdown = calculate_order_price(Decimal("100"), "10", selections, options)
        assert breakdown.addons_total == Decimal("35.00")
        assert breakdown.total == Decimal("135.00")
        assert [line.total_price for line in breakdown.lines] == [Decimal("15.00"), Decimal("20.00")]

    def test_unknown_options_are_skipped(self):
        breakdown = calculate_order_price(
            Decimal("100"), "30", [{"option_id": uuid4(), "quantity": 4}], {}
        )
        assert breakdown.total == Decimal("250.00")
        assert breakdown.lines == []

    def test_total_never_below_sized_price(self):
        topping = uuid4()
        options = {topping: _option(CakeBarOptionType.TOPPING, "0.00")}
        for quantity in (0, 1, 7):
            breakdown = calculate_order_price(
                Decimal("120"), "20", [{"option_id": topping, "quantity": quantity}], options
            )
            assert breakdown.total >= breakdown.sized_price

    def test_negative_quantity_rejected(self):
        topping = uuid4()
        options = {topping: _option(CakeBarOptionType.TOPPING, "5.00")}
        with pytest.raises(ValueError):
            calculate_order_price(Decimal("100"), "10", [{"option_id": topping, "quantity": -1}], options)

    def test_single_choice_types(self):
        vanilla, chocolate = uuid4(), uuid4()
        options = {
            vanilla: _option(CakeBarOptionType.BREAD_FLAVOR, "0", "Vainilla"),
            chocolate: _option(CakeBarOptionType.BREAD_FLAVOR, "10", "Chocolate"),
        }
        with pytest.raises(ValueError, match="BREAD_FLAVOR"):
            validate_selections([{"option_id": vanilla}, {"option_id": chocolate}], options)

        validate_selections([{"option_id": vanilla}], options)


class TestTimeRemaining:

    def test_only_in_progress_orders(self):
        start = datetime(2026, 3, 2, 10, 0)
        order = CakeBarOrder(status=CakeBarOrderStatus.IN_PROGRESS, start_time=start)
        assert order.time_remaining_ms(30, start + timedelta(minutes=10)) == 20 * 60 * 1000
        assert order.time_remaining_ms(30, start + timedelta(minutes=45)) == 0

        order.status = CakeBarOrderStatus.READY
        assert order.time_remaining_ms(30, start) is None


# ===== API =====

@pytest.fixture
def cake(make_product):
    return make_product(
        name="Pastel de vainilla", price="300.00", stock=0,
        product_type=ProductType.CAKE_BAR, category="CAKE_BAR"
    )


@pytest.fixture
def topping_option(client, admin_headers):
    return client.post("/api/cake-bar/options", headers=admin_headers, json={
        "option_type": "TOPPING",
        "name": "Fresas",
        "category": "FRUTAS",
        "price_add": "10.00"
    }).json()


def _create_order(client, headers, product_id, size="20", customizations=None):
    return client.post("/api/cake-bar/orders", headers=headers, json={
        "product_id": str(product_id),
        "size": size,
        "customer_name": "Lucía",
        "customizations": customizations or []
    })


class TestOptionsAPI:

    def test_options_grouped_by_type(self, client, admin_headers, employee_headers, topping_option):
        client.post("/api/cake-bar/options", headers=admin_headers, json={
            "option_type": "FILLING", "name": "Cajeta", "price_add": "15.00"
        })
        client.post("/api/cake-bar/options", headers=admin_headers, json={
            "option_type": "TOPPING", "name": "Chispas", "price_add": "5.00"
        })

        grouped = client.get("/api/cake-bar/options", headers=employee_headers).json()
        assert [o["name"] for o in grouped["FILLING"]] == ["Cajeta"]
        assert set(grouped["TOPPING"].keys()) == {"FRUTAS", "OTROS"}
        assert grouped["TOPPING"]["FRUTAS"][0]["allow_multiple"] is True
        assert grouped["FILLING"][0]["allow_multiple"] is False

    def test_deleted_option_is_hidden(self, client, admin_headers, topping_option):
        response = client.delete(f"/api/cake-bar/options/{topping_option['id']}", headers=admin_headers)
        assert response.status_code == 200

        grouped = client.get("/api/cake-bar/options", headers=admin_headers).json()
        assert "TOPPING" not in grouped

    def test_employee_cannot_create_options(self, client, employee_headers):
        response = client.post("/api/cake-bar/options", headers=employee_headers, json={
            "option_type": "COLOR", "name": "Rosa"
        })
        assert response.status_code == 403


class TestOrdersAPI:

    def test_create_order_prices_on_server(self, client, employee_headers, cake, topping_option):
        response = _create_order(
            client, employee_headers, cake.id,
            customizations=[{"option_id": topping_option["id"], "quantity": 2}]
        )
        assert response.status_code == 201
        body = response.json()
        assert body["order_number"] == "CB0001"
        assert body["status"] == "pending"
        assert body["product_name"] == "Pastel de vainilla"
        assert Decimal(str(body["base_price"])) == Decimal("540.00")
        assert Decimal(str(body["total_price"])) == Decimal("560.00")
        assert Decimal(str(body["remaining_amount"])) == Decimal("560.00")
        assert body["customizations"][0]["option_name"] == "Fresas"

    def test_quote_does_not_create_order(self, client, employee_headers, cake):
        response = client.post("/api/cake-bar/orders/quote", headers=employee_headers, json={
            "product_id": str(cake.id), "size": 30
        })
        assert response.status_code == 200
        assert Decimal(str(response.json()["total"])) == Decimal("750.00")

        assert client.get("/api/cake-bar/orders", headers=employee_headers).json() == []

    def test_invalid_size(self, client, employee_headers, cake):
        response = _create_order(client, employee_headers, cake.id, size="15")
        assert response.status_code == 400
        assert "Tamaño inválido" in response.json()["error"]

    def test_status_lifecycle(self, client, employee_headers, cake):
        order = _create_order(client, employee_headers, cake.id).json()
        url = f"/api/cake-bar/orders/{order['id']}"

        skipped = client.patch(url, headers=employee_headers, json={"status": "ready"})
        assert skipped.status_code == 400
        assert skipped.json()["error"].startswith("Transición de estado inválida")

        started = client.patch(url, headers=employee_headers, json={"status": "in_progress"}).json()
        assert started["start_time"] is not None
        assert started["assigned_worker"] is not None
        assert 0 < started["time_remaining"] <= 30 * 60 * 1000

        ready = client.patch(url, headers=employee_headers, json={"status": "ready"}).json()
        assert ready["completed_time"] is not None
        assert ready["time_remaining"] is None

        completed = client.patch(url, headers=employee_headers, json={"status": "completed"})
        assert completed.json()["status"] == "completed"

        reopened = client.patch(url, headers=employee_headers, json={"status": "pending"})
        assert reopened.status_code == 400

    def test_payments_cannot_exceed_total(self, client, employee_headers, cake):
        order = _create_order(client, employee_headers, cake.id, size="10").json()
        url = f"/api/cake-bar/orders/{order['id']}/payments"

        first = client.post(url, headers=employee_headers, json={"amount": "200", "payment_type": "CARD"})
        assert first.status_code == 201

        detail = client.get(f"/api/cake-bar/orders/{order['id']}", headers=employee_headers).json()
        assert Decimal(str(detail["amount_paid"])) == Decimal("200.00")
        assert Decimal(str(detail["remaining_amount"])) == Decimal("100.00")
        assert len(detail["payments"]) == 1

        too_much = client.post(url, headers=employee_headers, json={"amount": "150"})
        assert too_much.status_code == 400
        assert too_much.json() == {"error": "El monto excede el total de la orden"}

    def test_no_payments_on_cancelled_order(self, client, employee_headers, cake):
        order = _create_order(client, employee_headers, cake.id).json()
        client.patch(f"/api/cake-bar/orders/{order['id']}", headers=employee_headers, json={"status": "cancelled"})

        response = client.post(
            f"/api/cake-bar/orders/{order['id']}/payments", headers=employee_headers, json={"amount": "50"}
        )
        assert response.status_code == 400

    def test_filter_by_status(self, client, employee_headers, cake):
        first = _create_order(client, employee_headers, cake.id).json()
        _create_order(client, employee_headers, cake.id)
        client.patch(f"/api/cake-bar/orders/{first['id']}", headers=employee_headers, json={"status": "in_progress"})

        in_progress = client.get("/api/cake-bar/orders?status=in_progress&today=true", headers=employee_headers).json()
        assert [o["id"] for o in in_progress] == [first["id"]]

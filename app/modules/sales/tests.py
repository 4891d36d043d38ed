"""
Tests del módulo de ventas de Vitrina
"""
from datetime import datetime
from decimal import Decimal

from app.modules.products.models import StockMovement, StockMovementType
from app.modules.sales.models import PaymentType
from app.modules.sales.utils import normalize_payment_type


class TestNormalizePaymentType:
    """Medio de pago recibido en distintos formatos"""

    def test_plain_text(self):
        assert normalize_payment_type("CARD") == PaymentType.CARD
        assert normalize_payment_type(" transfer ") == PaymentType.TRANSFER

    def test_object_and_json(self):
        assert normalize_payment_type({"type": "card", "reference": "1234"}) == PaymentType.CARD
        assert normalize_payment_type('{"type": "MIXED"}') == PaymentType.MIXED

    def test_unknown_defaults_to_cash(self):
        assert normalize_payment_type("bitcoin") == PaymentType.CASH
        assert normalize_payment_type(None) == PaymentType.CASH
        assert normalize_payment_type("{no es json") == PaymentType.CASH
        assert normalize_payment_type({"amount": 10}) == PaymentType.CASH


class TestSalesAPI:
    """Registro de ventas con descuento de inventario"""

    def test_cash_sale_decrements_stock(self, client, db_session, employee_headers, make_product):
        product = make_product(name="Concha", price="25.00", stock=10)

        response = client.post("/api/sales/", headers=employee_headers, json={
            "items": [{"product_id": str(product.id), "quantity": 3}],
            "payment_method": "CASH",
            "amount_received": "100"
        })
        assert response.status_code == 201
        body = response.json()
        assert Decimal(str(body["total"])) == Decimal("75.00")
        assert Decimal(str(body["change"])) == Decimal("25.00")
        assert body["sale_number"] == f"VITRINA-{datetime.now().year}-000001"
        assert body["items"][0]["product_name"] == "Concha"
        assert body["cash_register_id"] is None

        db_session.refresh(product)
        assert product.stock == 7
        movement = db_session.query(StockMovement).filter(
            StockMovement.type == StockMovementType.SALE
        ).one()
        assert movement.quantity == -3

    def test_insufficient_stock(self, client, db_session, employee_headers, make_product):
        product = make_product(name="Concha", stock=2)

        response = client.post("/api/sales/", headers=employee_headers, json={
            "items": [{"product_id": str(product.id), "quantity": 3}]
        })
        assert response.status_code == 400
        assert response.json() == {"error": "Stock insuficiente para Concha. Disponible: 2"}

        db_session.refresh(product)
        assert product.stock == 2

    def test_items_required(self, client, employee_headers):
        response = client.post("/api/sales/", headers=employee_headers, json={"items": []})
        assert response.status_code == 400
        assert response.json() == {"error": "Items de venta son requeridos"}

    def test_discount_and_card_payment(self, client, employee_headers, make_product):
        product = make_product(price="50.00", stock=10)

        response = client.post("/api/sales/", headers=employee_headers, json={
            "items": [{"product_id": str(product.id), "quantity": 2}],
            "payment_method": {"type": "CARD"},
            "discount": "10"
        })
        body = response.json()
        assert body["payment_type"] == "CARD"
        assert Decimal(str(body["subtotal"])) == Decimal("100.00")
        assert Decimal(str(body["discount_amount"])) == Decimal("10.00")
        assert Decimal(str(body["total"])) == Decimal("90.00")
        assert Decimal(str(body["change"])) == Decimal("0")

    def test_services_keep_no_stock(self, client, db_session, employee_headers, make_product):
        service = make_product(name="Decorado especial", price="30.00", stock=0, is_service=True)

        response = client.post("/api/sales/", headers=employee_headers, json={
            "items": [{"product_id": str(service.id), "quantity": 2}]
        })
        assert response.status_code == 201
        db_session.refresh(service)
        assert service.stock == 0

    def test_sale_linked_to_open_register(self, client, manager_headers, employee_headers, make_product):
        product = make_product(price="25.00", stock=10)
        opened = client.post("/api/admin/cash-closure/", headers=manager_headers, json={
            "action": "open", "opening_cash": "100"
        }).json()

        response = client.post("/api/sales/", headers=employee_headers, json={
            "items": [{"product_id": str(product.id), "quantity": 1}],
            "amount_received": "25"
        })
        assert response.json()["cash_register_id"] == opened["register"]["id"]

    def test_recent_sales(self, client, employee_headers, make_product):
        product = make_product(stock=10)
        for _ in range(2):
            client.post("/api/sales/", headers=employee_headers, json={
                "items": [{"product_id": str(product.id), "quantity": 1}]
            })

        response = client.get("/api/sales/", headers=employee_headers)
        assert response.status_code == 200
        assert len(response.json()) == 2

    def test_repeated_product_lines_share_stock(self, client, db_session, employee_headers, make_product):
        product = make_product(name="Concha", stock=5)

        response = client.post("/api/sales/", headers=employee_headers, json={
            "items": [
                {"product_id": str(product.id), "quantity": 3},
                {"product_id": str(product.id), "quantity": 3}
            ]
        })
        assert response.status_code == 400
        assert response.json() == {"error": "Stock insuficiente para Concha. Disponible: 5"}

        db_session.refresh(product)
        assert product.stock == 5

    def test_repeated_product_lines_within_stock(self, client, db_session, employee_headers, make_product):
        product = make_product(price="10.00", stock=5)

        response = client.post("/api/sales/", headers=employee_headers, json={
            "items": [
                {"product_id": str(product.id), "quantity": 2},
                {"product_id": str(product.id), "quantity": 3}
            ]
        })
        assert response.status_code == 201
        assert Decimal(str(response.json()["total"])) == Decimal("50.00")

        db_session.refresh(product)
        assert product.stock == 0
        movements = db_session.query(StockMovement).filter(
            StockMovement.type == StockMovementType.SALE
        ).all()
        assert sorted(m.quantity for m in movements) == [-3, -2]

    def test_cash_received_below_total(self, client, db_session, employee_headers, make_product):
        product = make_product(price="25.00", stock=10)

        response = client.post("/api/sales/", headers=employee_headers, json={
            "items": [{"product_id": str(product.id), "quantity": 2}],
            "payment_method": "CASH",
            "amount_received": "40"
        })
        assert response.status_code == 400
        assert response.json() == {"error": "El monto recibido es insuficiente"}

        db_session.refresh(product)
        assert product.stock == 10

    def test_cash_without_amount_is_exact(self, client, employee_headers, make_product):
        product = make_product(price="25.00", stock=10)

        response = client.post("/api/sales/", headers=employee_headers, json={
            "items": [{"product_id": str(product.id), "quantity": 2}]
        })
        body = response.json()
        assert response.status_code == 201
        assert Decimal(str(body["amount_received"])) == Decimal("50.00")
        assert Decimal(str(body["change"])) == Decimal("0")

    def test_inactive_product_cannot_be_sold(self, client, db_session, employee_headers, make_product):
        product = make_product(stock=10)
        product.is_active = False
        db_session.commit()

        response = client.post("/api/sales/", headers=employee_headers, json={
            "items": [{"product_id": str(product.id), "quantity": 1}]
        })
        assert response.status_code == 400
        assert response.json() == {"error": f"Producto no encontrado: {product.id}"}

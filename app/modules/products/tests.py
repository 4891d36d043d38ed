"""
Tests del módulo de productos e inventario
"""
import csv
import io
from datetime import date, datetime
from decimal import Decimal

from app.modules.products.models import Product, ProductType, StockMovement, StockMovementType
from app.modules.products.service import determine_product_type, generate_barcode


class TestProductType:
    """Clasificación Vitrina / Cake Bar / Servicio"""

    def test_cake_bar_keywords(self):
        assert determine_product_type("DECORACIONES_TORTA") == ProductType.CAKE_BAR
        assert determine_product_type("Figuras Torta") == ProductType.CAKE_BAR
        assert determine_product_type("cake_bar") == ProductType.CAKE_BAR

    def test_default_is_vitrina(self):
        assert determine_product_type("PAN_DULCE") == ProductType.VITRINA
        assert determine_product_type(None) == ProductType.VITRINA

    def test_explicit_type_wins(self):
        assert determine_product_type("CAKE_BAR", ProductType.VITRINA) == ProductType.VITRINA

    def test_services(self):
        assert determine_product_type("PAN_DULCE", is_service=True) == ProductType.SERVICE

    def test_generated_barcode(self):
        barcode = generate_barcode()
        assert barcode.startswith("789")
        assert len(barcode) == 13
        assert barcode.isdigit()


class TestEffectivePrice:
    """Precio especial > promoción vigente > precio de lista"""

    def _product(self, **kwargs):
        defaults = {"name": "Pastel", "price": Decimal("100.00"), "has_promotion": False}
        defaults.update(kwargs)
        return Product(**defaults)

    def test_list_price(self):
        assert self._product().effective_price() == Decimal("100.00")

    def test_special_price_wins(self):
        product = self._product(
            special_price=Decimal("80.00"), has_promotion=True, promotion_discount=Decimal("50")
        )
        assert product.effective_price() == Decimal("80.00")

    def test_active_promotion(self):
        product = self._product(
            has_promotion=True,
            promotion_discount=Decimal("10"),
            promotion_start_date=datetime(2026, 5, 1),
            promotion_end_date=datetime(2026, 5, 31)
        )
        assert product.effective_price(date(2026, 5, 10)) == Decimal("90.00")
        assert product.effective_price(date(2026, 6, 1)) == Decimal("100.00")


class TestProductsAPI:
    """Alta, ajustes de stock y baja de productos"""

    def test_create_product_records_initial_stock(self, client, db_session, manager_headers):
        response = client.post("/api/products/", headers=manager_headers, json={
            "name": "Concha de vainilla",
            "price": "18.00",
            "stock": 24,
            "category": "PAN_DULCE"
        })
        assert response.status_code == 201
        body = response.json()
        assert body["type"] == "VITRINA"
        assert body["min_stock"] == 5
        assert body["barcode"].startswith("789")
        assert body["is_low_stock"] is False

        movements = db_session.query(StockMovement).all()
        assert len(movements) == 1
        assert movements[0].reason == "Stock inicial"
        assert movements[0].quantity == 24

    def test_category_keyword_sets_cake_bar_type(self, client, admin_headers):
        response = client.post("/api/products/", headers=admin_headers, json={
            "name": "Figura de fondant",
            "price": "45.00",
            "stock": 10,
            "category": "FIGURAS_TORTA"
        })
        assert response.json()["type"] == "CAKE_BAR"

    def test_service_has_no_stock(self, client, admin_headers):
        response = client.post("/api/products/", headers=admin_headers, json={
            "name": "Entrega a domicilio",
            "price": "60.00",
            "stock": 99,
            "is_service": True
        })
        body = response.json()
        assert body["type"] == "SERVICE"
        assert body["stock"] == 0
        assert body["is_low_stock"] is False

    def test_duplicate_barcode(self, client, admin_headers):
        payload = {"name": "Galleta", "price": "8.00", "stock": 30, "barcode": "7501234567890"}
        assert client.post("/api/products/", headers=admin_headers, json=payload).status_code == 201

        payload["name"] = "Otra galleta"
        response = client.post("/api/products/", headers=admin_headers, json=payload)
        assert response.status_code == 400
        assert response.json() == {"error": "El código de barras ya existe"}

    def test_invalid_price_rejected(self, client, admin_headers):
        response = client.post("/api/products/", headers=admin_headers, json={
            "name": "Gratis", "price": "0", "stock": 1
        })
        assert response.status_code == 422

    def test_employee_cannot_create(self, client, employee_headers):
        response = client.post("/api/products/", headers=employee_headers, json={
            "name": "Dona", "price": "12.00", "stock": 5
        })
        assert response.status_code == 403

    def test_stock_adjustment_is_audited(self, client, admin_headers, make_product):
        product = make_product(stock=10, min_stock=5)

        response = client.patch(f"/api/products/{product.id}", headers=admin_headers, json={
            "stock": 4, "reason": "Merma"
        })
        assert response.status_code == 200
        assert response.json()["is_low_stock"] is True

        movements = client.get(f"/api/products/{product.id}/movements", headers=admin_headers).json()
        assert len(movements) == 1
        assert movements[0]["type"] == StockMovementType.ADJUSTMENT.value
        assert movements[0]["quantity"] == -6
        assert movements[0]["previous_stock"] == 10
        assert movements[0]["new_stock"] == 4
        assert movements[0]["reason"] == "Merma"

    def test_filters(self, client, employee_headers, make_product):
        make_product(name="Concha", stock=2)
        make_product(name="Cuernito", stock=50)
        make_product(name="Pastel tres leches", product_type=ProductType.CAKE_BAR, category="CAKE_BAR")

        low = client.get("/api/products/?low_stock=true", headers=employee_headers).json()
        assert [p["name"] for p in low["products"]] == ["Concha"]

        cake_bar = client.get("/api/products/?type=CAKE_BAR", headers=employee_headers).json()
        assert cake_bar["total"] == 1

        search = client.get("/api/products/?search=cuern", headers=employee_headers).json()
        assert [p["name"] for p in search["products"]] == ["Cuernito"]

    def test_soft_delete(self, client, admin_headers, make_product):
        product = make_product()

        response = client.delete(f"/api/products/{product.id}", headers=admin_headers)
        assert response.status_code == 200
        assert response.json() == {"message": "Producto desactivado exitosamente"}

        detail = client.get(f"/api/products/{product.id}", headers=admin_headers).json()
        assert detail["is_active"] is False

    def test_inventory_dashboard(self, client, admin_headers, make_product):
        make_product(name="Concha", price="10.00", stock=3)
        make_product(name="Cuernito", price="5.00", stock=20)

        body = client.get("/api/products/inventory/dashboard", headers=admin_headers).json()
        assert body["active_products"] == 2
        assert body["low_stock_count"] == 1
        assert Decimal(str(body["inventory_value"])) == Decimal("130.00")


class TestLowStockTask:

    def test_reports_low_stock_products(self, db_session, make_product):
        from app.modules.products.tasks import check_low_stock

        low = make_product(name="Concha", stock=2)
        make_product(name="Cuernito", stock=30)
        make_product(name="Decorado", stock=0, is_service=True)

        result = check_low_stock()
        assert result == {"status": "completed", "low_stock": [str(low.id)]}


def _csv_rows(response):
    return list(csv.DictReader(io.StringIO(response.text)))


def _upload(client, headers, content, filename="inventario.csv"):
    if isinstance(content, str):
        content = content.encode("utf-8")
    return client.post(
        "/api/products/inventory/import",
        headers=headers,
        files={"file": (filename, content, "text/csv")}
    )


class TestInventoryCSV:
    """Exportación e importación del catálogo"""

    def test_export_catalog(self, client, admin_headers, make_product):
        make_product(name="Concha", stock=12)
        make_product(name="Entrega", price="60.00", stock=0, min_stock=0,
                     product_type=ProductType.SERVICE, category="SERVICIOS", is_service=True)

        response = client.get("/api/products/inventory/export", headers=admin_headers)
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "attachment; filename=inventario_completo_" in response.headers["content-disposition"]

        rows = _csv_rows(response)
        assert [r["Nombre"] for r in rows] == ["Concha", "Entrega"]
        assert rows[0]["Stock"] == "12"
        assert rows[0]["Tipo"] == "VITRINA"
        assert rows[0]["Activo"] == "SÍ"
        assert rows[1]["Es Servicio"] == "SÍ"
        assert rows[1]["Código de Barras"] == ""

    def test_export_by_type(self, client, admin_headers, make_product):
        make_product(name="Concha")
        make_product(name="Pastel tres leches", product_type=ProductType.CAKE_BAR, category="CAKE_BAR")

        response = client.get("/api/products/inventory/export?type=CAKE_BAR", headers=admin_headers)
        assert "inventario_cake_bar_" in response.headers["content-disposition"]
        assert [r["Nombre"] for r in _csv_rows(response)] == ["Pastel tres leches"]

    def test_import_creates_products(self, client, db_session, manager_headers):
        response = _upload(client, manager_headers, (
            "Nombre,Precio,Stock,Categoría,Activo\n"
            "Cuernito,12.50,40,PAN_DULCE,SÍ\n"
            "Bolillo,3.00,0,PAN_SAL,NO\n"
        ))
        assert response.status_code == 200
        assert response.json() == {
            "message": "Importación completada. Creados: 2, Actualizados: 0, Errores: 0",
            "results": {"created": 2, "updated": 0, "errors": []}
        }

        cuernito = db_session.query(Product).filter(Product.name == "Cuernito").one()
        assert cuernito.stock == 40
        assert cuernito.price == Decimal("12.50")
        assert cuernito.type == ProductType.VITRINA
        assert cuernito.is_active is True

        bolillo = db_session.query(Product).filter(Product.name == "Bolillo").one()
        assert bolillo.is_active is False

        movement = db_session.query(StockMovement).filter(StockMovement.product_id == cuernito.id).one()
        assert movement.reason == "Stock inicial"
        assert movement.quantity == 40

    def test_import_updates_by_id(self, client, admin_headers, make_product):
        product = make_product(name="Concha", price="25.00", stock=10)

        response = _upload(client, admin_headers, (
            "ID,Nombre,Precio,Stock\n"
            f"{product.id},Concha grande,30.00,15\n"
        ))
        assert response.json()["results"] == {"created": 0, "updated": 1, "errors": []}

        detail = client.get(f"/api/products/{product.id}", headers=admin_headers).json()
        assert detail["name"] == "Concha grande"
        assert Decimal(str(detail["price"])) == Decimal("30.00")
        assert detail["stock"] == 15
        assert detail["category"] == "PAN_DULCE"

        movements = client.get(f"/api/products/{product.id}/movements", headers=admin_headers).json()
        assert len(movements) == 1
        assert movements[0]["type"] == StockMovementType.ADJUSTMENT.value
        assert movements[0]["quantity"] == 5
        assert movements[0]["reason"] == "Importación de inventario"

    def test_import_matches_barcode(self, client, admin_headers):
        client.post("/api/products/", headers=admin_headers, json={
            "name": "Galleta", "price": "8.00", "stock": 30, "barcode": "7501234567890"
        })

        response = _upload(client, admin_headers, (
            "Nombre,Precio,Stock,Código de Barras\n"
            "Galleta de nuez,9.00,30,7501234567890\n"
        ))
        assert response.json()["results"]["updated"] == 1

        products = client.get("/api/products/", headers=admin_headers).json()
        assert products["total"] == 1
        assert products["products"][0]["name"] == "Galleta de nuez"

    def test_row_errors_do_not_stop_import(self, client, db_session, admin_headers):
        response = _upload(client, admin_headers, (
            "Nombre,Precio,Stock,Tipo\n"
            ",10.00,5,\n"
            "Dona,abc,5,\n"
            "Pay de queso,20.00,5,OTRO\n"
            "Polvorón,4.00,-1,\n"
            "Cuernito,12.50,40,VITRINA\n"
        ))
        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Importación completada. Creados: 1, Actualizados: 0, Errores: 4"
        assert body["results"]["errors"] == [
            "Fila 2: Nombre es obligatorio",
            "Fila 3: Precio debe ser un número mayor a 0",
            "Fila 4: Tipo debe ser VITRINA, CAKE_BAR o SERVICE",
            "Fila 5: Stock debe ser un número entero mayor o igual a 0",
        ]
        assert db_session.query(Product).count() == 1

    def test_export_can_be_reimported(self, client, admin_headers, make_product):
        product = make_product(name="Concha", stock=10)

        exported = client.get("/api/products/inventory/export", headers=admin_headers)
        response = _upload(client, admin_headers, exported.content)
        assert response.json()["results"] == {"created": 0, "updated": 1, "errors": []}

        # Sin cambio de stock no hay movimiento
        movements = client.get(f"/api/products/{product.id}/movements", headers=admin_headers).json()
        assert movements == []

    def test_template_imports_cleanly(self, client, admin_headers):
        template = client.get("/api/products/inventory/import-template", headers=admin_headers)
        assert template.status_code == 200
        assert "plantilla_inventario.csv" in template.headers["content-disposition"]
        assert len(_csv_rows(template)) == 2

        response = _upload(client, admin_headers, template.content)
        assert response.json()["results"] == {"created": 2, "updated": 0, "errors": []}

    def test_empty_file(self, client, admin_headers):
        response = _upload(client, admin_headers, "Nombre,Precio,Stock\n")
        assert response.status_code == 400
        assert response.json() == {"error": "El archivo está vacío"}

    def test_rejects_non_utf8(self, client, admin_headers):
        response = _upload(client, admin_headers, "Nombre,Precio,Stock\nPanqué,10,5\n".encode("latin-1"))
        assert response.status_code == 400
        assert response.json() == {"error": "El archivo debe ser un CSV codificado en UTF-8"}

    def test_rejects_other_extensions(self, client, admin_headers):
        response = _upload(client, admin_headers, "Nombre\n", filename="inventario.xlsx")
        assert response.status_code == 400
        assert response.json() == {"error": "El archivo debe ser CSV (.csv)"}

    def test_employees_have_no_access(self, client, employee_headers):
        assert client.get("/api/products/inventory/export", headers=employee_headers).status_code == 403
        assert _upload(client, employee_headers, "Nombre,Precio,Stock\nDona,12,5\n").status_code == 403

"""
Tests del módulo de categorías
"""


class TestCategories:
    """CRUD de categorías y sus restricciones"""

    def test_create_and_list(self, client, manager_headers, employee_headers):
        response = client.post("/api/categories/", headers=manager_headers, json={
            "name": "DECORACIONES_TORTA",
            "product_type": "CAKE_BAR"
        })
        assert response.status_code == 201
        assert response.json()["product_type"] == "CAKE_BAR"

        client.post("/api/categories/", headers=manager_headers, json={"name": "PAN_DULCE"})

        listing = client.get("/api/categories/?type=CAKE_BAR", headers=employee_headers)
        assert listing.status_code == 200
        assert listing.json()["total"] == 1
        assert listing.json()["categories"][0]["name"] == "DECORACIONES_TORTA"

    def test_duplicate_name_conflict(self, client, admin_headers):
        client.post("/api/categories/", headers=admin_headers, json={"name": "BEBIDAS"})
        response = client.post("/api/categories/", headers=admin_headers, json={"name": "BEBIDAS"})
        assert response.status_code == 409
        assert response.json()["error"] == "Ya existe una categoría con el nombre 'BEBIDAS'"

    def test_employee_cannot_create(self, client, employee_headers):
        response = client.post("/api/categories/", headers=employee_headers, json={"name": "GALLETAS"})
        assert response.status_code == 403

    def test_category_in_use_cannot_be_deleted(self, client, admin_headers):
        category = client.post("/api/categories/", headers=admin_headers, json={"name": "PAN_SALADO"}).json()
        client.post("/api/products/", headers=admin_headers, json={
            "name": "Bolillo",
            "price": "3.50",
            "stock": 40,
            "category_id": category["id"]
        })

        response = client.delete(f"/api/categories/{category['id']}", headers=admin_headers)
        assert response.status_code == 409
        assert response.json()["error"] == "No se puede eliminar: 1 producto(s) usan esta categoría"

    def test_delete_unused_category(self, client, admin_headers):
        category = client.post("/api/categories/", headers=admin_headers, json={"name": "TEMPORADA"}).json()

        response = client.delete(f"/api/categories/{category['id']}", headers=admin_headers)
        assert response.status_code == 204

        missing = client.get(f"/api/categories/{category['id']}", headers=admin_headers)
        assert missing.status_code == 404
        assert missing.json() == {"error": "Categoría no encontrada"}

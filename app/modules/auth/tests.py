"""
Tests del módulo de autenticación y administración de usuarios
"""
TEST_PASSWORD = "secreto123"


class TestLogin:
    """Login y token de acceso"""

    def test_login_returns_token_and_user(self, client, admin_user):
        response = client.post("/api/auth/login", json={
            "email": "admin@pasteleria.com",
            "password": TEST_PASSWORD
        })
        assert response.status_code == 200
        body = response.json()
        assert body["token_type"] == "bearer"
        assert body["access_token"]
        assert body["user"]["role"] == "ADMIN"

    def test_login_wrong_password(self, client, admin_user):
        response = client.post("/api/auth/login", json={
            "email": "admin@pasteleria.com",
            "password": "incorrecta"
        })
        assert response.status_code == 401
        assert response.json() == {"error": "Credenciales incorrectas"}

    def test_token_gives_access_to_me(self, client, employee_user):
        login = client.post("/api/auth/login", json={
            "email": "empleada@pasteleria.com",
            "password": TEST_PASSWORD
        })
        token = login.json()["access_token"]

        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 200
        assert response.json()["email"] == "empleada@pasteleria.com"

    def test_me_without_token(self, client, db_session):
        response = client.get("/api/auth/me")
        assert response.status_code == 401
        assert response.json() == {"error": "No autorizado"}

    def test_inactive_user_token_rejected(self, client, db_session, employee_user, employee_headers):
        employee_user.is_active = False
        db_session.commit()

        response = client.get("/api/auth/me", headers=employee_headers)
        assert response.status_code == 401


class TestUserAdministration:
    """Gestión de usuarios (solo ADMIN)"""

    def test_admin_creates_employee(self, client, admin_headers):
        response = client.post("/api/admin/users/", headers=admin_headers, json={
            "name": "Pedro Panadero",
            "email": "Pedro@Pasteleria.com",
            "password": "horno123",
            "role": "EMPLOYEE"
        })
        assert response.status_code == 201
        assert response.json()["email"] == "pedro@pasteleria.com"

        login = client.post("/api/auth/login", json={
            "email": "pedro@pasteleria.com",
            "password": "horno123"
        })
        assert login.status_code == 200

    def test_duplicate_email_conflict(self, client, admin_headers, employee_user):
        response = client.post("/api/admin/users/", headers=admin_headers, json={
            "name": "Otra Eva",
            "email": "empleada@pasteleria.com",
            "password": "horno123"
        })
        assert response.status_code == 409

    def test_employee_cannot_manage_users(self, client, employee_headers):
        response = client.get("/api/admin/users/", headers=employee_headers)
        assert response.status_code == 403
        assert "error" in response.json()

    def test_admin_cannot_deactivate_self(self, client, admin_user, admin_headers):
        response = client.patch(
            f"/api/admin/users/{admin_user.id}",
            headers=admin_headers,
            json={"is_active": False}
        )
        assert response.status_code == 400
        assert response.json()["error"] == "No puedes desactivar tu propio usuario"

    def test_list_users_filtered_by_role(self, client, admin_headers, employee_user, manager_user):
        response = client.get("/api/admin/users/?role=EMPLOYEE", headers=admin_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 1
        assert body["users"][0]["email"] == "empleada@pasteleria.com"

"""
Fixtures compartidas: base de datos SQLite en memoria, cliente HTTP y
usuarios del personal con sus tokens.
"""
import os

os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["DEBUG"] = "false"

import pytest
from decimal import Decimal
from fastapi.testclient import TestClient

from app.main import app
from app.database.database import Base, engine, SessionLocal, get_db
from app.modules.auth.models import User, UserRole
from app.modules.auth.utils import hash_password, create_access_token
from app.modules.products.models import Product, ProductType

TEST_PASSWORD = "secreto123"


@pytest.fixture
def db_session():
    """Tablas nuevas para cada test"""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _create_user(db_session, name: str, email: str, role: UserRole) -> User:
    user = User(
        name=name,
        email=email,
        password=hash_password(TEST_PASSWORD),
        role=role,
        is_active=True
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


def auth_headers(user: User) -> dict:
    token = create_access_token({"sub": str(user.id), "role": user.role.value})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_user(db_session):
    return _create_user(db_session, "Ana Admin", "admin@pasteleria.com", UserRole.ADMIN)


@pytest.fixture
def manager_user(db_session):
    return _create_user(db_session, "Mario Gerente", "gerente@pasteleria.com", UserRole.MANAGER)


@pytest.fixture
def employee_user(db_session):
    return _create_user(db_session, "Eva Empleada", "empleada@pasteleria.com", UserRole.EMPLOYEE)


@pytest.fixture
def admin_headers(admin_user):
    return auth_headers(admin_user)


@pytest.fixture
def manager_headers(manager_user):
    return auth_headers(manager_user)


@pytest.fixture
def employee_headers(employee_user):
    return auth_headers(employee_user)


@pytest.fixture
def make_product(db_session):
    """Fábrica de productos guardados directamente en base de datos"""
    def _make(name="Concha", price="25.00", stock=10, min_stock=5,
              product_type=ProductType.VITRINA, category="PAN_DULCE", is_service=False):
        product = Product(
            name=name,
            price=Decimal(price),
            stock=stock,
            min_stock=min_stock,
            type=product_type,
            category=category,
            is_service=is_service,
            is_active=True
        )
        db_session.add(product)
        db_session.commit()
        db_session.refresh(product)
        return product
    return _make

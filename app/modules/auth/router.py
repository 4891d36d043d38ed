from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from app.database.database import get_db
from app.modules.auth.dependencies import get_current_user, require_admin
from app.modules.auth.models import User, UserRole
from app.modules.auth.schemas import (
    UserLogin, UserCreate, UserUpdate, UserOut, UserList, TokenResponse
)
from app.modules.auth.service import AuthService

auth_router = APIRouter(prefix="/auth", tags=["Auth"])


@auth_router.post("/login", response_model=TokenResponse)
def login(credentials: UserLogin, db: Session = Depends(get_db)):
    """
    Login de usuario. Retorna token de acceso (Bearer).
    """
    auth_service = AuthService(db)
    return auth_service.login(credentials.email, credentials.password)


@auth_router.get("/me", response_model=UserOut)
def get_current_user_info(current_user: User = Depends(get_current_user)):
    """
    Obtener información del usuario actual.
    """
    return current_user


@auth_router.post("/logout", response_model=dict)
def logout():
    """
    Logout (del lado cliente, descartar token).
    """
    return {"message": "Logout exitoso"}


# ===== ADMIN USERS =====

users_router = APIRouter(prefix="/admin/users", tags=["Users"])


@users_router.get("/", response_model=UserList)
def list_users(
    role: Optional[UserRole] = Query(None, description="Filtrar por rol"),
    active: Optional[bool] = Query(None, description="Filtrar por estado"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    return AuthService(db).get_users(role=role, is_active=active)


@users_router.post("/", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(
    data: UserCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    """Crear usuario del personal (solo ADMIN)."""
    return AuthService(db).create_user(data)


@users_router.get("/{user_id}", response_model=UserOut)
def get_user(
    user_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    return AuthService(db).get_user(user_id)


@users_router.patch("/{user_id}", response_model=UserOut)
def update_user(
    user_id: UUID,
    data: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    return AuthService(db).update_user(user_id, data, current_user)


@users_router.delete("/{user_id}", response_model=UserOut)
def deactivate_user(
    user_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    """Desactivar usuario. No se borran sus registros de asistencia."""
    return AuthService(db).deactivate_user(user_id, current_user)

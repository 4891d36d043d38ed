"""
Dependencias de autenticación para FastAPI.
"""
from typing import Optional
from uuid import UUID
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
import jwt

from app.database.database import get_db
from app.modules.auth.models import User, UserRole
from app.core.config import settings

# Security scheme
security = HTTPBearer(auto_error=False)

class AuthDependencies:
    """Dependencias de autenticación reutilizables."""

    @staticmethod
    def get_current_user(
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
        db: Session = Depends(get_db)
    ) -> User:
        """
        Obtener usuario actual desde token JWT.
        """
        credentials_exception = HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No autorizado",
            headers={"WWW-Authenticate": "Bearer"},
        )

        if credentials is None:
            raise credentials_exception

        try:
            payload = jwt.decode(
                credentials.credentials,
                settings.APP_SECRET_STRING,
                algorithms=[settings.ALGORITHM]
            )
            user_id: str = payload.get("sub")
            if user_id is None:
                raise credentials_exception
        except jwt.PyJWTError:
            raise credentials_exception

        user = db.query(User).filter(User.id == _as_uuid(user_id)).first()

        if user is None or not user.is_active:
            raise credentials_exception

        return user

    @staticmethod
    def require_role(allowed_roles: list[str]):
        """
        Dependencia para requerir roles específicos.
        """
        def role_checker(current_user: User = Depends(AuthDependencies.get_current_user)) -> User:
            if current_user.role.value not in allowed_roles:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail=f"Se requiere uno de estos roles: {', '.join(allowed_roles)}"
                )
            return current_user
        return role_checker

    @staticmethod
    def require_admin():
        """Dependencia para requerir rol ADMIN."""
        return AuthDependencies.require_role([UserRole.ADMIN.value])

    @staticmethod
    def require_admin_or_manager():
        """Dependencia para requerir rol ADMIN o MANAGER."""
        return AuthDependencies.require_role([UserRole.ADMIN.value, UserRole.MANAGER.value])


def _as_uuid(value: str) -> UUID:
    try:
        return UUID(str(value))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No autorizado",
            headers={"WWW-Authenticate": "Bearer"},
        )


# Instancias de dependencias
get_current_user = AuthDependencies.get_current_user
require_admin = AuthDependencies.require_admin
require_admin_or_manager = AuthDependencies.require_admin_or_manager

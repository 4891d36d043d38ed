"""
Servicio de autenticación y gestión de usuarios del personal.
"""
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from fastapi import HTTPException, status
from datetime import datetime
from typing import Optional, Dict, Any
from uuid import UUID
import logging

from app.modules.auth.models import User, UserRole
from app.modules.auth.schemas import UserCreate, UserUpdate, UserOut, TokenResponse
from app.modules.auth.utils import hash_password, verify_password, create_access_token, ACCESS_TOKEN_EXPIRE_MINUTES

logger = logging.getLogger(__name__)


class AuthService:
    """Login y administración de usuarios"""

    def __init__(self, db: Session):
        self.db = db

    def login(self, email: str, password: str) -> TokenResponse:
        """
        Login de usuario. Retorna token de acceso con el rol embebido.
        """
        user = self.db.query(User).filter(User.email == email.lower()).first()

        if not user or not verify_password(password, user.password):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Credenciales incorrectas"
            )

        if not user.is_active:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Usuario inactivo"
            )

        user.last_login = datetime.now()
        self.db.commit()
        self.db.refresh(user)

        token_data = {
            "sub": str(user.id),
            "email": user.email,
            "role": user.role.value,
            "name": user.name
        }
        access_token = create_access_token(token_data)
        logger.info(f"Login exitoso de {user.email} ({user.role.value})")

        return TokenResponse(
            access_token=access_token,
            expires_in=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            user=UserOut.model_validate(user)
        )

    def create_user(self, data: UserCreate) -> User:
        """Crear usuario del personal"""
        try:
            email = data.email.lower()
            existing = self.db.query(User).filter(User.email == email).first()
            if existing:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="Ya existe un usuario con ese email"
                )

            user = User(
                name=data.name,
                email=email,
                password=hash_password(data.password),
                role=data.role,
                is_active=True
            )
            self.db.add(user)
            self.db.commit()
            self.db.refresh(user)
            return user

        except HTTPException:
            raise
        except IntegrityError:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Error de integridad en base de datos"
            )
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error interno del servidor: {str(e)}"
            )

    def get_users(self, role: Optional[UserRole] = None, is_active: Optional[bool] = None) -> Dict[str, Any]:
        """Listar usuarios con filtros opcionales"""
        query = self.db.query(User)
        if role:
            query = query.filter(User.role == role)
        if is_active is not None:
            query = query.filter(User.is_active == is_active)

        users = query.order_by(User.name).all()
        return {"users": users, "total": len(users)}

    def get_user(self, user_id: UUID) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Usuario no encontrado"
            )
        return user

    def update_user(self, user_id: UUID, data: UserUpdate, current_user: User) -> User:
        """Actualizar usuario (nombre, email, rol, estado o contraseña)"""
        try:
            user = self.get_user(user_id)
            update_dict = data.model_dump(exclude_unset=True)

            if update_dict.get("is_active") is False and user.id == current_user.id:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="No puedes desactivar tu propio usuario"
                )

            if "email" in update_dict and update_dict["email"]:
                email = update_dict["email"].lower()
                duplicate = self.db.query(User).filter(User.email == email, User.id != user_id).first()
                if duplicate:
                    raise HTTPException(
                        status_code=status.HTTP_409_CONFLICT,
                        detail="Ya existe un usuario con ese email"
                    )
                update_dict["email"] = email

            if update_dict.get("password"):
                update_dict["password"] = hash_password(update_dict["password"])
            else:
                update_dict.pop("password", None)

            for field, value in update_dict.items():
                setattr(user, field, value)

            self.db.commit()
            self.db.refresh(user)
            return user

        except HTTPException:
            raise
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error actualizando usuario: {str(e)}"
            )

    def deactivate_user(self, user_id: UUID, current_user: User) -> User:
        """Desactivar usuario (soft delete)"""
        return self.update_user(user_id, UserUpdate(is_active=False), current_user)

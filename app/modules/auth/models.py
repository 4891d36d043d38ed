from sqlalchemy import Column, String, Boolean, DateTime, Enum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from uuid import uuid4
import enum

from app.database.database import Base
from app.common.mixins import TimestampMixin


class UserRole(str, enum.Enum):
    """Roles del personal de la pastelería"""
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    EMPLOYEE = "EMPLOYEE"


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    name = Column(String(150), nullable=False)
    email = Column(String(150), unique=True, nullable=False, index=True)
    password = Column(String, nullable=False)
    role = Column(Enum(UserRole), nullable=False, default=UserRole.EMPLOYEE, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    last_login = Column(DateTime, nullable=True)

    # Relationships
    work_sessions = relationship("WorkSession", back_populates="user", cascade="all, delete-orphan")
    schedules = relationship(
        "WeeklySchedule",
        back_populates="user",
        foreign_keys="WeeklySchedule.user_id",
        cascade="all, delete-orphan"
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_admin_or_manager(self) -> bool:
        return self.role in (UserRole.ADMIN, UserRole.MANAGER)

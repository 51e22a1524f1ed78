"""User accounts that own subscriptions."""

from __future__ import annotations

import enum
import uuid

from sqlalchemy import Boolean, Column, DateTime, Enum, String, func
from sqlalchemy.orm import relationship

from ..database import Base
from ..db_types import GUID, enum_values


class UserRole(str, enum.Enum):
    """Roles recognised by the authorization layer."""

    CUSTOMER = "customer"
    ADMIN = "admin"


class User(Base):
    """A customer or administrator account."""

    __tablename__ = "users"

    id = Column("user_id", GUID(), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    phone = Column(String(20), nullable=True)
    role = Column(
        Enum(UserRole, name="user_role_enum", values_callable=enum_values),
        nullable=False,
        default=UserRole.CUSTOMER,
    )
    is_active = Column(Boolean, nullable=False, default=True, server_default="1")
    password_hash = Column(String(255), nullable=False)
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    subscriptions = relationship("Subscription", back_populates="user")

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

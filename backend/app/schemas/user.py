"""Schemas describing user accounts."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from ..models.user import UserRole
from .common import PaginatedResponse


class UserRead(BaseModel):
    """Public representation of a user account."""

    id: str
    name: str
    email: str
    phone: Optional[str] = None
    role: UserRole
    is_active: bool
    last_login_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserListResponse(PaginatedResponse[UserRead]):
    """Paginated listing of users."""

    pass


class UserStatusUpdate(BaseModel):
    """Activate or deactivate a user account."""

    is_active: bool

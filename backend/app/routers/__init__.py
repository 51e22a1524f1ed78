"""Routers package."""

from .admin import router as admin_router
from .auth import router as auth_router
from .services import router as services_router
from .subscriptions import router as subscriptions_router

__all__ = [
    "admin_router",
    "auth_router",
    "services_router",
    "subscriptions_router",
]

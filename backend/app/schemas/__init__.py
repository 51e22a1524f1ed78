"""Expose Pydantic schemas for convenient imports."""

from .auth import LoginRequest, RegisterRequest, TokenResponse
from .common import ErrorDetail, PaginatedResponse
from .payment import PaymentCreate, PaymentRead
from .service import (
    CategoryListResponse,
    CategoryPriceRange,
    CategorySummary,
    ServiceAvailabilityRead,
    ServiceCreate,
    ServiceFeature,
    ServiceListResponse,
    ServiceRead,
    ServiceSummary,
    ServiceUpdate,
)
from .subscription import (
    Address,
    AddressUpdate,
    AdminStatusUpdate,
    InstallationRead,
    InstallationUpdate,
    OrderLine,
    Pricing,
    PriceSnapshot,
    SubscriptionCreate,
    SubscriptionItemRead,
    SubscriptionListResponse,
    SubscriptionNoteRead,
    SubscriptionRead,
    SubscriptionUpdate,
    Technician,
    TransitionRequest,
)
from .user import UserListResponse, UserRead, UserStatusUpdate

__all__ = [
    "Address",
    "AddressUpdate",
    "AdminStatusUpdate",
    "CategoryListResponse",
    "CategoryPriceRange",
    "CategorySummary",
    "ErrorDetail",
    "InstallationRead",
    "InstallationUpdate",
    "LoginRequest",
    "OrderLine",
    "PaginatedResponse",
    "PaymentCreate",
    "PaymentRead",
    "Pricing",
    "PriceSnapshot",
    "RegisterRequest",
    "ServiceAvailabilityRead",
    "ServiceCreate",
    "ServiceFeature",
    "ServiceListResponse",
    "ServiceRead",
    "ServiceSummary",
    "ServiceUpdate",
    "SubscriptionCreate",
    "SubscriptionItemRead",
    "SubscriptionListResponse",
    "SubscriptionNoteRead",
    "SubscriptionRead",
    "SubscriptionUpdate",
    "Technician",
    "TokenResponse",
    "TransitionRequest",
    "UserListResponse",
    "UserRead",
    "UserStatusUpdate",
]

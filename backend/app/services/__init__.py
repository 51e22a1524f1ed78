"""Service layer encapsulating business logic for API routers."""

from .availability import ServiceAvailabilityGuard
from .billing_schedule import add_months, next_billing_date
from .catalog import CatalogService, slugify
from .errors import (
    CapacityError,
    ConflictError,
    NotFoundError,
    PermissionDenied,
    PersistenceError,
    SubscriptionError,
    ValidationError,
)
from .pricing import PricedLine, PricingBreakdown, calculate_pricing
from .subscriptions import SubscriptionService
from .users import UserService

__all__ = [
    "CapacityError",
    "CatalogService",
    "ConflictError",
    "NotFoundError",
    "PermissionDenied",
    "PersistenceError",
    "PricedLine",
    "PricingBreakdown",
    "ServiceAvailabilityGuard",
    "SubscriptionError",
    "SubscriptionService",
    "UserService",
    "ValidationError",
    "add_months",
    "calculate_pricing",
    "next_billing_date",
    "slugify",
]

"""Expose SQLAlchemy models for convenient imports."""

from .payment import (
    PaymentMethod,
    PaymentRecordStatus,
    PaymentStatus,
    SubscriptionPayment,
)
from .service import BillingCycle, Currency, Service, ServiceCategory
from .subscription import (
    InstallationStatus,
    Subscription,
    SubscriptionItem,
    SubscriptionNote,
    SubscriptionSource,
    SubscriptionStatus,
)
from .user import User, UserRole

__all__ = [
    "BillingCycle",
    "Currency",
    "InstallationStatus",
    "PaymentMethod",
    "PaymentRecordStatus",
    "PaymentStatus",
    "Service",
    "ServiceCategory",
    "Subscription",
    "SubscriptionItem",
    "SubscriptionNote",
    "SubscriptionPayment",
    "SubscriptionSource",
    "SubscriptionStatus",
    "User",
    "UserRole",
]

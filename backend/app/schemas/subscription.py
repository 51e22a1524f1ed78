"""Schemas for subscription ordering, lifecycle actions and read models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..models.payment import PaymentStatus
from ..models.service import BillingCycle, Currency
from ..models.subscription import (
    InstallationStatus,
    SubscriptionSource,
    SubscriptionStatus,
)
from .common import PaginatedResponse
from .payment import PaymentRead
from .service import ServiceSummary

PINCODE_PATTERN = r"^[0-9]{6}$"


class Address(BaseModel):
    """Delivery or service address."""

    street: str = Field(..., min_length=1, max_length=200)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    pincode: str = Field(..., pattern=PINCODE_PATTERN, description="6-digit postal code")
    landmark: Optional[str] = Field(default=None, max_length=200)

    model_config = ConfigDict(str_strip_whitespace=True, from_attributes=True)


class AddressUpdate(BaseModel):
    """Partial address change merged into the stored address."""

    street: Optional[str] = Field(default=None, min_length=1, max_length=200)
    city: Optional[str] = Field(default=None, min_length=1, max_length=100)
    state: Optional[str] = Field(default=None, min_length=1, max_length=100)
    pincode: Optional[str] = Field(default=None, pattern=PINCODE_PATTERN)
    landmark: Optional[str] = Field(default=None, max_length=200)

    model_config = ConfigDict(str_strip_whitespace=True)


class Technician(BaseModel):
    name: Optional[str] = Field(default=None, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=20)
    email: Optional[str] = Field(default=None, max_length=255)


class InstallationUpdate(BaseModel):
    """Installation scheduling details editable after ordering."""

    scheduled_at: Optional[datetime] = None
    status: Optional[InstallationStatus] = None
    technician: Optional[Technician] = None
    notes: Optional[str] = Field(default=None, max_length=500)


class InstallationRead(BaseModel):
    is_required: bool
    scheduled_at: Optional[datetime] = None
    status: InstallationStatus
    technician: Technician
    notes: Optional[str] = None


class OrderLine(BaseModel):
    """One requested service in a subscription order."""

    service_id: int = Field(..., ge=1)
    quantity: int = Field(default=1, ge=1)
    customizations: dict[str, str] = Field(
        default_factory=dict,
        description="Customer choices for the service, keyed by option name",
    )


class SubscriptionCreate(BaseModel):
    """Payload required to order a new subscription."""

    services: list[OrderLine] = Field(..., min_length=1)
    plan_name: Optional[str] = Field(default=None, max_length=100)
    billing_cycle: BillingCycle = BillingCycle.MONTHLY
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    address: Address
    source: SubscriptionSource = SubscriptionSource.WEB
    referral_code: Optional[str] = Field(default=None, max_length=50)
    promo_code: Optional[str] = Field(default=None, max_length=50)
    tags: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _end_after_start(self) -> "SubscriptionCreate":
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not be earlier than start_date")
        return self


class SubscriptionUpdate(BaseModel):
    """Changes a customer may apply while the subscription is pending or active."""

    address: Optional[AddressUpdate] = None
    installation: Optional[InstallationUpdate] = None


class TransitionRequest(BaseModel):
    """Optional reason recorded with cancel and pause actions."""

    reason: Optional[str] = Field(default=None, max_length=500)

    model_config = ConfigDict(str_strip_whitespace=True)


class AdminStatusUpdate(BaseModel):
    """Administrative status override."""

    status: SubscriptionStatus
    reason: Optional[str] = Field(default=None, max_length=500)

    model_config = ConfigDict(str_strip_whitespace=True)


class PriceSnapshot(BaseModel):
    amount: Decimal
    currency: Currency
    billing_cycle: BillingCycle


class SubscriptionItemRead(BaseModel):
    service_id: int
    quantity: int
    customizations: dict[str, str] = Field(default_factory=dict)
    price_at_subscription: PriceSnapshot
    service: Optional[ServiceSummary] = None

    model_config = ConfigDict(from_attributes=True)


class Pricing(BaseModel):
    subtotal: Decimal
    taxes: Decimal
    discounts: Decimal
    total: Decimal
    currency: Currency


class SubscriptionNoteRead(BaseModel):
    created_at: datetime
    author: Optional[str] = None
    message: str

    model_config = ConfigDict(from_attributes=True)


class SubscriptionRead(BaseModel):
    """Representation of a subscription with its history."""

    id: str
    user_id: str
    plan_name: Optional[str] = None
    items: list[SubscriptionItemRead]
    pricing: Pricing
    billing_cycle: BillingCycle
    status: SubscriptionStatus
    payment_status: PaymentStatus
    start_date: date
    end_date: Optional[date] = None
    next_billing_date: Optional[date] = None
    last_payment_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    paused_at: Optional[datetime] = None
    installation: InstallationRead
    address: Address
    payments: list[PaymentRead]
    notes: list[SubscriptionNoteRead]
    source: SubscriptionSource
    referral_code: Optional[str] = None
    promo_code: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    duration_in_days: Optional[int] = None
    days_remaining: Optional[int] = None
    total_paid: Decimal
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SubscriptionListResponse(PaginatedResponse[SubscriptionRead]):
    """Paginated listing of subscriptions."""

    pass

"""Schemas for the service catalog."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models.service import BillingCycle, Currency, ServiceCategory
from .common import PaginatedResponse


class ServiceFeature(BaseModel):
    """One marketing feature listed for a service."""

    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=300)
    included: bool = True


class ServiceBase(BaseModel):
    """Fields shared by create payloads and read models."""

    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=500)
    category: ServiceCategory
    subcategory: Optional[str] = Field(default=None, max_length=100)
    price_amount: Decimal = Field(..., ge=0)
    currency: Currency = Currency.INR
    billing_cycle: BillingCycle = BillingCycle.MONTHLY
    features: list[ServiceFeature] = Field(default_factory=list)
    specifications: dict[str, str] = Field(
        default_factory=dict, description="Free-form technical details keyed by label"
    )
    is_active: bool = True
    regions: list[str] = Field(default_factory=list)
    max_subscriptions: Optional[int] = Field(default=None, ge=0)
    max_quantity_per_user: int = Field(default=1, ge=1)
    min_subscription_period: int = Field(default=1, ge=1)
    max_online_order_value: Optional[Decimal] = Field(default=None, ge=0)
    requires_quote: bool = False
    tags: list[str] = Field(default_factory=list)

    @field_validator("tags")
    @classmethod
    def _normalize_tags(cls, value: list[str]) -> list[str]:
        return [tag.strip().lower() for tag in value if tag and tag.strip()]


class ServiceCreate(ServiceBase):
    """Payload used by administrators to add a service to the catalog."""

    pass


class ServiceUpdate(BaseModel):
    """Partial update of a catalog entry."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, min_length=1, max_length=500)
    category: Optional[ServiceCategory] = None
    subcategory: Optional[str] = Field(default=None, max_length=100)
    price_amount: Optional[Decimal] = Field(default=None, ge=0)
    currency: Optional[Currency] = None
    billing_cycle: Optional[BillingCycle] = None
    features: Optional[list[ServiceFeature]] = None
    specifications: Optional[dict[str, str]] = None
    is_active: Optional[bool] = None
    regions: Optional[list[str]] = None
    max_subscriptions: Optional[int] = Field(default=None, ge=0)
    max_quantity_per_user: Optional[int] = Field(default=None, ge=1)
    min_subscription_period: Optional[int] = Field(default=None, ge=1)
    max_online_order_value: Optional[Decimal] = Field(default=None, ge=0)
    requires_quote: Optional[bool] = None
    tags: Optional[list[str]] = None

    @field_validator("tags")
    @classmethod
    def _normalize_tags(cls, value: Optional[list[str]]) -> Optional[list[str]]:
        if value is None:
            return None
        return [tag.strip().lower() for tag in value if tag and tag.strip()]


class ServiceRead(ServiceBase):
    """Representation of a catalog entry."""

    id: int
    slug: str
    current_subscriptions: int
    is_available: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ServiceSummary(BaseModel):
    """Minimal service details embedded in subscription line items."""

    id: int
    name: str
    category: ServiceCategory
    price_amount: Decimal
    currency: Currency
    billing_cycle: BillingCycle

    model_config = ConfigDict(from_attributes=True)


class ServiceListResponse(PaginatedResponse[ServiceRead]):
    """Paginated listing of catalog entries."""

    pass


class ServiceAvailabilityRead(BaseModel):
    """Availability snapshot for a single service."""

    is_available: bool
    is_active: bool
    current_subscriptions: int
    max_subscriptions: Optional[int] = None
    regions: list[str] = Field(default_factory=list)
    max_online_order_value: Optional[Decimal] = None


class CategoryPriceRange(BaseModel):
    min: int
    max: int
    average: int


class CategorySummary(BaseModel):
    """Active-service count and rounded price range for one category."""

    name: ServiceCategory
    count: int
    price_range: CategoryPriceRange


class CategoryListResponse(BaseModel):
    categories: list[CategorySummary] = Field(default_factory=list)

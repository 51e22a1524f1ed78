"""Catalog of services that customers can subscribe to."""

from __future__ import annotations

import enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    func,
)

from ..database import Base
from ..db_types import GUID, enum_values, json_column_type


class ServiceCategory(str, enum.Enum):
    """Closed set of catalog categories."""

    CABLE = "Cable"
    SILVER = "Silver"
    SNACKS = "Snacks"
    INTERNET = "Internet"
    GAMING = "Gaming"
    DESIGN = "Design"
    DEVELOPMENT = "Development"


class BillingCycle(str, enum.Enum):
    """Recurrence periods supported for services and subscriptions."""

    ONE_TIME = "one-time"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class Currency(str, enum.Enum):
    INR = "INR"
    USD = "USD"


CURRENCY_ENUM = Enum(Currency, name="currency_enum", values_callable=enum_values)
BILLING_CYCLE_ENUM = Enum(BillingCycle, name="billing_cycle_enum", values_callable=enum_values)


class Service(Base):
    """A purchasable service with price, availability and ordering constraints."""

    __tablename__ = "services"
    __table_args__ = (
        CheckConstraint("price_amount >= 0", name="ck_services_price_non_negative"),
        CheckConstraint(
            "current_subscriptions >= 0",
            name="ck_services_current_subscriptions_non_negative",
        ),
        CheckConstraint(
            "max_subscriptions IS NULL OR current_subscriptions <= max_subscriptions",
            name="ck_services_current_within_capacity",
        ),
        CheckConstraint(
            "max_quantity_per_user >= 1",
            name="ck_services_max_quantity_positive",
        ),
        CheckConstraint(
            "min_subscription_period >= 1",
            name="ck_services_min_period_positive",
        ),
    )

    id = Column("service_id", Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    description = Column(String(500), nullable=False)
    category = Column(
        Enum(ServiceCategory, name="service_category_enum", values_callable=enum_values),
        nullable=False,
    )
    subcategory = Column(String(100), nullable=True)
    slug = Column(String(120), nullable=False, unique=True)

    price_amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(CURRENCY_ENUM, nullable=False, default=Currency.INR)
    billing_cycle = Column(BILLING_CYCLE_ENUM, nullable=False, default=BillingCycle.MONTHLY)

    features = Column(json_column_type(), nullable=False, default=list)
    specifications = Column(json_column_type(), nullable=False, default=dict)

    is_active = Column(Boolean, nullable=False, default=True, server_default="1")
    regions = Column(json_column_type(), nullable=False, default=list)
    max_subscriptions = Column(Integer, nullable=True)
    current_subscriptions = Column(Integer, nullable=False, default=0, server_default="0")

    max_quantity_per_user = Column(Integer, nullable=False, default=1, server_default="1")
    min_subscription_period = Column(Integer, nullable=False, default=1, server_default="1")
    max_online_order_value = Column(Numeric(12, 2), nullable=True)
    requires_quote = Column(Boolean, nullable=False, default=False, server_default="0")

    tags = Column(json_column_type(), nullable=False, default=list)

    created_by = Column(GUID(), ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    last_modified_by = Column(
        GUID(), ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    @property
    def is_available(self) -> bool:
        """Active and still below its subscription cap."""

        if not self.is_active:
            return False
        if self.max_subscriptions is not None and (
            (self.current_subscriptions or 0) >= self.max_subscriptions
        ):
            return False
        return True


Index("services_category_active_idx", Service.category, Service.is_active)
Index("services_price_idx", Service.price_amount)

"""Model definitions for customer subscriptions."""

from __future__ import annotations

import enum
import uuid
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import relationship

from ..database import Base
from ..db_types import GUID, enum_values, json_column_type
from .payment import PaymentRecordStatus, PaymentStatus
from .service import BILLING_CYCLE_ENUM, CURRENCY_ENUM, BillingCycle, Currency


class SubscriptionStatus(str, enum.Enum):
    """Lifecycle status values aligned with the database enum."""

    PENDING = "pending"
    ACTIVE = "active"
    PAUSED = "paused"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    FAILED = "failed"


class InstallationStatus(str, enum.Enum):
    NOT_REQUIRED = "not-required"
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    FAILED = "failed"


class SubscriptionSource(str, enum.Enum):
    WEB = "web"
    MOBILE = "mobile"
    ADMIN = "admin"
    API = "api"


class Subscription(Base):
    """A bundle of services ordered by one user, with its billing state."""

    __tablename__ = "subscriptions"
    __table_args__ = (
        CheckConstraint("subtotal >= 0", name="ck_subscriptions_subtotal_non_negative"),
        CheckConstraint("taxes >= 0", name="ck_subscriptions_taxes_non_negative"),
        CheckConstraint("discounts >= 0", name="ck_subscriptions_discounts_non_negative"),
        CheckConstraint("total >= 0", name="ck_subscriptions_total_non_negative"),
    )

    id = Column("subscription_id", GUID(), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        GUID(),
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    )
    plan_name = Column(String(100), nullable=True)

    subtotal = Column(Numeric(12, 2), nullable=False)
    taxes = Column(Numeric(12, 2), nullable=False, default=0)
    discounts = Column(Numeric(12, 2), nullable=False, default=0)
    total = Column(Numeric(12, 2), nullable=False)
    currency = Column(CURRENCY_ENUM, nullable=False, default=Currency.INR)

    billing_cycle = Column(BILLING_CYCLE_ENUM, nullable=False, default=BillingCycle.MONTHLY)
    status = Column(
        Enum(
            SubscriptionStatus,
            name="subscription_status_enum",
            values_callable=enum_values,
        ),
        nullable=False,
        default=SubscriptionStatus.PENDING,
    )
    payment_status = Column(
        Enum(PaymentStatus, name="payment_status_enum", values_callable=enum_values),
        nullable=False,
        default=PaymentStatus.PENDING,
    )

    start_date = Column(Date, nullable=False, default=date.today)
    end_date = Column(Date, nullable=True)
    next_billing_date = Column(Date, nullable=True)
    last_payment_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    paused_at = Column(DateTime(timezone=True), nullable=True)

    installation_required = Column(Boolean, nullable=False, default=False, server_default="0")
    installation_scheduled_at = Column(DateTime(timezone=True), nullable=True)
    installation_status = Column(
        Enum(
            InstallationStatus,
            name="installation_status_enum",
            values_callable=enum_values,
        ),
        nullable=False,
        default=InstallationStatus.NOT_REQUIRED,
    )
    technician_name = Column(String(100), nullable=True)
    technician_phone = Column(String(20), nullable=True)
    technician_email = Column(String(255), nullable=True)
    installation_notes = Column(Text, nullable=True)

    address_street = Column(String(200), nullable=False)
    address_city = Column(String(100), nullable=False)
    address_state = Column(String(100), nullable=False)
    address_pincode = Column(String(6), nullable=False)
    address_landmark = Column(String(200), nullable=True)

    source = Column(
        Enum(SubscriptionSource, name="subscription_source_enum", values_callable=enum_values),
        nullable=False,
        default=SubscriptionSource.WEB,
    )
    referral_code = Column(String(50), nullable=True)
    promo_code = Column(String(50), nullable=True)
    tags = Column(json_column_type(), nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    user = relationship("User", back_populates="subscriptions")
    items = relationship(
        "SubscriptionItem",
        back_populates="subscription",
        cascade="all, delete-orphan",
        order_by="SubscriptionItem.position",
    )
    payments = relationship(
        "SubscriptionPayment",
        back_populates="subscription",
        cascade="all, delete-orphan",
        order_by="SubscriptionPayment.id",
    )
    notes = relationship(
        "SubscriptionNote",
        back_populates="subscription",
        cascade="all, delete-orphan",
        order_by="SubscriptionNote.id",
    )

    @property
    def pricing(self) -> dict:
        return {
            "subtotal": self.subtotal,
            "taxes": self.taxes,
            "discounts": self.discounts,
            "total": self.total,
            "currency": self.currency,
        }

    @property
    def address(self) -> dict:
        return {
            "street": self.address_street,
            "city": self.address_city,
            "state": self.address_state,
            "pincode": self.address_pincode,
            "landmark": self.address_landmark,
        }

    @property
    def installation(self) -> dict:
        return {
            "is_required": bool(self.installation_required),
            "scheduled_at": self.installation_scheduled_at,
            "status": self.installation_status,
            "technician": {
                "name": self.technician_name,
                "phone": self.technician_phone,
                "email": self.technician_email,
            },
            "notes": self.installation_notes,
        }

    @property
    def duration_in_days(self) -> Optional[int]:
        if self.end_date is None or self.start_date is None:
            return None
        return (self.end_date - self.start_date).days

    @property
    def days_remaining(self) -> Optional[int]:
        if self.end_date is None or self.status != SubscriptionStatus.ACTIVE:
            return None
        remaining = (self.end_date - date.today()).days
        return remaining if remaining > 0 else 0

    @property
    def total_paid(self) -> Decimal:
        return sum(
            (
                Decimal(payment.amount)
                for payment in self.payments
                if payment.status == PaymentRecordStatus.SUCCESS
            ),
            Decimal("0"),
        )


class SubscriptionItem(Base):
    """A service line within a subscription with its price snapshot."""

    __tablename__ = "subscription_items"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_subscription_items_quantity_positive"),
        CheckConstraint(
            "price_amount >= 0", name="ck_subscription_items_price_non_negative"
        ),
    )

    id = Column("item_id", Integer, primary_key=True, autoincrement=True)
    subscription_id = Column(
        GUID(),
        ForeignKey("subscriptions.subscription_id", ondelete="CASCADE"),
        nullable=False,
    )
    position = Column(Integer, nullable=False, default=0)
    # Weak reference: services are never deleted, only deactivated.
    service_id = Column(
        Integer,
        ForeignKey("services.service_id", ondelete="RESTRICT"),
        nullable=False,
    )
    quantity = Column(Integer, nullable=False, default=1)
    customizations = Column(json_column_type(), nullable=False, default=dict)
    price_amount = Column(Numeric(12, 2), nullable=False)
    price_currency = Column(CURRENCY_ENUM, nullable=False)
    price_billing_cycle = Column(BILLING_CYCLE_ENUM, nullable=False)

    subscription = relationship("Subscription", back_populates="items")
    service = relationship("Service")

    @property
    def price_at_subscription(self) -> dict:
        return {
            "amount": self.price_amount,
            "currency": self.price_currency,
            "billing_cycle": self.price_billing_cycle,
        }


class SubscriptionNote(Base):
    """Structured audit entry appended by lifecycle transitions."""

    __tablename__ = "subscription_notes"

    id = Column("note_id", Integer, primary_key=True, autoincrement=True)
    subscription_id = Column(
        GUID(),
        ForeignKey("subscriptions.subscription_id", ondelete="CASCADE"),
        nullable=False,
    )
    author = Column(String(255), nullable=True)
    message = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)

    subscription = relationship("Subscription", back_populates="notes")


Index("subscriptions_user_status_idx", Subscription.user_id, Subscription.status)
Index(
    "subscriptions_status_next_billing_idx",
    Subscription.status,
    Subscription.next_billing_date,
)
Index("subscriptions_end_date_idx", Subscription.end_date)
Index("subscription_items_service_idx", SubscriptionItem.service_id)
Index("subscription_items_subscription_idx", SubscriptionItem.subscription_id)
Index("subscription_notes_subscription_idx", SubscriptionNote.subscription_id)

"""SQLAlchemy model definitions for subscription payments."""

from __future__ import annotations

import enum

from sqlalchemy import (
    CheckConstraint,
    Column,
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
from ..db_types import GUID, enum_values
from .service import CURRENCY_ENUM, Currency


class PaymentMethod(str, enum.Enum):
    """Supported payment methods."""

    CARD = "card"
    UPI = "upi"
    NETBANKING = "netbanking"
    WALLET = "wallet"
    CASH = "cash"
    CHEQUE = "cheque"


class PaymentStatus(str, enum.Enum):
    """Aggregate payment state of a subscription."""

    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"
    PARTIAL = "partial"


class PaymentRecordStatus(str, enum.Enum):
    """Outcome of a single payment attempt."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    REFUNDED = "refunded"


PAYMENT_METHOD_ENUM = Enum(
    PaymentMethod,
    name="payment_method_enum",
    values_callable=enum_values,
    native_enum=True,
    validate_strings=True,
)


class SubscriptionPayment(Base):
    """Append-only payment record attached to a subscription."""

    __tablename__ = "subscription_payments"
    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_subscription_payments_amount_non_negative"),
    )

    # Autoincrement keys preserve insertion order of the history.
    id = Column("payment_id", Integer, primary_key=True, autoincrement=True)
    subscription_id = Column(
        GUID(),
        ForeignKey("subscriptions.subscription_id", ondelete="CASCADE"),
        nullable=False,
    )
    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(CURRENCY_ENUM, nullable=False, default=Currency.INR)
    method = Column(PAYMENT_METHOD_ENUM, nullable=False)
    transaction_id = Column(String(120), nullable=True)
    status = Column(
        Enum(
            PaymentRecordStatus,
            name="payment_record_status_enum",
            values_callable=enum_values,
        ),
        nullable=False,
        default=PaymentRecordStatus.PENDING,
    )
    paid_at = Column(DateTime(timezone=True), nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    subscription = relationship("Subscription", back_populates="payments")


Index("subscription_payments_subscription_idx", SubscriptionPayment.subscription_id)

"""Schemas for subscription payment records."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..models.payment import PaymentMethod, PaymentRecordStatus
from ..models.service import Currency


class PaymentCreate(BaseModel):
    """Payment record appended to a subscription's history."""

    amount: Decimal = Field(..., ge=0, description="Amount received")
    currency: Currency = Currency.INR
    method: PaymentMethod = Field(..., description="Payment method used by the customer")
    transaction_id: Optional[str] = Field(default=None, max_length=120)
    status: PaymentRecordStatus = PaymentRecordStatus.PENDING
    paid_at: Optional[datetime] = Field(
        default=None, description="When the payment settled; defaults to now"
    )
    notes: Optional[str] = Field(default=None, max_length=500)


class PaymentRead(BaseModel):
    """Stored payment record."""

    id: int
    amount: Decimal
    currency: Currency
    method: PaymentMethod
    transaction_id: Optional[str] = None
    status: PaymentRecordStatus
    paid_at: datetime
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

"""Price calculation for subscription line items."""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, Optional

from ..models.service import Currency
from .errors import ValidationError

TAX_RATE_ENV = "SUBSCRIPTION_TAX_RATE"
DEFAULT_TAX_RATE = Decimal("0.18")
_CENT = Decimal("0.01")
_WHOLE_UNIT = Decimal("1")


def _read_tax_rate() -> Decimal:
    raw = os.getenv(TAX_RATE_ENV)
    if raw is None or not raw.strip():
        return DEFAULT_TAX_RATE
    try:
        value = Decimal(raw.strip())
    except InvalidOperation as exc:
        raise ValueError(f"{TAX_RATE_ENV} must be a decimal number") from exc
    if value < 0:
        raise ValueError(f"{TAX_RATE_ENV} must be non-negative")
    return value


@dataclass(frozen=True)
class PricedLine:
    """Unit price, currency and quantity of one ordered service."""

    unit_price: Decimal
    currency: Currency
    quantity: int = 1

    @property
    def amount(self) -> Decimal:
        return Decimal(self.unit_price) * self.quantity


@dataclass(frozen=True)
class PricingBreakdown:
    subtotal: Decimal
    taxes: Decimal
    discounts: Decimal
    total: Decimal
    currency: Currency

    def __post_init__(self) -> None:
        if self.total != self.subtotal + self.taxes - self.discounts:
            raise ValueError("total must equal subtotal + taxes - discounts")

    def as_columns(self) -> dict:
        return {
            "subtotal": self.subtotal,
            "taxes": self.taxes,
            "discounts": self.discounts,
            "total": self.total,
            "currency": self.currency,
        }


def calculate_pricing(
    lines: Iterable[PricedLine],
    *,
    tax_rate: Optional[Decimal] = None,
    default_currency: Currency = Currency.INR,
) -> PricingBreakdown:
    """Return subtotal, taxes and total for ``lines``.

    Taxes are rounded half-up to a whole currency unit. An empty basket prices
    to zero in ``default_currency``; baskets mixing currencies are rejected.
    """

    rate = _read_tax_rate() if tax_rate is None else Decimal(tax_rate)
    subtotal = Decimal("0")
    currency: Optional[Currency] = None

    for line in lines:
        if line.quantity < 1:
            raise ValidationError(
                "Quantity must be at least 1",
                code="invalid_quantity",
                context={"quantity": line.quantity},
            )
        line_currency = Currency(line.currency)
        if currency is None:
            currency = line_currency
        elif line_currency != currency:
            raise ValidationError(
                "All services in a subscription must share one currency",
                code="mixed_currency",
                context={"currencies": sorted({currency.value, line_currency.value})},
            )
        subtotal += line.amount

    subtotal = subtotal.quantize(_CENT, rounding=ROUND_HALF_UP)
    taxes = (subtotal * rate).quantize(_WHOLE_UNIT, rounding=ROUND_HALF_UP)
    taxes = taxes.quantize(_CENT)
    discounts = Decimal("0.00")
    total = subtotal + taxes - discounts
    return PricingBreakdown(
        subtotal=subtotal,
        taxes=taxes,
        discounts=discounts,
        total=total,
        currency=currency or default_currency,
    )


__all__ = ["PricedLine", "PricingBreakdown", "calculate_pricing", "DEFAULT_TAX_RATE"]

"""Helpers to compute billing dates for subscriptions."""

from __future__ import annotations

from calendar import monthrange
from datetime import date
from typing import Optional

from ..models.service import BillingCycle

_CYCLE_MONTHS = {
    BillingCycle.MONTHLY: 1,
    BillingCycle.QUARTERLY: 3,
    BillingCycle.YEARLY: 12,
}


def add_months(start: date, months: int) -> date:
    """Shift ``start`` by ``months``, clamping to the last day of the target month."""

    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    _, last_day = monthrange(year, month)
    return date(year, month, min(start.day, last_day))


def next_billing_date(start: date, cycle: BillingCycle | str) -> Optional[date]:
    """Return the first billing date after ``start``, or ``None`` for one-time billing."""

    months = _CYCLE_MONTHS.get(BillingCycle(cycle))
    if months is None:
        return None
    return add_months(start, months)


__all__ = ["add_months", "next_billing_date"]

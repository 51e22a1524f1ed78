from datetime import date

import pytest

from backend.app.models import BillingCycle
from backend.app.services import add_months, next_billing_date


@pytest.mark.parametrize(
    ("start", "cycle", "expected"),
    [
        (date(2024, 1, 31), BillingCycle.MONTHLY, date(2024, 2, 29)),
        (date(2023, 1, 31), BillingCycle.MONTHLY, date(2023, 2, 28)),
        (date(2024, 1, 15), BillingCycle.YEARLY, date(2025, 1, 15)),
        (date(2024, 2, 29), BillingCycle.YEARLY, date(2025, 2, 28)),
        (date(2024, 11, 30), BillingCycle.QUARTERLY, date(2025, 2, 28)),
        (date(2024, 12, 10), BillingCycle.MONTHLY, date(2025, 1, 10)),
    ],
)
def test_next_billing_date_by_cycle(start, cycle, expected):
    assert next_billing_date(start, cycle) == expected


def test_one_time_subscriptions_have_no_billing_date():
    assert next_billing_date(date(2024, 5, 1), BillingCycle.ONE_TIME) is None


def test_cycle_can_be_given_as_its_value():
    assert next_billing_date(date(2024, 3, 31), "quarterly") == date(2024, 6, 30)


def test_add_months_is_deterministic():
    start = date(2024, 8, 31)
    assert add_months(start, 1) == add_months(start, 1) == date(2024, 9, 30)
    assert add_months(start, 0) == start

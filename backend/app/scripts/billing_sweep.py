"""Command line entry-point reporting subscriptions due for billing or expiring."""

from __future__ import annotations

import argparse
import logging
import os
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ..database import session_scope
from ..services.subscriptions import DEFAULT_EXPIRING_WINDOW_DAYS, SubscriptionService

LOGGER = logging.getLogger(__name__)


@dataclass
class BillingSweepSummary:
    due_for_billing: list[str] = field(default_factory=list)
    expiring: list[str] = field(default_factory=list)
    expired: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, int]:
        return {
            "due_for_billing": len(self.due_for_billing),
            "expiring": len(self.expiring),
            "expired": len(self.expired),
        }


def run_sweep(
    db: Session,
    *,
    days_ahead: int = DEFAULT_EXPIRING_WINDOW_DAYS,
    mark_expired: bool = False,
    today: Optional[date] = None,
) -> BillingSweepSummary:
    """Collect the subscriptions that need billing attention on ``today``."""

    cutoff = today or date.today()
    summary = BillingSweepSummary()

    if mark_expired:
        summary.expired = [
            str(item.id) for item in SubscriptionService.mark_expired(db, today=cutoff)
        ]

    for subscription in SubscriptionService.find_due_for_billing(db, today=cutoff):
        summary.due_for_billing.append(str(subscription.id))
        LOGGER.debug(
            "Due for billing: %s (next billing %s, total %s %s)",
            subscription.id,
            subscription.next_billing_date,
            subscription.total,
            subscription.currency.value,
        )

    for subscription in SubscriptionService.find_expiring(db, days=days_ahead, today=cutoff):
        summary.expiring.append(str(subscription.id))
        LOGGER.debug("Expiring: %s (ends %s)", subscription.id, subscription.end_date)

    return summary


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Report active subscriptions due for billing or close to their end date."
    )
    parser.add_argument(
        "--days-ahead",
        type=int,
        default=int(os.getenv("BILLING_SWEEP_DAYS_AHEAD", str(DEFAULT_EXPIRING_WINDOW_DAYS))),
        help="Window in days used to flag expiring subscriptions (default: 7).",
    )
    parser.add_argument(
        "--mark-expired",
        action="store_true",
        help="Move active subscriptions whose end date has passed to 'expired'.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log every matching subscription.",
    )
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    args = _parse_args(argv)
    _configure_logging(args.verbose)

    with session_scope() as session:
        summary = run_sweep(
            session,
            days_ahead=max(args.days_ahead, 0),
            mark_expired=args.mark_expired,
        )
        LOGGER.info("Billing sweep summary: %s", summary.to_dict())

    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())

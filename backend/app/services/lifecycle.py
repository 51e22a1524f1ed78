"""Status transitions for subscriptions.

The functions in this module are pure: they receive an immutable
:class:`LifecycleState` and return a :class:`Transition` describing the new
state and the side effects (audit note, payment record, capacity released or
claimed back) that the caller must persist. A rejected transition raises
:class:`ConflictError` and leaves the input untouched.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from ..models.payment import PaymentMethod, PaymentRecordStatus, PaymentStatus
from ..models.service import Currency
from ..models.subscription import SubscriptionStatus
from .errors import ConflictError

DEFAULT_CANCEL_REASON = "User requested cancellation"
DEFAULT_PAUSE_REASON = "User requested pause"
DEFAULT_ADMIN_REASON = "Admin action"

_TERMINAL_FOR_CANCEL = {SubscriptionStatus.CANCELLED, SubscriptionStatus.EXPIRED}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class LifecycleState:
    """Snapshot of the fields a transition may change."""

    status: SubscriptionStatus
    payment_status: PaymentStatus = PaymentStatus.PENDING
    cancelled_at: Optional[datetime] = None
    paused_at: Optional[datetime] = None
    last_payment_at: Optional[datetime] = None

    @classmethod
    def from_subscription(cls, subscription) -> "LifecycleState":
        return cls(
            status=SubscriptionStatus(subscription.status),
            payment_status=PaymentStatus(subscription.payment_status),
            cancelled_at=subscription.cancelled_at,
            paused_at=subscription.paused_at,
            last_payment_at=subscription.last_payment_at,
        )


@dataclass(frozen=True)
class PaymentEntry:
    amount: Decimal
    method: PaymentMethod
    status: PaymentRecordStatus = PaymentRecordStatus.PENDING
    currency: Currency = Currency.INR
    transaction_id: Optional[str] = None
    paid_at: Optional[datetime] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class Transition:
    state: LifecycleState
    note: Optional[str] = None
    payment: Optional[PaymentEntry] = None
    releases_capacity: bool = False
    claims_capacity: bool = False


def _conflict(action: str, state: LifecycleState) -> ConflictError:
    return ConflictError(
        f"Cannot {action} a subscription that is {state.status.value}",
        context={"action": action, "status": state.status.value},
    )


def cancel(
    state: LifecycleState,
    reason: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
    default_reason: str = DEFAULT_CANCEL_REASON,
) -> Transition:
    if state.status in _TERMINAL_FOR_CANCEL:
        raise _conflict("cancel", state)
    moment = now or _utcnow()
    return Transition(
        state=replace(state, status=SubscriptionStatus.CANCELLED, cancelled_at=moment),
        note=f"Cancelled: {reason or default_reason}",
        releases_capacity=True,
    )


def pause(
    state: LifecycleState,
    reason: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
    default_reason: str = DEFAULT_PAUSE_REASON,
) -> Transition:
    if state.status != SubscriptionStatus.ACTIVE:
        raise _conflict("pause", state)
    moment = now or _utcnow()
    return Transition(
        state=replace(state, status=SubscriptionStatus.PAUSED, paused_at=moment),
        note=f"Paused: {reason or default_reason}",
    )


def resume(state: LifecycleState) -> Transition:
    if state.status != SubscriptionStatus.PAUSED:
        raise _conflict("resume", state)
    return Transition(state=replace(state, status=SubscriptionStatus.ACTIVE, paused_at=None))


def add_payment(
    state: LifecycleState,
    payment: PaymentEntry,
    *,
    now: Optional[datetime] = None,
) -> Transition:
    """Record ``payment``; a successful one marks the subscription paid.

    The subscription status itself is never changed by a payment.
    """

    moment = now or _utcnow()
    paid_at = payment.paid_at or moment
    record = replace(payment, paid_at=paid_at)
    if PaymentRecordStatus(payment.status) != PaymentRecordStatus.SUCCESS:
        return Transition(state=state, payment=record)
    return Transition(
        state=replace(state, payment_status=PaymentStatus.PAID, last_payment_at=paid_at),
        payment=record,
    )


def admin_override(
    state: LifecycleState,
    target: SubscriptionStatus,
    reason: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
) -> Transition:
    target = SubscriptionStatus(target)
    if target == SubscriptionStatus.CANCELLED:
        return cancel(state, reason, now=now, default_reason=DEFAULT_ADMIN_REASON)
    if target == SubscriptionStatus.PAUSED:
        return pause(state, reason, now=now, default_reason=DEFAULT_ADMIN_REASON)
    if target == SubscriptionStatus.ACTIVE and state.status == SubscriptionStatus.PAUSED:
        return resume(state)
    # Leaving "cancelled" takes back the slots released by the cancellation.
    reopens = state.status == SubscriptionStatus.CANCELLED and target not in _TERMINAL_FOR_CANCEL
    return Transition(state=replace(state, status=target), claims_capacity=reopens)


__all__ = [
    "DEFAULT_ADMIN_REASON",
    "DEFAULT_CANCEL_REASON",
    "DEFAULT_PAUSE_REASON",
    "LifecycleState",
    "PaymentEntry",
    "Transition",
    "add_payment",
    "admin_override",
    "cancel",
    "pause",
    "resume",
]

"""Business logic for ordering and managing subscriptions."""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from .. import models, schemas
from . import lifecycle
from .availability import ServiceAvailabilityGuard
from .billing_schedule import next_billing_date
from .catalog import CatalogService
from .errors import (
    ConflictError,
    NotFoundError,
    PermissionDenied,
    PersistenceError,
    SubscriptionError,
    ValidationError,
)
from .pricing import PricedLine, calculate_pricing

LOGGER = logging.getLogger(__name__)

INSTALLATION_CATEGORIES = {models.ServiceCategory.CABLE, models.ServiceCategory.INTERNET}
EDITABLE_STATUSES = {models.SubscriptionStatus.PENDING, models.SubscriptionStatus.ACTIVE}
DEFAULT_EXPIRING_WINDOW_DAYS = 7


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def default_plan_name(today: date) -> str:
    return f"Custom Plan - {today.isoformat()}"


class SubscriptionService:
    """Operations on `Subscription` aggregates.

    Every public mutator commits on success and rolls the session back before
    re-raising on failure, so a rejected request never leaves partial writes.
    """

    @staticmethod
    def _base_query(db: Session):
        return db.query(models.Subscription).options(
            selectinload(models.Subscription.items).selectinload(models.SubscriptionItem.service),
            selectinload(models.Subscription.payments),
            selectinload(models.Subscription.notes),
        )

    @staticmethod
    def count_active(db: Session, user_id: str) -> int:
        return (
            db.query(func.count(models.Subscription.id))
            .filter(
                models.Subscription.user_id == str(user_id),
                models.Subscription.status == models.SubscriptionStatus.ACTIVE,
            )
            .scalar()
            or 0
        )

    @staticmethod
    def reschedule(subscription: models.Subscription) -> None:
        """Recompute the next billing date from the start date and cycle."""

        subscription.next_billing_date = next_billing_date(
            subscription.start_date, subscription.billing_cycle
        )

    @classmethod
    def create_subscription(
        cls,
        db: Session,
        user: models.User,
        data: schemas.SubscriptionCreate,
        *,
        now: Optional[datetime] = None,
    ) -> models.Subscription:
        moment = now or _utcnow()
        today = moment.date()
        lines = list(data.services)
        start_date = data.start_date or today
        if data.end_date is not None and data.end_date < start_date:
            raise ValidationError(
                "End date must not be earlier than the start date",
                code="invalid_end_date",
                context={
                    "start_date": start_date.isoformat(),
                    "end_date": data.end_date.isoformat(),
                },
            )

        try:
            active_count = cls.count_active(db, user.id)
            services = CatalogService.find_by_ids(db, [line.service_id for line in lines])
            ServiceAvailabilityGuard.check_order(lines, services, active_count=active_count)

            pricing = calculate_pricing(
                PricedLine(
                    unit_price=services[line.service_id].price_amount,
                    currency=services[line.service_id].currency,
                    quantity=line.quantity,
                )
                for line in lines
            )

            for line in lines:
                CatalogService.increment_subscription_count(db, line.service_id)

            subscription = models.Subscription(
                user_id=str(user.id),
                plan_name=data.plan_name or default_plan_name(today),
                billing_cycle=data.billing_cycle,
                status=models.SubscriptionStatus.PENDING,
                payment_status=models.PaymentStatus.PENDING,
                start_date=start_date,
                end_date=data.end_date,
                installation_required=any(
                    services[line.service_id].category in INSTALLATION_CATEGORIES
                    for line in lines
                ),
                installation_status=models.InstallationStatus.NOT_REQUIRED,
                address_street=data.address.street,
                address_city=data.address.city,
                address_state=data.address.state,
                address_pincode=data.address.pincode,
                address_landmark=data.address.landmark,
                source=data.source,
                referral_code=data.referral_code,
                promo_code=data.promo_code,
                tags=list(data.tags),
                created_at=moment,
                updated_at=moment,
                **pricing.as_columns(),
            )
            cls.reschedule(subscription)
            for position, line in enumerate(lines):
                service = services[line.service_id]
                subscription.items.append(
                    models.SubscriptionItem(
                        position=position,
                        service_id=service.id,
                        quantity=line.quantity,
                        customizations=dict(line.customizations),
                        price_amount=service.price_amount,
                        price_currency=service.currency,
                        price_billing_cycle=service.billing_cycle,
                    )
                )
            db.add(subscription)
            db.commit()
        except SubscriptionError:
            db.rollback()
            raise
        except SQLAlchemyError as exc:
            db.rollback()
            LOGGER.exception("Unable to create subscription for user %s", user.id)
            raise PersistenceError("Unable to create the subscription") from exc

        LOGGER.info(
            "Created subscription %s for user %s with %d service(s), total %s %s",
            subscription.id,
            user.id,
            len(lines),
            pricing.total,
            pricing.currency.value,
        )
        return cls.get_subscription(db, subscription.id)

    @classmethod
    def get_subscription(
        cls,
        db: Session,
        subscription_id: str,
        *,
        actor: Optional[models.User] = None,
    ) -> models.Subscription:
        subscription = (
            cls._base_query(db)
            .filter(models.Subscription.id == str(subscription_id))
            .first()
        )
        if subscription is None:
            raise NotFoundError(
                "Subscription not found",
                code="subscription_not_found",
                context={"subscription_id": str(subscription_id)},
            )
        if actor is not None and not actor.is_admin and str(subscription.user_id) != str(actor.id):
            raise PermissionDenied(
                "You do not have access to this subscription",
                context={"subscription_id": str(subscription_id)},
            )
        return subscription

    @classmethod
    def list_subscriptions(
        cls,
        db: Session,
        *,
        user_id: Optional[str] = None,
        status: Optional[models.SubscriptionStatus] = None,
        skip: int = 0,
        limit: int = 10,
    ) -> Tuple[Iterable[models.Subscription], int]:
        query = cls._base_query(db)
        if user_id:
            query = query.filter(models.Subscription.user_id == str(user_id))
        if status:
            query = query.filter(models.Subscription.status == status)

        total = query.count()
        items = (
            query.order_by(models.Subscription.created_at.desc())
            .offset(max(skip, 0))
            .limit(max(limit, 1))
            .all()
        )
        return items, total

    @classmethod
    def update_subscription(
        cls,
        db: Session,
        subscription: models.Subscription,
        data: schemas.SubscriptionUpdate,
    ) -> models.Subscription:
        status = models.SubscriptionStatus(subscription.status)
        if status not in EDITABLE_STATUSES:
            raise ConflictError(
                f"Cannot update a subscription that is {status.value}",
                context={"action": "update", "status": status.value},
            )

        if data.address is not None:
            for field, value in data.address.model_dump(exclude_unset=True).items():
                setattr(subscription, f"address_{field}", value)

        if data.installation is not None:
            installation = data.installation.model_dump(exclude_unset=True)
            if "scheduled_at" in installation:
                subscription.installation_scheduled_at = installation["scheduled_at"]
            if "status" in installation and installation["status"] is not None:
                subscription.installation_status = installation["status"]
            if "notes" in installation:
                subscription.installation_notes = installation["notes"]
            technician = installation.get("technician")
            if technician:
                for field, value in technician.items():
                    setattr(subscription, f"technician_{field}", value)

        subscription.updated_at = _utcnow()
        cls._commit(db, subscription, action="update")
        LOGGER.info("Updated subscription %s", subscription.id)
        return cls.get_subscription(db, subscription.id)

    @classmethod
    def cancel(
        cls,
        db: Session,
        subscription: models.Subscription,
        reason: Optional[str] = None,
        *,
        actor: Optional[models.User] = None,
    ) -> models.Subscription:
        state = lifecycle.LifecycleState.from_subscription(subscription)
        transition = cls._transition(subscription, lifecycle.cancel, state, reason)
        return cls._apply(db, subscription, transition, actor=actor, action="cancel")

    @classmethod
    def pause(
        cls,
        db: Session,
        subscription: models.Subscription,
        reason: Optional[str] = None,
        *,
        actor: Optional[models.User] = None,
    ) -> models.Subscription:
        state = lifecycle.LifecycleState.from_subscription(subscription)
        transition = cls._transition(subscription, lifecycle.pause, state, reason)
        return cls._apply(db, subscription, transition, actor=actor, action="pause")

    @classmethod
    def resume(
        cls,
        db: Session,
        subscription: models.Subscription,
        *,
        actor: Optional[models.User] = None,
    ) -> models.Subscription:
        state = lifecycle.LifecycleState.from_subscription(subscription)
        transition = cls._transition(subscription, lifecycle.resume, state)
        return cls._apply(db, subscription, transition, actor=actor, action="resume")

    @classmethod
    def add_payment(
        cls,
        db: Session,
        subscription: models.Subscription,
        data: schemas.PaymentCreate,
        *,
        actor: Optional[models.User] = None,
    ) -> models.Subscription:
        entry = lifecycle.PaymentEntry(
            amount=data.amount,
            method=data.method,
            status=data.status,
            currency=data.currency,
            transaction_id=data.transaction_id,
            paid_at=data.paid_at,
            notes=data.notes,
        )
        transition = lifecycle.add_payment(
            lifecycle.LifecycleState.from_subscription(subscription), entry
        )
        return cls._apply(db, subscription, transition, actor=actor, action="payment")

    @classmethod
    def admin_set_status(
        cls,
        db: Session,
        subscription: models.Subscription,
        target: models.SubscriptionStatus,
        reason: Optional[str] = None,
        *,
        actor: Optional[models.User] = None,
    ) -> models.Subscription:
        state = lifecycle.LifecycleState.from_subscription(subscription)
        transition = cls._transition(
            subscription, lifecycle.admin_override, state, target, reason
        )
        return cls._apply(db, subscription, transition, actor=actor, action="admin_status")

    @staticmethod
    def find_due_for_billing(db: Session, *, today: Optional[date] = None) -> list[models.Subscription]:
        cutoff = today or date.today()
        return (
            db.query(models.Subscription)
            .filter(
                models.Subscription.status == models.SubscriptionStatus.ACTIVE,
                models.Subscription.next_billing_date.isnot(None),
                models.Subscription.next_billing_date <= cutoff,
            )
            .order_by(models.Subscription.next_billing_date.asc())
            .all()
        )

    @staticmethod
    def find_expiring(
        db: Session,
        *,
        days: int = DEFAULT_EXPIRING_WINDOW_DAYS,
        today: Optional[date] = None,
    ) -> list[models.Subscription]:
        start = today or date.today()
        horizon = start + timedelta(days=days)
        return (
            db.query(models.Subscription)
            .filter(
                models.Subscription.status == models.SubscriptionStatus.ACTIVE,
                models.Subscription.end_date.isnot(None),
                models.Subscription.end_date >= start,
                models.Subscription.end_date <= horizon,
            )
            .order_by(models.Subscription.end_date.asc())
            .all()
        )

    @classmethod
    def mark_expired(cls, db: Session, *, today: Optional[date] = None) -> list[models.Subscription]:
        """Move active subscriptions whose end date has passed to ``expired``."""

        cutoff = today or date.today()
        moment = _utcnow()
        ended = (
            db.query(models.Subscription)
            .filter(
                models.Subscription.status == models.SubscriptionStatus.ACTIVE,
                models.Subscription.end_date.isnot(None),
                models.Subscription.end_date < cutoff,
            )
            .all()
        )
        for subscription in ended:
            subscription.status = models.SubscriptionStatus.EXPIRED
            subscription.updated_at = moment
            subscription.notes.append(
                models.SubscriptionNote(
                    created_at=moment,
                    author="billing-sweep",
                    message=f"Expired: end date {subscription.end_date.isoformat()} passed",
                )
            )
            db.add(subscription)
        try:
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            LOGGER.exception("Unable to mark subscriptions as expired")
            raise PersistenceError("Unable to mark subscriptions as expired") from exc
        if ended:
            LOGGER.info("Marked %d subscription(s) as expired", len(ended))
        return ended

    @staticmethod
    def _transition(subscription: models.Subscription, transition_fn, *args):
        try:
            return transition_fn(*args)
        except ConflictError:
            LOGGER.warning(
                "Rejected %s on subscription %s in status %s",
                transition_fn.__name__,
                subscription.id,
                models.SubscriptionStatus(subscription.status).value,
            )
            raise

    @classmethod
    def _apply(
        cls,
        db: Session,
        subscription: models.Subscription,
        transition: lifecycle.Transition,
        *,
        actor: Optional[models.User],
        action: str,
    ) -> models.Subscription:
        moment = _utcnow()
        state = transition.state
        subscription.status = state.status
        subscription.payment_status = state.payment_status
        subscription.cancelled_at = state.cancelled_at
        subscription.paused_at = state.paused_at
        subscription.last_payment_at = state.last_payment_at
        subscription.updated_at = moment

        if transition.note:
            subscription.notes.append(
                models.SubscriptionNote(
                    created_at=moment,
                    author=actor.email if actor is not None else None,
                    message=transition.note,
                )
            )
        if transition.payment is not None:
            payment = transition.payment
            subscription.payments.append(
                models.SubscriptionPayment(
                    amount=payment.amount,
                    currency=payment.currency,
                    method=payment.method,
                    transaction_id=payment.transaction_id,
                    status=payment.status,
                    paid_at=payment.paid_at,
                    notes=payment.notes,
                )
            )

        try:
            if transition.releases_capacity:
                for item in subscription.items:
                    CatalogService.decrement_subscription_count(db, item.service_id)
            if transition.claims_capacity:
                for item in subscription.items:
                    CatalogService.increment_subscription_count(db, item.service_id)
            cls._commit(db, subscription, action=action)
        except SubscriptionError:
            db.rollback()
            raise
        except SQLAlchemyError as exc:
            LOGGER.exception(
                "Unable to update capacity for %s on subscription %s", action, subscription.id
            )
            db.rollback()
            raise PersistenceError("Unable to update the subscription") from exc

        LOGGER.info(
            "Subscription %s %s -> %s",
            subscription.id,
            action,
            models.SubscriptionStatus(state.status).value,
        )
        return cls.get_subscription(db, subscription.id)

    @staticmethod
    def _commit(db: Session, subscription: models.Subscription, *, action: str) -> None:
        db.add(subscription)
        try:
            db.commit()
        except SQLAlchemyError as exc:
            LOGGER.exception("Unable to persist %s on subscription %s", action, subscription.id)
            db.rollback()
            raise PersistenceError(f"Unable to {action.replace('_', ' ')} the subscription") from exc


__all__ = ["SubscriptionService", "default_plan_name"]

from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

from backend.app import models, schemas
from backend.app.services import (
    CatalogService,
    PersistenceError,
    SubscriptionService,
    UserService,
    ValidationError,
)

NOW = datetime(2024, 6, 1, 10, 30, tzinfo=timezone.utc)


def _locked(*args, **kwargs):
    raise OperationalError("UPDATE services", {}, Exception("database is locked"))


def _order(db_session, user, service, address_payload, **extra):
    data = schemas.SubscriptionCreate(
        services=[{"service_id": service.id}], address=address_payload, **extra
    )
    return SubscriptionService.create_subscription(db_session, user, data, now=NOW)


def test_cancel_surfaces_counter_failure_and_keeps_status(
    db_session, customer, make_service, address_payload, monkeypatch
):
    service = make_service()
    subscription = _order(db_session, customer, service, address_payload)
    monkeypatch.setattr(CatalogService, "decrement_subscription_count", _locked)

    with pytest.raises(PersistenceError):
        SubscriptionService.cancel(db_session, subscription, "Too costly")

    db_session.expire_all()
    stored = db_session.get(models.Subscription, subscription.id)
    assert stored.status is models.SubscriptionStatus.PENDING
    assert stored.cancelled_at is None
    assert db_session.get(models.Service, service.id).current_subscriptions == 1


def test_end_date_before_default_start_is_rejected(
    db_session, customer, make_service, address_payload
):
    service = make_service()

    with pytest.raises(ValidationError) as excinfo:
        _order(
            db_session,
            customer,
            service,
            address_payload,
            end_date=NOW.date() - timedelta(days=1),
        )

    assert excinfo.value.code == "invalid_end_date"
    assert excinfo.value.context["start_date"] == date(2024, 6, 1).isoformat()
    db_session.expire_all()
    assert db_session.get(models.Service, service.id).current_subscriptions == 0


def test_user_status_change_surfaces_commit_failure(
    db_session, customer, admin_user, monkeypatch
):
    monkeypatch.setattr(db_session, "commit", _locked)

    with pytest.raises(PersistenceError):
        UserService.set_active(db_session, customer, False, actor=admin_user)

    monkeypatch.undo()
    db_session.expire_all()
    assert db_session.get(models.User, customer.id).is_active is True

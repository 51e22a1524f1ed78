from decimal import Decimal

import pytest

from backend.app import models


@pytest.fixture
def admin_client(anonymous_client, admin_headers):
    anonymous_client.headers.update(admin_headers)
    return anonymous_client


def _service_payload(**overrides):
    payload = {
        "name": "Fiber 200 Mbps",
        "description": "Symmetric fiber connection",
        "category": "Internet",
        "price_amount": "999",
        "features": [{"name": "Free router"}],
        "specifications": {"speed": "200 Mbps"},
        "regions": ["KA"],
        "tags": [" Fiber ", "HOME"],
    }
    payload.update(overrides)
    return payload


def _create_subscription(db_session, user, service, status=models.SubscriptionStatus.ACTIVE):
    subscription = models.Subscription(
        user_id=user.id,
        subtotal=service.price_amount,
        taxes=Decimal("0"),
        discounts=Decimal("0"),
        total=service.price_amount,
        status=status,
        address_street="12 MG Road",
        address_city="Bengaluru",
        address_state="Karnataka",
        address_pincode="560001",
    )
    subscription.items.append(
        models.SubscriptionItem(
            position=0,
            service_id=service.id,
            quantity=1,
            price_amount=service.price_amount,
            price_currency=service.currency,
            price_billing_cycle=service.billing_cycle,
        )
    )
    service.current_subscriptions += 1
    db_session.add(subscription)
    db_session.commit()
    return subscription


def test_customers_cannot_use_admin_endpoints(client):
    assert client.get("/admin/users").status_code == 403
    assert client.post("/admin/services", json=_service_payload()).status_code == 403


def test_create_update_and_soft_delete_service(admin_client, admin_user, db_session):
    created = admin_client.post("/admin/services", json=_service_payload())

    assert created.status_code == 201, created.json()
    data = created.json()
    assert data["slug"] == "fiber-200-mbps"
    assert data["tags"] == ["fiber", "home"]
    assert data["features"] == [{"name": "Free router", "description": None, "included": True}]
    assert data["current_subscriptions"] == 0

    stored = db_session.get(models.Service, data["id"])
    assert stored.created_by == admin_user.id

    updated = admin_client.put(
        f"/admin/services/{data['id']}",
        json={"name": "Fiber 300 Mbps", "price_amount": "1299"},
    )
    assert updated.status_code == 200
    assert updated.json()["slug"] == "fiber-300-mbps"
    assert Decimal(str(updated.json()["price_amount"])) == Decimal("1299")

    deleted = admin_client.delete(f"/admin/services/{data['id']}")
    assert deleted.status_code == 200
    assert deleted.json()["is_active"] is False
    assert admin_client.get(f"/services/{data['id']}").status_code == 404


def test_silver_services_require_quotes(admin_client):
    response = admin_client.post(
        "/admin/services",
        json=_service_payload(name="Silver Coins", category="Silver", price_amount="2500"),
    )

    assert response.status_code == 201
    data = response.json()
    assert data["requires_quote"] is True
    assert Decimal(str(data["max_online_order_value"])) == Decimal("10000")


def test_duplicate_service_names_are_rejected(admin_client):
    assert admin_client.post("/admin/services", json=_service_payload()).status_code == 201

    duplicate = admin_client.post("/admin/services", json=_service_payload())

    assert duplicate.status_code == 400
    assert duplicate.json()["detail"]["code"] == "duplicate_service_name"


def test_cap_cannot_drop_below_current_subscribers(admin_client, make_service):
    service = make_service(max_subscriptions=5, current_subscriptions=3)

    response = admin_client.put(f"/admin/services/{service.id}", json={"max_subscriptions": 2})

    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "capacity_below_current"


def test_admin_lists_subscriptions_with_filters(
    admin_client, db_session, customer, other_customer, make_service
):
    service = make_service()
    _create_subscription(db_session, customer, service)
    _create_subscription(db_session, other_customer, service, models.SubscriptionStatus.PAUSED)

    everything = admin_client.get("/admin/subscriptions").json()
    assert everything["total"] == 2

    paused = admin_client.get("/admin/subscriptions", params={"status": "paused"}).json()
    assert paused["total"] == 1
    assert paused["items"][0]["user_id"] == other_customer.id

    mine = admin_client.get("/admin/subscriptions", params={"user_id": customer.id}).json()
    assert mine["total"] == 1


def test_admin_status_override(admin_client, db_session, customer, make_service):
    service = make_service()
    subscription = _create_subscription(db_session, customer, service)
    url = f"/admin/subscriptions/{subscription.id}/status"

    paused = admin_client.put(url, json={"status": "paused"})
    assert paused.status_code == 200, paused.json()
    assert paused.json()["notes"][-1]["message"] == "Paused: Admin action"
    assert paused.json()["notes"][-1]["author"] == "admin@example.com"

    resumed = admin_client.put(url, json={"status": "active"})
    assert resumed.json()["status"] == "active"
    assert resumed.json()["paused_at"] is None

    cancelled = admin_client.put(url, json={"status": "cancelled", "reason": "Chargeback"})
    assert cancelled.json()["status"] == "cancelled"
    assert cancelled.json()["notes"][-1]["message"] == "Cancelled: Chargeback"
    db_session.expire_all()
    assert db_session.get(models.Service, service.id).current_subscriptions == 0

    rejected = admin_client.put(url, json={"status": "cancelled"})
    assert rejected.status_code == 409

    expired = admin_client.put(url, json={"status": "expired"})
    assert expired.status_code == 200
    assert expired.json()["status"] == "expired"


def test_admin_override_of_missing_subscription(admin_client):
    response = admin_client.put(
        "/admin/subscriptions/00000000-0000-0000-0000-000000000000/status",
        json={"status": "active"},
    )

    assert response.status_code == 404


def test_admin_manages_users(admin_client, admin_user, customer, anonymous_client):
    listing = admin_client.get("/admin/users", params={"role": "customer"}).json()
    assert [user["email"] for user in listing["items"]] == ["customer@example.com"]

    deactivated = admin_client.put(
        f"/admin/users/{customer.id}/status", json={"is_active": False}
    )
    assert deactivated.status_code == 200
    assert deactivated.json()["is_active"] is False

    login = anonymous_client.post(
        "/auth/token", json={"email": customer.email, "password": "Cust0merPass!"}
    )
    assert login.status_code == 403

    self_lock = admin_client.put(
        f"/admin/users/{admin_user.id}/status", json={"is_active": False}
    )
    assert self_lock.status_code == 400


def test_reopening_cancelled_subscription_reclaims_slot(
    admin_client, db_session, customer, make_service
):
    service = make_service(max_subscriptions=1)
    subscription = _create_subscription(db_session, customer, service)
    url = f"/admin/subscriptions/{subscription.id}/status"

    admin_client.put(url, json={"status": "cancelled"})
    db_session.expire_all()
    assert db_session.get(models.Service, service.id).current_subscriptions == 0

    reopened = admin_client.put(url, json={"status": "active"})
    assert reopened.status_code == 200, reopened.json()
    assert reopened.json()["status"] == "active"
    db_session.expire_all()
    assert db_session.get(models.Service, service.id).current_subscriptions == 1


def test_reopening_is_refused_when_service_filled_up(
    admin_client, db_session, customer, other_customer, make_service
):
    service = make_service(max_subscriptions=1)
    subscription = _create_subscription(db_session, customer, service)
    url = f"/admin/subscriptions/{subscription.id}/status"
    admin_client.put(url, json={"status": "cancelled"})
    db_session.expire_all()
    _create_subscription(db_session, other_customer, db_session.get(models.Service, service.id))

    response = admin_client.put(url, json={"status": "active"})

    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "capacity_exceeded"
    db_session.expire_all()
    assert db_session.get(models.Subscription, subscription.id).status is (
        models.SubscriptionStatus.CANCELLED
    )
    assert db_session.get(models.Service, service.id).current_subscriptions == 1

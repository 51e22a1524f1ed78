from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from backend.app import models
from backend.app.services.billing_schedule import add_months


@pytest.fixture
def gaming_service(make_service):
    return make_service(
        name="Pro Gaming Pass",
        price_amount=Decimal("500"),
        max_quantity_per_user=5,
    )


def _order(client, address_payload, services, **extra):
    payload = {"services": services, "address": address_payload, **extra}
    return client.post("/subscriptions", json=payload)


def _refresh_service(db_session, service_id: int) -> models.Service:
    db_session.expire_all()
    return db_session.get(models.Service, service_id)


def test_create_subscription_prices_and_schedules_order(
    client, db_session, gaming_service, address_payload
):
    response = _order(
        client,
        address_payload,
        [{"service_id": gaming_service.id, "quantity": 2, "customizations": {"tier": "gold"}}],
    )

    assert response.status_code == 201, response.json()
    data = response.json()
    assert data["status"] == "pending"
    assert data["payment_status"] == "pending"
    assert Decimal(str(data["pricing"]["subtotal"])) == Decimal("1000")
    assert Decimal(str(data["pricing"]["taxes"])) == Decimal("180")
    assert Decimal(str(data["pricing"]["discounts"])) == Decimal("0")
    assert Decimal(str(data["pricing"]["total"])) == Decimal("1180")
    assert data["pricing"]["currency"] == "INR"

    start = date.fromisoformat(data["start_date"])
    assert date.fromisoformat(data["next_billing_date"]) == add_months(start, 1)
    assert data["plan_name"] == f"Custom Plan - {start.isoformat()}"
    assert data["installation"]["is_required"] is False
    assert data["installation"]["status"] == "not-required"

    item = data["items"][0]
    assert item["quantity"] == 2
    assert item["customizations"] == {"tier": "gold"}
    assert Decimal(str(item["price_at_subscription"]["amount"])) == Decimal("500")
    assert item["price_at_subscription"]["billing_cycle"] == "monthly"
    assert item["service"]["name"] == "Pro Gaming Pass"

    assert _refresh_service(db_session, gaming_service.id).current_subscriptions == 1


def test_price_snapshot_survives_catalog_price_change(
    client, db_session, gaming_service, address_payload
):
    created = _order(client, address_payload, [{"service_id": gaming_service.id}]).json()

    gaming_service.price_amount = Decimal("900")
    db_session.commit()

    detail = client.get(f"/subscriptions/{created['id']}")
    assert detail.status_code == 200
    snapshot = detail.json()["items"][0]["price_at_subscription"]
    assert Decimal(str(snapshot["amount"])) == Decimal("500")


def test_internet_service_requires_installation(client, make_service, address_payload):
    internet = make_service(name="Fiber 100", category=models.ServiceCategory.INTERNET)
    snacks = make_service(name="Snack Box", category=models.ServiceCategory.SNACKS)

    response = _order(
        client,
        address_payload,
        [{"service_id": snacks.id}, {"service_id": internet.id}],
        plan_name="Home bundle",
        billing_cycle="one-time",
    )

    assert response.status_code == 201, response.json()
    data = response.json()
    assert data["installation"]["is_required"] is True
    assert data["plan_name"] == "Home bundle"
    assert data["next_billing_date"] is None
    assert [item["service_id"] for item in data["items"]] == [snacks.id, internet.id]


def test_quantity_above_limit_is_rejected_without_writes(
    client, db_session, make_service, address_payload
):
    service = make_service(max_quantity_per_user=3)

    response = _order(client, address_payload, [{"service_id": service.id, "quantity": 4}])

    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "quantity_exceeded"
    assert _refresh_service(db_session, service.id).current_subscriptions == 0
    assert db_session.query(models.Subscription).count() == 0


def test_full_service_is_rejected(client, make_service, address_payload):
    service = make_service(max_subscriptions=1, current_subscriptions=1)

    response = _order(client, address_payload, [{"service_id": service.id}])

    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "capacity_exceeded"


def test_failed_line_rolls_back_counters_of_earlier_lines(
    client, db_session, make_service, address_payload
):
    first = make_service(max_subscriptions=10)
    second = make_service(max_subscriptions=1, current_subscriptions=1)

    response = _order(
        client, address_payload, [{"service_id": first.id}, {"service_id": second.id}]
    )

    assert response.status_code == 400
    assert _refresh_service(db_session, first.id).current_subscriptions == 0


def test_unknown_service_returns_not_found(client, address_payload):
    response = _order(client, address_payload, [{"service_id": 4242}])

    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "service_not_found"


def test_order_requires_at_least_one_service(client, address_payload):
    response = _order(client, address_payload, [])

    assert response.status_code == 422


def test_invalid_pincode_is_rejected(client, gaming_service, address_payload):
    address_payload["pincode"] = "5600"

    response = _order(client, address_payload, [{"service_id": gaming_service.id}])

    assert response.status_code == 422


def test_active_subscription_limit_per_user(
    client, db_session, customer, make_service, address_payload
):
    services = [make_service() for _ in range(6)]
    for service in services[:4]:
        created = _order(client, address_payload, [{"service_id": service.id}])
        assert created.status_code == 201
        subscription = db_session.get(models.Subscription, created.json()["id"])
        subscription.status = models.SubscriptionStatus.ACTIVE
        db_session.commit()

    response = _order(
        client,
        address_payload,
        [{"service_id": services[4].id}, {"service_id": services[5].id}],
    )

    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "user_limit_exceeded"


def test_list_returns_only_own_subscriptions(
    client, anonymous_client, other_headers, gaming_service, address_payload
):
    _order(client, address_payload, [{"service_id": gaming_service.id}])
    foreign = anonymous_client.post(
        "/subscriptions",
        json={"services": [{"service_id": gaming_service.id}], "address": address_payload},
        headers=other_headers,
    )
    assert foreign.status_code == 201

    response = client.get("/subscriptions")

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["items"][0]["id"] != foreign.json()["id"]

    filtered = client.get("/subscriptions", params={"status": "active"})
    assert filtered.json()["total"] == 0


def test_customers_cannot_access_foreign_subscriptions(
    client, anonymous_client, other_headers, gaming_service, address_payload
):
    created = _order(client, address_payload, [{"service_id": gaming_service.id}]).json()

    response = anonymous_client.get(f"/subscriptions/{created['id']}", headers=other_headers)

    assert response.status_code == 403
    assert response.json()["detail"]["code"] == "permission_denied"


def test_requests_without_token_are_rejected(anonymous_client):
    response = anonymous_client.get("/subscriptions")

    assert response.status_code == 401


def test_update_address_and_installation(client, gaming_service, address_payload):
    created = _order(client, address_payload, [{"service_id": gaming_service.id}]).json()

    response = client.put(
        f"/subscriptions/{created['id']}",
        json={
            "address": {"city": "Mysuru", "pincode": "570001"},
            "installation": {
                "status": "scheduled",
                "scheduled_at": "2024-07-01T10:00:00+00:00",
                "technician": {"name": "Kiran", "phone": "9876543210"},
            },
        },
    )

    assert response.status_code == 200, response.json()
    data = response.json()
    assert data["address"]["city"] == "Mysuru"
    assert data["address"]["street"] == address_payload["street"]
    assert data["installation"]["status"] == "scheduled"
    assert data["installation"]["technician"]["name"] == "Kiran"


def test_cancel_releases_capacity_and_records_note(
    client, db_session, gaming_service, address_payload
):
    created = _order(client, address_payload, [{"service_id": gaming_service.id}]).json()

    response = client.put(f"/subscriptions/{created['id']}/cancel", json={"reason": "Too costly"})

    assert response.status_code == 200, response.json()
    data = response.json()
    assert data["status"] == "cancelled"
    assert data["cancelled_at"] is not None
    assert data["notes"][-1]["message"] == "Cancelled: Too costly"
    assert data["notes"][-1]["author"] == "customer@example.com"
    assert _refresh_service(db_session, gaming_service.id).current_subscriptions == 0

    again = client.put(f"/subscriptions/{created['id']}/cancel")
    assert again.status_code == 409
    assert again.json()["detail"]["code"] == "invalid_transition"

    update = client.put(f"/subscriptions/{created['id']}", json={"address": {"city": "Pune"}})
    assert update.status_code == 409


def test_pause_and_resume(client, db_session, gaming_service, address_payload):
    created = _order(client, address_payload, [{"service_id": gaming_service.id}]).json()

    rejected = client.put(f"/subscriptions/{created['id']}/pause")
    assert rejected.status_code == 409

    subscription = db_session.get(models.Subscription, created["id"])
    subscription.status = models.SubscriptionStatus.ACTIVE
    db_session.commit()

    paused = client.put(f"/subscriptions/{created['id']}/pause")
    assert paused.status_code == 200
    assert paused.json()["status"] == "paused"
    assert paused.json()["paused_at"] is not None
    assert paused.json()["notes"][-1]["message"] == "Paused: User requested pause"

    resumed = client.put(f"/subscriptions/{created['id']}/resume")
    assert resumed.status_code == 200
    assert resumed.json()["status"] == "active"
    assert resumed.json()["paused_at"] is None


def test_payments_are_appended_in_order(client, gaming_service, address_payload):
    created = _order(client, address_payload, [{"service_id": gaming_service.id}]).json()
    url = f"/subscriptions/{created['id']}/payments"

    failed = client.post(url, json={"amount": "590", "method": "card", "status": "failed"})
    assert failed.status_code == 201
    assert failed.json()["payment_status"] == "pending"

    paid = client.post(
        url,
        json={
            "amount": "590",
            "method": "upi",
            "status": "success",
            "transaction_id": "UPI-123",
            "paid_at": "2024-06-01T09:00:00+00:00",
        },
    )

    assert paid.status_code == 201, paid.json()
    data = paid.json()
    assert data["payment_status"] == "paid"
    assert data["status"] == "pending"
    assert data["last_payment_at"].startswith("2024-06-01T09:00:00")
    assert [payment["status"] for payment in data["payments"]] == ["failed", "success"]
    assert Decimal(str(data["total_paid"])) == Decimal("590")


def test_end_date_before_start_date_is_rejected(client, gaming_service, address_payload):
    response = _order(
        client,
        address_payload,
        [{"service_id": gaming_service.id}],
        start_date="2024-06-10",
        end_date="2024-06-01",
    )

    assert response.status_code == 422

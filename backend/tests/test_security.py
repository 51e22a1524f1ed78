import pytest
from fastapi import HTTPException

from backend.app import models
from backend.app.security import (
    _decode_jwt,
    _load_jwt_key,
    create_access_token,
    generate_password_hash,
    verify_password,
)


def test_password_hash_roundtrip():
    stored = generate_password_hash("S3cure-Pass", iterations=1_000)

    assert stored.startswith("1000$")
    assert verify_password("S3cure-Pass", stored)
    assert not verify_password("wrong-pass", stored)


def test_empty_password_is_rejected():
    with pytest.raises(ValueError):
        generate_password_hash("")


def test_register_then_login(anonymous_client, db_session):
    response = anonymous_client.post(
        "/auth/register",
        json={"name": "Neha", "email": "Neha@Example.com", "password": "Str0ngPass!"},
    )

    assert response.status_code == 201, response.json()
    data = response.json()
    assert data["email"] == "neha@example.com"
    assert data["role"] == "customer"
    stored = db_session.get(models.User, data["id"])
    assert stored.password_hash != "Str0ngPass!"

    login = anonymous_client.post(
        "/auth/token", json={"email": "neha@example.com", "password": "Str0ngPass!"}
    )
    assert login.status_code == 200
    token = login.json()["access_token"]

    me = anonymous_client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["id"] == data["id"]
    assert me.json()["last_login_at"] is not None


def test_duplicate_email_is_rejected(anonymous_client, customer):
    response = anonymous_client.post(
        "/auth/register",
        json={"name": "Copy", "email": "CUSTOMER@example.com", "password": "An0therPass"},
    )

    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "email_taken"


def test_wrong_password_is_unauthorized(anonymous_client, customer):
    response = anonymous_client.post(
        "/auth/token", json={"email": customer.email, "password": "not-the-password"}
    )

    assert response.status_code == 401


def test_token_carries_subject_and_role(customer):
    payload = _decode_jwt(create_access_token(customer), _load_jwt_key())

    assert payload["sub"] == customer.id
    assert payload["role"] == "customer"
    assert payload["exp"] > 0


def test_tampered_token_is_rejected(anonymous_client, customer):
    header, payload, signature = create_access_token(customer).split(".")
    forged = f"{header}.{payload}.{signature[::-1]}"

    with pytest.raises(HTTPException) as excinfo:
        _decode_jwt(forged, _load_jwt_key())
    assert excinfo.value.status_code == 401

    response = anonymous_client.get("/auth/me", headers={"Authorization": f"Bearer {forged}"})
    assert response.status_code == 401


def test_deactivated_account_token_stops_working(
    anonymous_client, db_session, customer, customer_headers
):
    customer.is_active = False
    db_session.commit()

    response = anonymous_client.get("/auth/me", headers=customer_headers)

    assert response.status_code == 401

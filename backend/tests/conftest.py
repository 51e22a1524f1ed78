from __future__ import annotations

from decimal import Decimal
import base64
import os
import sys
from pathlib import Path
from typing import Callable, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker

# Ensure the project root (which exposes the ``backend`` package) is on ``sys.path``
PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

os.environ["RUN_DB_MIGRATIONS"] = "0"
os.environ.setdefault("JWT_SECRET", base64.urlsafe_b64encode(os.urandom(32)).decode())
os.environ.setdefault("ACCESS_TOKEN_EXPIRE_MINUTES", "60")

from backend.app.database import Base, get_db
from backend.app.main import app
from backend.app import models
from backend.app.security import generate_password_hash

CUSTOMER_PASSWORD = "Cust0merPass!"
ADMIN_PASSWORD = "Adm1nS3cret!"
FAST_HASH_ITERATIONS = 1_000

SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})


@event.listens_for(engine, "connect")
def _disable_pysqlite_implicit_begin(dbapi_connection, _connection_record) -> None:
    dbapi_connection.isolation_level = None


@event.listens_for(engine, "begin")
def _emit_begin(connection) -> None:
    connection.exec_driver_sql("BEGIN")


# Services commit and roll back freely; savepoints keep every test inside its
# own outer transaction.
TestingSessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    join_transaction_mode="create_savepoint",
)


@pytest.fixture(scope="session", autouse=True)
def setup_database() -> Generator[None, None, None]:
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session() -> Generator[Session, None, None]:
    connection = engine.connect()
    transaction = connection.begin()
    session = TestingSessionLocal(bind=connection)
    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()


def _create_user(
    db_session: Session,
    *,
    email: str,
    password: str,
    role: models.UserRole = models.UserRole.CUSTOMER,
    name: str = "Test User",
) -> models.User:
    user = models.User(
        name=name,
        email=email,
        role=role,
        password_hash=generate_password_hash(password, iterations=FAST_HASH_ITERATIONS),
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def customer(db_session: Session) -> models.User:
    return _create_user(
        db_session, email="customer@example.com", password=CUSTOMER_PASSWORD, name="Asha Rao"
    )


@pytest.fixture
def other_customer(db_session: Session) -> models.User:
    return _create_user(
        db_session, email="other@example.com", password=CUSTOMER_PASSWORD, name="Ravi Iyer"
    )


@pytest.fixture
def admin_user(db_session: Session) -> models.User:
    return _create_user(
        db_session,
        email="admin@example.com",
        password=ADMIN_PASSWORD,
        role=models.UserRole.ADMIN,
        name="Site Admin",
    )


@pytest.fixture
def anonymous_client(db_session: Session) -> Generator[TestClient, None, None]:
    def override_get_db() -> Generator[Session, None, None]:
        try:
            yield db_session
        finally:
            db_session.expire_all()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.pop(get_db, None)


def _login(test_client: TestClient, email: str, password: str) -> dict[str, str]:
    response = test_client.post("/auth/token", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def customer_headers(anonymous_client: TestClient, customer: models.User) -> dict[str, str]:
    return _login(anonymous_client, customer.email, CUSTOMER_PASSWORD)


@pytest.fixture
def other_headers(anonymous_client: TestClient, other_customer: models.User) -> dict[str, str]:
    return _login(anonymous_client, other_customer.email, CUSTOMER_PASSWORD)


@pytest.fixture
def admin_headers(anonymous_client: TestClient, admin_user: models.User) -> dict[str, str]:
    return _login(anonymous_client, admin_user.email, ADMIN_PASSWORD)


@pytest.fixture
def client(
    anonymous_client: TestClient, customer_headers: dict[str, str]
) -> TestClient:
    anonymous_client.headers.update(customer_headers)
    return anonymous_client


@pytest.fixture
def make_service(db_session: Session) -> Callable[..., models.Service]:
    counter = {"value": 0}

    def factory(**overrides) -> models.Service:
        counter["value"] += 1
        name = overrides.pop("name", f"Service {counter['value']}")
        payload = {
            "name": name,
            "slug": overrides.pop("slug", name.lower().replace(" ", "-")),
            "description": "Test service",
            "category": models.ServiceCategory.GAMING,
            "price_amount": Decimal("500"),
            "currency": models.Currency.INR,
            "billing_cycle": models.BillingCycle.MONTHLY,
            "features": [],
            "specifications": {},
            "regions": [],
            "tags": [],
            "max_quantity_per_user": 5,
        }
        payload.update(overrides)
        service = models.Service(**payload)
        db_session.add(service)
        db_session.commit()
        db_session.refresh(service)
        return service

    return factory


@pytest.fixture
def address_payload() -> dict[str, str]:
    return {
        "street": "12 MG Road",
        "city": "Bengaluru",
        "state": "Karnataka",
        "pincode": "560001",
    }

from __future__ import annotations

import threading
from decimal import Decimal

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from backend.app import models, schemas
from backend.app.database import Base, build_engine_kwargs
from backend.app.security import generate_password_hash
from backend.app.services import CapacityError, SubscriptionService

CAPACITY = 3
WORKERS = CAPACITY + 2


def _order(service_id: int) -> schemas.SubscriptionCreate:
    return schemas.SubscriptionCreate(
        services=[schemas.OrderLine(service_id=service_id)],
        address=schemas.Address(
            street="12 MG Road", city="Bengaluru", state="Karnataka", pincode="560001"
        ),
    )


def test_concurrent_orders_never_exceed_capacity(tmp_path):
    url = f"sqlite:///{tmp_path / 'capacity.db'}"
    engine = create_engine(url, **build_engine_kwargs(url))
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)

    with factory() as setup:
        user = models.User(
            name="Load Tester",
            email="load@example.com",
            password_hash=generate_password_hash("L0adTester", iterations=1_000),
        )
        service = models.Service(
            name="Limited Drop",
            slug="limited-drop",
            description="Only a few slots",
            category=models.ServiceCategory.GAMING,
            price_amount=Decimal("250"),
            max_subscriptions=CAPACITY,
            max_quantity_per_user=1,
        )
        setup.add_all([user, service])
        setup.commit()
        user_id, service_id = user.id, service.id

    barrier = threading.Barrier(WORKERS)
    outcomes: list[str] = []
    lock = threading.Lock()

    def place_order() -> None:
        with factory() as session:
            owner = session.get(models.User, user_id)
            barrier.wait()
            try:
                SubscriptionService.create_subscription(session, owner, _order(service_id))
                result = "created"
            except CapacityError as exc:
                result = exc.code
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=place_order) for _ in range(WORKERS)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)

    try:
        assert sorted(outcomes) == ["capacity_exceeded"] * 2 + ["created"] * CAPACITY
        with factory() as check:
            assert check.get(models.Service, service_id).current_subscriptions == CAPACITY
            assert check.query(models.Subscription).count() == CAPACITY
    finally:
        engine.dispose()

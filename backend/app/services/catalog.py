"""Business logic for the service catalog."""

from __future__ import annotations

import logging
import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Tuple

from sqlalchemy import String, asc, cast, desc, func, or_, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .. import models, schemas
from .errors import CapacityError, NotFoundError, PersistenceError, ValidationError

LOGGER = logging.getLogger(__name__)

SILVER_MAX_ONLINE_ORDER_VALUE = Decimal("10000")
MAX_PAGE_SIZE = 50
SIMILAR_SERVICES_LIMIT = 4
SIMILAR_PRICE_SPREAD = Decimal("0.3")

_SORT_COLUMNS = {
    "name": models.Service.name,
    "price": models.Service.price_amount,
    "created_at": models.Service.created_at,
}
_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    """Lower-case ``name`` and collapse non alphanumeric runs into dashes."""

    return _NON_ALNUM.sub("-", name.lower()).strip("-")


def _round_whole(value) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class CatalogService:
    """Encapsulates catalog queries and administrative changes."""

    @staticmethod
    def list_services(
        db: Session,
        *,
        include_inactive: bool = False,
        category: Optional[models.ServiceCategory] = None,
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
        search: Optional[str] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        skip: int = 0,
        limit: int = 12,
    ) -> Tuple[Iterable[models.Service], int]:
        query = db.query(models.Service)

        if not include_inactive:
            query = query.filter(models.Service.is_active.is_(True))
        if category:
            query = query.filter(models.Service.category == category)
        if min_price is not None:
            query = query.filter(models.Service.price_amount >= min_price)
        if max_price is not None:
            query = query.filter(models.Service.price_amount <= max_price)
        if search:
            normalized = f"%{search.strip().lower()}%"
            query = query.filter(
                or_(
                    func.lower(models.Service.name).like(normalized),
                    func.lower(models.Service.description).like(normalized),
                    func.lower(cast(models.Service.tags, String)).like(normalized),
                )
            )

        column = _SORT_COLUMNS.get(sort_by)
        if column is None:
            raise ValidationError(
                f"Unsupported sort field {sort_by}",
                context={"sort_by": sort_by, "allowed": sorted(_SORT_COLUMNS)},
            )
        direction = asc if sort_order == "asc" else desc

        total = query.count()
        items = (
            query.order_by(direction(column), models.Service.id.asc())
            .offset(max(skip, 0))
            .limit(min(max(limit, 1), MAX_PAGE_SIZE))
            .all()
        )
        return items, total

    @staticmethod
    def get_service(
        db: Session, service_id: int, *, include_inactive: bool = False
    ) -> models.Service:
        service = db.get(models.Service, service_id)
        if service is None or (not include_inactive and not service.is_active):
            raise NotFoundError(
                "Service not found",
                code="service_not_found",
                context={"service_id": service_id},
            )
        return service

    @staticmethod
    def get_by_slug(db: Session, slug: str) -> models.Service:
        service = (
            db.query(models.Service)
            .filter(models.Service.slug == slug, models.Service.is_active.is_(True))
            .first()
        )
        if service is None:
            raise NotFoundError(
                "Service not found", code="service_not_found", context={"slug": slug}
            )
        return service

    @staticmethod
    def find_by_ids(db: Session, service_ids: Iterable[int]) -> dict[int, models.Service]:
        ids = list(set(service_ids))
        if not ids:
            return {}
        rows = db.query(models.Service).filter(models.Service.id.in_(ids)).all()
        return {service.id: service for service in rows}

    @staticmethod
    def availability(service: models.Service) -> dict:
        return {
            "is_available": service.is_available,
            "is_active": bool(service.is_active),
            "current_subscriptions": service.current_subscriptions or 0,
            "max_subscriptions": service.max_subscriptions,
            "regions": list(service.regions or []),
            "max_online_order_value": service.max_online_order_value,
        }

    @staticmethod
    def category_summary(db: Session) -> list[dict]:
        """Count active services per category with a whole-unit price range."""

        rows = (
            db.query(
                models.Service.category,
                func.count(models.Service.id),
                func.min(models.Service.price_amount),
                func.max(models.Service.price_amount),
                func.avg(models.Service.price_amount),
            )
            .filter(models.Service.is_active.is_(True))
            .group_by(models.Service.category)
            .all()
        )
        summary = [
            {
                "name": models.ServiceCategory(category),
                "count": count,
                "price_range": {
                    "min": _round_whole(minimum),
                    "max": _round_whole(maximum),
                    "average": _round_whole(average),
                },
            }
            for category, count, minimum, maximum, average in rows
        ]
        return sorted(summary, key=lambda entry: entry["name"].value)

    @staticmethod
    def similar_services(
        db: Session, service: models.Service, *, limit: int = SIMILAR_SERVICES_LIMIT
    ) -> list[models.Service]:
        """Active services sharing the category, a nearby price or any tag."""

        price = Decimal(service.price_amount)
        spread = price * SIMILAR_PRICE_SPREAD
        criteria = [
            models.Service.category == service.category,
            models.Service.price_amount.between(price - spread, price + spread),
        ]
        tags_text = cast(models.Service.tags, String)
        criteria.extend(
            tags_text.contains(f'"{tag}"', autoescape=True) for tag in service.tags or []
        )
        return (
            db.query(models.Service)
            .filter(
                models.Service.id != service.id,
                models.Service.is_active.is_(True),
                or_(*criteria),
            )
            .order_by(models.Service.id.asc())
            .limit(limit)
            .all()
        )

    @classmethod
    def create_service(
        cls,
        db: Session,
        data: schemas.ServiceCreate,
        *,
        actor_id: Optional[str] = None,
    ) -> models.Service:
        payload = data.model_dump(mode="python")
        payload["name"] = payload["name"].strip()
        payload["slug"] = slugify(payload["name"])
        cls._apply_defaults(payload)
        cls._validate_capacity(payload.get("max_subscriptions"), 0)
        service = models.Service(**payload, created_by=actor_id, last_modified_by=actor_id)
        db.add(service)
        cls._commit(db, name=payload["name"])
        db.refresh(service)
        LOGGER.info("Created catalog service %s (%s)", service.id, service.slug)
        return service

    @classmethod
    def update_service(
        cls,
        db: Session,
        service: models.Service,
        data: schemas.ServiceUpdate,
        *,
        actor_id: Optional[str] = None,
    ) -> models.Service:
        update_data = data.model_dump(exclude_unset=True, mode="python")
        if update_data.get("name"):
            update_data["name"] = update_data["name"].strip()
            update_data["slug"] = slugify(update_data["name"])
        if "max_subscriptions" in update_data:
            cls._validate_capacity(
                update_data["max_subscriptions"], service.current_subscriptions or 0
            )
        for field, value in update_data.items():
            setattr(service, field, value)
        service.last_modified_by = actor_id
        db.add(service)
        cls._commit(db, name=service.name)
        db.refresh(service)
        LOGGER.info("Updated catalog service %s", service.id)
        return service

    @classmethod
    def deactivate_service(
        cls, db: Session, service: models.Service, *, actor_id: Optional[str] = None
    ) -> models.Service:
        service.is_active = False
        service.last_modified_by = actor_id
        db.add(service)
        cls._commit(db, name=service.name)
        db.refresh(service)
        LOGGER.info("Deactivated catalog service %s", service.id)
        return service

    @staticmethod
    def increment_subscription_count(db: Session, service_id: int) -> None:
        """Claim one slot of ``service_id`` or raise :class:`CapacityError`.

        The capacity check and the increment happen in a single statement so
        concurrent orders cannot push the counter past the cap.
        """

        service_table = models.Service.__table__
        statement = (
            update(service_table)
            .where(service_table.c.service_id == service_id)
            .where(
                or_(
                    service_table.c.max_subscriptions.is_(None),
                    service_table.c.current_subscriptions
                    < service_table.c.max_subscriptions,
                )
            )
            .values(current_subscriptions=service_table.c.current_subscriptions + 1)
        )
        result = db.execute(statement)
        if result.rowcount == 0:
            raise CapacityError(
                f"Service {service_id} has reached its subscription limit",
                code="capacity_exceeded",
                context={"service_id": service_id},
            )

    @staticmethod
    def decrement_subscription_count(db: Session, service_id: int) -> bool:
        """Release one slot of ``service_id``; the counter never goes below zero."""

        service_table = models.Service.__table__
        statement = (
            update(service_table)
            .where(service_table.c.service_id == service_id)
            .where(service_table.c.current_subscriptions > 0)
            .values(current_subscriptions=service_table.c.current_subscriptions - 1)
        )
        return db.execute(statement).rowcount > 0

    @staticmethod
    def _apply_defaults(payload: dict) -> None:
        if payload.get("category") == models.ServiceCategory.SILVER:
            payload["max_online_order_value"] = SILVER_MAX_ONLINE_ORDER_VALUE
            payload["requires_quote"] = True

    @staticmethod
    def _validate_capacity(max_subscriptions: Optional[int], current: int) -> None:
        if max_subscriptions is not None and max_subscriptions < current:
            raise ValidationError(
                "Subscription cap cannot be lower than the current subscriber count",
                code="capacity_below_current",
                context={"max_subscriptions": max_subscriptions, "current": current},
            )

    @staticmethod
    def _commit(db: Session, *, name: str) -> None:
        try:
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            raise ValidationError(
                "A service with this name already exists",
                code="duplicate_service_name",
                context={"name": name},
            ) from exc
        except SQLAlchemyError as exc:
            db.rollback()
            LOGGER.exception("Unable to persist catalog service %s", name)
            raise PersistenceError("Unable to save the service") from exc


__all__ = ["CatalogService", "slugify", "SILVER_MAX_ONLINE_ORDER_VALUE"]

"""Order validation against service availability and per-user limits."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Mapping, Sequence

from ..database import read_int_env
from ..models.service import Service, ServiceCategory
from .errors import CapacityError, NotFoundError, ValidationError

LOGGER = logging.getLogger(__name__)

USER_LIMIT_ENV = "MAX_ACTIVE_SUBSCRIPTIONS_PER_USER"
DEFAULT_USER_LIMIT = 5


def active_subscription_limit() -> int:
    return read_int_env(USER_LIMIT_ENV, DEFAULT_USER_LIMIT)


def requires_quote(service: Service) -> bool:
    return bool(service.requires_quote) or service.category == ServiceCategory.SILVER


class ServiceAvailabilityGuard:
    """Fail-fast checks run before any write happens for a new order.

    ``lines`` is any sequence of objects exposing ``service_id`` and
    ``quantity``; ``services`` maps the requested ids to loaded catalog rows.
    """

    @staticmethod
    def check_user_limit(active_count: int, requested: int, *, limit: int | None = None) -> None:
        limit = active_subscription_limit() if limit is None else limit
        if active_count + requested > limit:
            raise CapacityError(
                f"Maximum {limit} active subscriptions allowed per user",
                code="user_limit_exceeded",
                context={
                    "active_subscriptions": active_count,
                    "requested": requested,
                    "limit": limit,
                },
            )

    @staticmethod
    def check_line(service: Service | None, service_id: int, quantity: int) -> None:
        if service is None:
            raise NotFoundError(
                f"Service {service_id} not found",
                code="service_not_found",
                context={"service_id": service_id},
            )
        if not service.is_active:
            raise ValidationError(
                f"Service {service.name} is not available",
                code="service_unavailable",
                context={"service_id": service_id},
            )
        if quantity > service.max_quantity_per_user:
            raise ValidationError(
                f"Maximum {service.max_quantity_per_user} quantity allowed for {service.name}",
                code="quantity_exceeded",
                context={
                    "service_id": service_id,
                    "quantity": quantity,
                    "max_quantity_per_user": service.max_quantity_per_user,
                },
            )
        if service.max_subscriptions is not None and (
            (service.current_subscriptions or 0) >= service.max_subscriptions
        ):
            raise CapacityError(
                f"Service {service.name} has reached its subscription limit",
                code="capacity_exceeded",
                context={
                    "service_id": service_id,
                    "max_subscriptions": service.max_subscriptions,
                },
            )
        if requires_quote(service) and service.max_online_order_value is not None:
            order_value = Decimal(service.price_amount) * quantity
            if order_value > Decimal(service.max_online_order_value):
                raise ValidationError(
                    f"Orders of {service.name} above {service.max_online_order_value} "
                    "require a quote. Please contact us.",
                    code="quote_required",
                    context={
                        "service_id": service_id,
                        "order_value": str(order_value),
                        "max_online_order_value": str(service.max_online_order_value),
                    },
                )

    @classmethod
    def check_order(
        cls,
        lines: Sequence,
        services: Mapping[int, Service],
        *,
        active_count: int,
        limit: int | None = None,
    ) -> None:
        cls.check_user_limit(active_count, len(lines), limit=limit)

        seen: set[int] = set()
        for line in lines:
            if line.service_id in seen:
                raise ValidationError(
                    f"Service {line.service_id} appears more than once in the order",
                    code="duplicate_service",
                    context={"service_id": line.service_id},
                )
            seen.add(line.service_id)

        for line in lines:
            try:
                cls.check_line(services.get(line.service_id), line.service_id, line.quantity)
            except (CapacityError, NotFoundError, ValidationError) as exc:
                LOGGER.warning("Order rejected for service %s: %s", line.service_id, exc.code)
                raise


__all__ = [
    "DEFAULT_USER_LIMIT",
    "ServiceAvailabilityGuard",
    "active_subscription_limit",
    "requires_quote",
]

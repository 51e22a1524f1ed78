"""Error taxonomy shared by the subscription services."""

from __future__ import annotations

from typing import Any, Optional


class SubscriptionError(RuntimeError):
    """Base class for failures raised by the service layer.

    Every error carries a machine readable ``code`` and a ``detail`` payload
    that routers forward verbatim inside the HTTP error body.
    """

    code = "subscription_error"

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.context = dict(context or {})

    @property
    def detail(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        payload.update(self.context)
        return payload


class ValidationError(SubscriptionError):
    """Input is malformed or violates a service constraint."""

    code = "validation_error"


class CapacityError(SubscriptionError):
    """A service or per-user subscription limit would be exceeded."""

    code = "capacity_exceeded"


class NotFoundError(SubscriptionError):
    code = "not_found"


class ConflictError(SubscriptionError):
    """The requested transition is not allowed from the current status."""

    code = "invalid_transition"


class PermissionDenied(SubscriptionError):
    code = "permission_denied"


class PersistenceError(SubscriptionError):
    """The database rejected or failed a write."""

    code = "persistence_error"


__all__ = [
    "CapacityError",
    "ConflictError",
    "NotFoundError",
    "PermissionDenied",
    "PersistenceError",
    "SubscriptionError",
    "ValidationError",
]

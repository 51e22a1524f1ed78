"""Translate service layer errors into HTTP responses."""

from __future__ import annotations

from fastapi import HTTPException, status

from ..services.errors import (
    CapacityError,
    ConflictError,
    NotFoundError,
    PermissionDenied,
    PersistenceError,
    SubscriptionError,
    ValidationError,
)

_STATUS_BY_ERROR: tuple[tuple[type[SubscriptionError], int], ...] = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (PermissionDenied, status.HTTP_403_FORBIDDEN),
    (CapacityError, status.HTTP_400_BAD_REQUEST),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (PersistenceError, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def status_for(exc: SubscriptionError) -> int:
    for error_cls, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_cls):
            return status_code
    return status.HTTP_400_BAD_REQUEST


def to_http_exception(exc: SubscriptionError) -> HTTPException:
    return HTTPException(status_code=status_for(exc), detail=exc.detail)

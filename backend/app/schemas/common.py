"""Shared schema definitions."""

from __future__ import annotations

from typing import Any, Generic, Optional, Sequence, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class PaginatedResponse(BaseModel, Generic[T]):
    """Standard shape for paginated listings."""

    items: Sequence[T]
    total: int = Field(..., ge=0)
    limit: int = Field(..., ge=1)
    skip: int = Field(..., ge=0)


class ErrorDetail(BaseModel):
    """Body carried in ``detail`` when a business rule rejects a request."""

    code: str
    message: str
    context: Optional[dict[str, Any]] = None

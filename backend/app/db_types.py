"""Custom SQLAlchemy column types shared by the subscription models."""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import JSON
from sqlalchemy.dialects import postgresql
from sqlalchemy.dialects.sqlite import JSON as SQLiteJSON
from sqlalchemy.types import CHAR, TypeDecorator


class GUID(TypeDecorator):
    """Platform-independent GUID/UUID type.

    Stores UUID values as ``UUID`` in PostgreSQL and as 36-character strings
    elsewhere. Values are normalised to strings when read so identifiers can
    travel through the API as plain text.
    """

    impl = CHAR
    cache_ok = True

    def load_dialect_impl(self, dialect):  # type: ignore[override]
        if dialect.name == "postgresql":
            return dialect.type_descriptor(postgresql.UUID(as_uuid=True))
        return dialect.type_descriptor(CHAR(36))

    def process_bind_param(self, value: Any, dialect):  # type: ignore[override]
        if value is None:
            return value
        if dialect.name == "postgresql":
            if isinstance(value, uuid.UUID):
                return value
            return uuid.UUID(str(value))
        return str(value)

    def process_result_value(self, value: Any, dialect):  # type: ignore[override]
        if value is None:
            return value
        return str(value)


def json_column_type() -> JSON:
    """JSON column type that maps to the native SQLite JSON implementation."""

    return JSON().with_variant(SQLiteJSON(), "sqlite")


def enum_values(enum_cls) -> list[str]:
    """Persist enum members by value so stored strings match the API contract."""

    return [member.value for member in enum_cls]

"""Pydantic schemas for authentication endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    """Payload required to obtain an access token."""

    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=8)


class RegisterRequest(BaseModel):
    """Payload used by customers to open an account."""

    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str = Field(..., min_length=8)
    phone: str | None = Field(default=None, pattern=r"^[0-9+\-\s]{7,20}$")


class TokenResponse(BaseModel):
    """Access token returned upon successful authentication."""

    access_token: str
    token_type: str = "bearer"

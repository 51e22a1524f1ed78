"""Authentication endpoints for customers and administrators."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..database import get_db
from ..security import create_access_token, get_current_user
from ..services import SubscriptionError, UserService
from .errors import to_http_exception

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=schemas.UserRead, status_code=status.HTTP_201_CREATED)
def register(payload: schemas.RegisterRequest, db: Session = Depends(get_db)) -> schemas.UserRead:
    """Open a customer account."""

    try:
        return UserService.register(db, payload)
    except SubscriptionError as exc:
        raise to_http_exception(exc) from exc


@router.post("/token", response_model=schemas.TokenResponse)
def obtain_access_token(
    payload: schemas.LoginRequest, db: Session = Depends(get_db)
) -> schemas.TokenResponse:
    """Authenticate a user and return an access token."""

    try:
        user = UserService.authenticate(db, payload.email, payload.password)
    except SubscriptionError as exc:
        raise to_http_exception(exc) from exc
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return schemas.TokenResponse(access_token=create_access_token(user))


@router.get("/me", response_model=schemas.UserRead)
def read_current_user(user: models.User = Depends(get_current_user)) -> schemas.UserRead:
    return user

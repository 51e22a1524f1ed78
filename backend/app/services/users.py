"""Account management for customers and administrators."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .. import models, schemas
from ..security import generate_password_hash, verify_password
from .errors import NotFoundError, PermissionDenied, PersistenceError, ValidationError

LOGGER = logging.getLogger(__name__)


def _commit(db: Session, user: models.User, *, action: str) -> None:
    user_id = user.id
    db.add(user)
    try:
        db.commit()
    except SQLAlchemyError as exc:
        LOGGER.exception("Unable to %s user %s", action, user_id)
        db.rollback()
        raise PersistenceError(f"Unable to {action} the account") from exc
    db.refresh(user)


class UserService:
    """Registration, authentication and administrative account changes."""

    @staticmethod
    def get_user(db: Session, user_id: str) -> models.User:
        user = db.get(models.User, user_id)
        if user is None:
            raise NotFoundError(
                "User not found", code="user_not_found", context={"user_id": user_id}
            )
        return user

    @staticmethod
    def get_by_email(db: Session, email: str) -> Optional[models.User]:
        normalized = email.strip().lower()
        return db.query(models.User).filter(func.lower(models.User.email) == normalized).first()

    @classmethod
    def register(
        cls,
        db: Session,
        data: schemas.RegisterRequest,
        *,
        role: models.UserRole = models.UserRole.CUSTOMER,
    ) -> models.User:
        email = data.email.strip().lower()
        if cls.get_by_email(db, email) is not None:
            raise ValidationError(
                "An account with this email already exists",
                code="email_taken",
                context={"email": email},
            )
        user = models.User(
            name=data.name.strip(),
            email=email,
            phone=data.phone,
            role=role,
            password_hash=generate_password_hash(data.password),
        )
        db.add(user)
        try:
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            raise ValidationError(
                "An account with this email already exists",
                code="email_taken",
                context={"email": email},
            ) from exc
        except SQLAlchemyError as exc:
            db.rollback()
            LOGGER.exception("Unable to register user %s", email)
            raise PersistenceError("Unable to create the account") from exc
        db.refresh(user)
        LOGGER.info("Registered %s account %s", models.UserRole(role).value, user.id)
        return user

    @classmethod
    def authenticate(cls, db: Session, email: str, password: str) -> Optional[models.User]:
        """Return the matching active user, or ``None`` when credentials are wrong."""

        user = cls.get_by_email(db, email)
        if user is None or not verify_password(password, user.password_hash):
            LOGGER.warning("Failed login attempt for %s", email.strip().lower())
            return None
        if not user.is_active:
            raise PermissionDenied("Account is deactivated", code="account_inactive")
        user.last_login_at = datetime.now(timezone.utc)
        _commit(db, user, action="record login for")
        return user

    @staticmethod
    def list_users(
        db: Session,
        *,
        role: Optional[models.UserRole] = None,
        is_active: Optional[bool] = None,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[Iterable[models.User], int]:
        query = db.query(models.User)
        if role:
            query = query.filter(models.User.role == role)
        if is_active is not None:
            query = query.filter(models.User.is_active.is_(is_active))
        if search:
            normalized = f"%{search.strip().lower()}%"
            query = query.filter(
                func.lower(models.User.name).like(normalized)
                | func.lower(models.User.email).like(normalized)
            )
        total = query.count()
        items = (
            query.order_by(models.User.created_at.desc(), models.User.email.asc())
            .offset(max(skip, 0))
            .limit(max(limit, 1))
            .all()
        )
        return items, total

    @staticmethod
    def set_active(
        db: Session, user: models.User, is_active: bool, *, actor: models.User
    ) -> models.User:
        if str(user.id) == str(actor.id) and not is_active:
            raise ValidationError(
                "Administrators cannot deactivate their own account",
                code="self_deactivation",
            )
        user.is_active = is_active
        _commit(db, user, action="update")
        LOGGER.info(
            "User %s %s by %s",
            user.id,
            "activated" if is_active else "deactivated",
            actor.id,
        )
        return user


__all__ = ["UserService"]

"""Administrative endpoints for the catalog, subscriptions and users."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..database import get_db
from ..models.subscription import SubscriptionStatus
from ..models.user import UserRole
from ..security import require_admin
from ..services import CatalogService, SubscriptionError, SubscriptionService, UserService
from .errors import to_http_exception

LOGGER = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_admin)])


@router.post(
    "/services", response_model=schemas.ServiceRead, status_code=status.HTTP_201_CREATED
)
def create_service(
    payload: schemas.ServiceCreate,
    db: Session = Depends(get_db),
    admin: models.User = Depends(require_admin),
) -> schemas.ServiceRead:
    try:
        return CatalogService.create_service(db, payload, actor_id=admin.id)
    except SubscriptionError as exc:
        raise to_http_exception(exc) from exc


@router.put("/services/{service_id}", response_model=schemas.ServiceRead)
def update_service(
    service_id: int,
    payload: schemas.ServiceUpdate,
    db: Session = Depends(get_db),
    admin: models.User = Depends(require_admin),
) -> schemas.ServiceRead:
    try:
        service = CatalogService.get_service(db, service_id, include_inactive=True)
        return CatalogService.update_service(db, service, payload, actor_id=admin.id)
    except SubscriptionError as exc:
        raise to_http_exception(exc) from exc


@router.delete("/services/{service_id}", response_model=schemas.ServiceRead)
def deactivate_service(
    service_id: int,
    db: Session = Depends(get_db),
    admin: models.User = Depends(require_admin),
) -> schemas.ServiceRead:
    """Soft delete: the service stays referenced by existing subscriptions."""

    try:
        service = CatalogService.get_service(db, service_id, include_inactive=True)
        return CatalogService.deactivate_service(db, service, actor_id=admin.id)
    except SubscriptionError as exc:
        raise to_http_exception(exc) from exc


@router.get("/subscriptions", response_model=schemas.SubscriptionListResponse)
def list_subscriptions(
    db: Session = Depends(get_db),
    status_filter: Optional[SubscriptionStatus] = Query(
        None, alias="status", description="Filter by status"
    ),
    user_id: Optional[str] = Query(None, description="Filter by owner"),
    skip: int = Query(0, ge=0, description="Records to skip"),
    limit: int = Query(20, ge=1, le=100, description="Records to return"),
) -> schemas.SubscriptionListResponse:
    items, total = SubscriptionService.list_subscriptions(
        db, user_id=user_id, status=status_filter, skip=skip, limit=limit
    )
    return schemas.SubscriptionListResponse(items=items, total=total, limit=limit, skip=skip)


@router.put("/subscriptions/{subscription_id}/status", response_model=schemas.SubscriptionRead)
def set_subscription_status(
    subscription_id: str,
    payload: schemas.AdminStatusUpdate,
    db: Session = Depends(get_db),
    admin: models.User = Depends(require_admin),
) -> schemas.SubscriptionRead:
    try:
        subscription = SubscriptionService.get_subscription(db, subscription_id)
        updated = SubscriptionService.admin_set_status(
            db, subscription, payload.status, payload.reason, actor=admin
        )
    except SubscriptionError as exc:
        raise to_http_exception(exc) from exc
    LOGGER.info(
        "Admin %s set subscription %s to %s", admin.id, subscription_id, payload.status.value
    )
    return updated


@router.get("/users", response_model=schemas.UserListResponse)
def list_users(
    db: Session = Depends(get_db),
    role: Optional[UserRole] = Query(None, description="Filter by role"),
    is_active: Optional[bool] = Query(None, description="Filter by account state"),
    search: Optional[str] = Query(None, description="Match name or email"),
    skip: int = Query(0, ge=0, description="Records to skip"),
    limit: int = Query(20, ge=1, le=100, description="Records to return"),
) -> schemas.UserListResponse:
    items, total = UserService.list_users(
        db, role=role, is_active=is_active, search=search, skip=skip, limit=limit
    )
    return schemas.UserListResponse(items=items, total=total, limit=limit, skip=skip)


@router.put("/users/{user_id}/status", response_model=schemas.UserRead)
def set_user_status(
    user_id: str,
    payload: schemas.UserStatusUpdate,
    db: Session = Depends(get_db),
    admin: models.User = Depends(require_admin),
) -> schemas.UserRead:
    try:
        user = UserService.get_user(db, user_id)
        return UserService.set_active(db, user, payload.is_active, actor=admin)
    except SubscriptionError as exc:
        raise to_http_exception(exc) from exc

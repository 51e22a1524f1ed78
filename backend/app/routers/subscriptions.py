"""Customer facing subscription endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..database import get_db
from ..models.subscription import SubscriptionStatus
from ..security import get_current_user
from ..services import SubscriptionError, SubscriptionService
from .errors import to_http_exception

router = APIRouter(dependencies=[Depends(get_current_user)])


def _load_for(db: Session, subscription_id: str, user: models.User) -> models.Subscription:
    try:
        return SubscriptionService.get_subscription(db, subscription_id, actor=user)
    except SubscriptionError as exc:
        raise to_http_exception(exc) from exc


@router.post("", response_model=schemas.SubscriptionRead, status_code=status.HTTP_201_CREATED)
def create_subscription(
    payload: schemas.SubscriptionCreate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> schemas.SubscriptionRead:
    try:
        return SubscriptionService.create_subscription(db, user, payload)
    except SubscriptionError as exc:
        raise to_http_exception(exc) from exc


@router.get("", response_model=schemas.SubscriptionListResponse)
def list_my_subscriptions(
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
    status_filter: Optional[SubscriptionStatus] = Query(
        None, alias="status", description="Filter by status"
    ),
    skip: int = Query(0, ge=0, description="Records to skip"),
    limit: int = Query(10, ge=1, le=100, description="Records to return"),
) -> schemas.SubscriptionListResponse:
    items, total = SubscriptionService.list_subscriptions(
        db, user_id=user.id, status=status_filter, skip=skip, limit=limit
    )
    return schemas.SubscriptionListResponse(items=items, total=total, limit=limit, skip=skip)


@router.get("/{subscription_id}", response_model=schemas.SubscriptionRead)
def get_subscription(
    subscription_id: str,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> schemas.SubscriptionRead:
    return _load_for(db, subscription_id, user)


@router.put("/{subscription_id}", response_model=schemas.SubscriptionRead)
def update_subscription(
    subscription_id: str,
    payload: schemas.SubscriptionUpdate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> schemas.SubscriptionRead:
    """Change the address or installation details of a pending or active subscription."""

    subscription = _load_for(db, subscription_id, user)
    try:
        return SubscriptionService.update_subscription(db, subscription, payload)
    except SubscriptionError as exc:
        raise to_http_exception(exc) from exc


@router.put("/{subscription_id}/cancel", response_model=schemas.SubscriptionRead)
def cancel_subscription(
    subscription_id: str,
    payload: Optional[schemas.TransitionRequest] = Body(default=None),
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> schemas.SubscriptionRead:
    subscription = _load_for(db, subscription_id, user)
    reason = payload.reason if payload else None
    try:
        return SubscriptionService.cancel(db, subscription, reason, actor=user)
    except SubscriptionError as exc:
        raise to_http_exception(exc) from exc


@router.put("/{subscription_id}/pause", response_model=schemas.SubscriptionRead)
def pause_subscription(
    subscription_id: str,
    payload: Optional[schemas.TransitionRequest] = Body(default=None),
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> schemas.SubscriptionRead:
    subscription = _load_for(db, subscription_id, user)
    reason = payload.reason if payload else None
    try:
        return SubscriptionService.pause(db, subscription, reason, actor=user)
    except SubscriptionError as exc:
        raise to_http_exception(exc) from exc


@router.put("/{subscription_id}/resume", response_model=schemas.SubscriptionRead)
def resume_subscription(
    subscription_id: str,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> schemas.SubscriptionRead:
    subscription = _load_for(db, subscription_id, user)
    try:
        return SubscriptionService.resume(db, subscription, actor=user)
    except SubscriptionError as exc:
        raise to_http_exception(exc) from exc


@router.post(
    "/{subscription_id}/payments",
    response_model=schemas.SubscriptionRead,
    status_code=status.HTTP_201_CREATED,
)
def add_payment(
    subscription_id: str,
    payload: schemas.PaymentCreate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> schemas.SubscriptionRead:
    """Append a payment record to the subscription history."""

    subscription = _load_for(db, subscription_id, user)
    try:
        return SubscriptionService.add_payment(db, subscription, payload, actor=user)
    except SubscriptionError as exc:
        raise to_http_exception(exc) from exc

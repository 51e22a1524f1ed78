"""Public API for browsing the service catalog."""

from __future__ import annotations

from decimal import Decimal
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db
from ..models.service import ServiceCategory
from ..services import CatalogService, SubscriptionError
from .errors import to_http_exception

router = APIRouter()


@router.get("", response_model=schemas.ServiceListResponse)
def list_services(
    db: Session = Depends(get_db),
    category: Optional[ServiceCategory] = Query(None, description="Filter by category"),
    min_price: Optional[Decimal] = Query(None, ge=0, description="Minimum price"),
    max_price: Optional[Decimal] = Query(None, ge=0, description="Maximum price"),
    search: Optional[str] = Query(None, description="Match name, description or tags"),
    sort_by: Literal["name", "price", "created_at"] = Query("created_at"),
    sort_order: Literal["asc", "desc"] = Query("desc"),
    skip: int = Query(0, ge=0, description="Records to skip"),
    limit: int = Query(12, ge=1, le=50, description="Records to return"),
) -> schemas.ServiceListResponse:
    try:
        items, total = CatalogService.list_services(
            db,
            category=category,
            min_price=min_price,
            max_price=max_price,
            search=search,
            sort_by=sort_by,
            sort_order=sort_order,
            skip=skip,
            limit=limit,
        )
    except SubscriptionError as exc:
        raise to_http_exception(exc) from exc
    return schemas.ServiceListResponse(items=items, total=total, limit=limit, skip=skip)


@router.get("/categories", response_model=schemas.CategoryListResponse)
def list_categories(db: Session = Depends(get_db)) -> schemas.CategoryListResponse:
    """Active-service counts and price ranges per category."""

    return schemas.CategoryListResponse(categories=CatalogService.category_summary(db))


@router.get("/slug/{slug}", response_model=schemas.ServiceRead)
def get_service_by_slug(slug: str, db: Session = Depends(get_db)) -> schemas.ServiceRead:
    try:
        return CatalogService.get_by_slug(db, slug)
    except SubscriptionError as exc:
        raise to_http_exception(exc) from exc


@router.get("/{service_id}", response_model=schemas.ServiceRead)
def get_service(service_id: int, db: Session = Depends(get_db)) -> schemas.ServiceRead:
    try:
        return CatalogService.get_service(db, service_id)
    except SubscriptionError as exc:
        raise to_http_exception(exc) from exc


@router.get("/{service_id}/availability", response_model=schemas.ServiceAvailabilityRead)
def get_service_availability(
    service_id: int, db: Session = Depends(get_db)
) -> schemas.ServiceAvailabilityRead:
    """Report whether a service can currently be ordered."""

    try:
        service = CatalogService.get_service(db, service_id, include_inactive=True)
    except SubscriptionError as exc:
        raise to_http_exception(exc) from exc
    return schemas.ServiceAvailabilityRead(**CatalogService.availability(service))


@router.get("/{service_id}/similar", response_model=list[schemas.ServiceRead])
def get_similar_services(
    service_id: int, db: Session = Depends(get_db)
) -> list[schemas.ServiceRead]:
    try:
        service = CatalogService.get_service(db, service_id, include_inactive=True)
    except SubscriptionError as exc:
        raise to_http_exception(exc) from exc
    return CatalogService.similar_services(db, service)

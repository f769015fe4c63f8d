from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from packages.lifecycle import Furnishing, allowed_transitions

from ..context import RequestContext, get_request_context, require_role
from ..db import get_db
from ..models import Property, Role
from ..schemas import (
    Pagination,
    PropertyCreateRequest,
    PropertyPage,
    PropertyResponse,
    PropertyStatusUpdateRequest,
    PropertyUpdateRequest,
)
from ..services.common import page_count
from ..services.properties import (
    create_property,
    list_owner_properties,
    search_properties,
    soft_delete_property,
    toggle_availability,
    transition_property_status,
    update_property,
    viewable_property,
)
from ..settings import settings

router = APIRouter(prefix="/properties", tags=["properties"])


def serialize_property(row: Property) -> PropertyResponse:
    return PropertyResponse(
        id=row.id,
        owner_id=row.owner_id,
        title=row.title,
        description=row.description,
        address=row.address,
        latitude=row.latitude,
        longitude=row.longitude,
        price=row.price,
        bedrooms=row.bedrooms,
        bathrooms=row.bathrooms,
        area=row.area,
        furnishing=row.furnishing,
        status=row.status,
        allowed_transitions=allowed_transitions(row.status),
        available=row.available,
        confirmed_tenant_id=row.confirmed_tenant_id,
        rented_at=row.rented_at,
        archived_at=row.archived_at,
        deleted=row.deleted,
        deleted_at=row.deleted_at,
        hidden=row.hidden,
        hidden_at=row.hidden_at,
        hidden_reason=row.hidden_reason,
        images=list(row.images_json or []),
        rating_average=row.rating_average,
        rating_count=row.rating_count,
        views=row.views,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def change_property_status(
    db: Session,
    context: RequestContext,
    property_id: uuid.UUID,
    payload: PropertyStatusUpdateRequest,
) -> PropertyResponse:
    row = transition_property_status(db, context, property_id, payload.status)
    db.commit()
    db.refresh(row)
    return serialize_property(row)


@router.post("", response_model=PropertyResponse, status_code=status.HTTP_201_CREATED)
def create_listing(
    payload: PropertyCreateRequest,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> PropertyResponse:
    require_role(context, Role.OWNER)
    row = create_property(db, context, payload)
    db.commit()
    db.refresh(row)
    return serialize_property(row)


@router.get("/mine", response_model=list[PropertyResponse])
def my_listings(
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> list[PropertyResponse]:
    require_role(context, Role.OWNER)
    return [serialize_property(row) for row in list_owner_properties(db, context.current_user_id)]


@router.get("/search", response_model=PropertyPage)
def search_listings(
    min_price: float | None = Query(default=None, ge=0),
    max_price: float | None = Query(default=None, ge=0),
    bedrooms: int | None = Query(default=None, ge=0),
    bathrooms: int | None = Query(default=None, ge=0),
    furnishing: Furnishing | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.default_page_size, ge=1, le=100),
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> PropertyPage:
    rows, total = search_properties(
        db,
        min_price=min_price,
        max_price=max_price,
        bedrooms=bedrooms,
        bathrooms=bathrooms,
        furnishing=furnishing,
        page=page,
        limit=limit,
    )
    return PropertyPage(
        items=[serialize_property(row) for row in rows],
        pagination=Pagination(page=page, limit=limit, total=total, pages=page_count(total, limit)),
    )


@router.get("/{property_id}", response_model=PropertyResponse)
def get_listing(
    property_id: uuid.UUID,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> PropertyResponse:
    row = viewable_property(db, context, property_id)
    db.commit()
    db.refresh(row)
    return serialize_property(row)


@router.patch("/{property_id}", response_model=PropertyResponse)
def patch_listing(
    property_id: uuid.UUID,
    payload: PropertyUpdateRequest,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> PropertyResponse:
    row = update_property(db, context, property_id, payload)
    db.commit()
    db.refresh(row)
    return serialize_property(row)


@router.patch("/{property_id}/availability", response_model=PropertyResponse)
def patch_availability(
    property_id: uuid.UUID,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> PropertyResponse:
    row = toggle_availability(db, context, property_id)
    db.commit()
    db.refresh(row)
    return serialize_property(row)


@router.patch("/{property_id}/status", response_model=PropertyResponse)
def patch_status(
    property_id: uuid.UUID,
    payload: PropertyStatusUpdateRequest,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> PropertyResponse:
    return change_property_status(db, context, property_id, payload)


@router.delete("/{property_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_listing(
    property_id: uuid.UUID,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> None:
    soft_delete_property(db, context, property_id)
    db.commit()

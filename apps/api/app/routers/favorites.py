from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from ..context import RequestContext, get_request_context
from ..db import get_db
from ..schemas import FavoriteResponse, FavoriteToggleResponse
from ..services.favorites import is_favorite, list_favorites, toggle_favorite
from .properties import serialize_property

router = APIRouter(prefix="/favorites", tags=["favorites"])


@router.post("/{property_id}", response_model=FavoriteToggleResponse)
def post_favorite(
    property_id: uuid.UUID,
    response: Response,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> FavoriteToggleResponse:
    saved = toggle_favorite(db, context, property_id)
    db.commit()
    response.status_code = status.HTTP_201_CREATED if saved else status.HTTP_200_OK
    return FavoriteToggleResponse(property_id=property_id, is_favorite=saved)


@router.get("", response_model=list[FavoriteResponse])
def get_favorites(
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> list[FavoriteResponse]:
    return [
        FavoriteResponse(id=favorite.id, property=serialize_property(row), created_at=favorite.created_at)
        for favorite, row in list_favorites(db, context)
    ]


@router.get("/{property_id}/status", response_model=FavoriteToggleResponse)
def get_favorite_status(
    property_id: uuid.UUID,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> FavoriteToggleResponse:
    return FavoriteToggleResponse(property_id=property_id, is_favorite=is_favorite(db, context, property_id))

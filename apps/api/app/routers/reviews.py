from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..context import RequestContext, get_request_context, require_role
from ..db import get_db
from ..models import Review, Role
from ..schemas import Pagination, ReviewCreateRequest, ReviewPage, ReviewResponse, ReviewUpdateRequest
from ..services.common import page_count
from ..services.reviews import create_review, delete_review, get_my_review, list_property_reviews, update_review
from ..settings import settings
from .deals import party_summary

router = APIRouter(prefix="/reviews", tags=["reviews"])


def _serialize_review(db: Session, row: Review) -> ReviewResponse:
    return ReviewResponse(
        id=row.id,
        property_id=row.property_id,
        tenant_id=row.tenant_id,
        tenant=party_summary(db, row.tenant_id),
        rating=row.rating,
        comment=row.comment,
        helpful=row.helpful,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


@router.post("", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
def post_review(
    payload: ReviewCreateRequest,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> ReviewResponse:
    require_role(context, Role.TENANT)
    review = create_review(db, context, payload)
    db.commit()
    db.refresh(review)
    return _serialize_review(db, review)


@router.get("/property/{property_id}", response_model=ReviewPage)
def get_property_reviews(
    property_id: uuid.UUID,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.default_page_size, ge=1, le=100),
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> ReviewPage:
    row, reviews, total = list_property_reviews(db, property_id, page=page, limit=limit)
    return ReviewPage(
        items=[_serialize_review(db, review) for review in reviews],
        rating_average=row.rating_average,
        rating_count=row.rating_count,
        pagination=Pagination(page=page, limit=limit, total=total, pages=page_count(total, limit)),
    )


@router.get("/my-review/{property_id}", response_model=ReviewResponse)
def get_own_review(
    property_id: uuid.UUID,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> ReviewResponse:
    require_role(context, Role.TENANT)
    return _serialize_review(db, get_my_review(db, context, property_id))


@router.patch("/{review_id}", response_model=ReviewResponse)
def patch_review(
    review_id: uuid.UUID,
    payload: ReviewUpdateRequest,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> ReviewResponse:
    require_role(context, Role.TENANT)
    review = update_review(db, context, review_id, payload)
    db.commit()
    db.refresh(review)
    return _serialize_review(db, review)


@router.delete("/{review_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_review(
    review_id: uuid.UUID,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> None:
    require_role(context, Role.TENANT)
    delete_review(db, context, review_id)
    db.commit()

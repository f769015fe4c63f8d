"""Tenant reviews of listings.

Every write recomputes the listing's ``rating_average`` and ``rating_count``
in the same transaction.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import desc, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from packages.lifecycle import ConflictError, ForbiddenError, InvalidInputError, NotFoundError

from ..context import RequestContext
from ..models import Property, Review
from ..schemas import ReviewCreateRequest, ReviewUpdateRequest
from .audit import write_audit_log
from .common import page_offset
from .properties import get_property

logger = logging.getLogger(__name__)

MIN_COMMENT_LENGTH = 10


def _clean_comment(comment: str) -> str:
    clean = comment.strip()
    if len(clean) < MIN_COMMENT_LENGTH:
        raise InvalidInputError(f"Review must be at least {MIN_COMMENT_LENGTH} characters")
    return clean


def refresh_property_rating(db: Session, property_id: uuid.UUID) -> Property:
    count, average = db.execute(
        select(func.count(Review.id), func.avg(Review.rating)).where(Review.property_id == property_id)
    ).one()
    row = get_property(db, property_id, include_deleted=True)
    row.rating_count = int(count or 0)
    row.rating_average = round(float(average), 1) if count else 0.0
    db.flush()
    return row


def create_review(db: Session, context: RequestContext, payload: ReviewCreateRequest) -> Review:
    row = get_property(db, payload.property_id)
    existing = db.scalar(
        select(Review.id).where(Review.property_id == row.id, Review.tenant_id == context.current_user_id)
    )
    if existing is not None:
        raise ConflictError("You have already reviewed this property. Update your existing review instead.")
    review = Review(
        property_id=row.id,
        tenant_id=context.current_user_id,
        rating=payload.rating,
        comment=_clean_comment(payload.comment),
        helpful=0,
    )
    db.add(review)
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("You have already reviewed this property") from exc
    refresh_property_rating(db, row.id)
    write_audit_log(db, context, "review.created", "review", str(review.id), {"property_id": str(row.id)})
    logger.info("review %s created on property %s", review.id, row.id)
    return review


def _own_review(db: Session, context: RequestContext, review_id: uuid.UUID, action: str) -> Review:
    review = db.get(Review, review_id)
    if review is None:
        raise NotFoundError("Review not found")
    if review.tenant_id != context.current_user_id:
        raise ForbiddenError(f"You can only {action} your own reviews")
    return review


def update_review(
    db: Session,
    context: RequestContext,
    review_id: uuid.UUID,
    payload: ReviewUpdateRequest,
) -> Review:
    review = _own_review(db, context, review_id, "update")
    if payload.rating is not None:
        review.rating = payload.rating
    if payload.comment is not None:
        review.comment = _clean_comment(payload.comment)
    db.flush()
    refresh_property_rating(db, review.property_id)
    write_audit_log(db, context, "review.updated", "review", str(review.id))
    return review


def delete_review(db: Session, context: RequestContext, review_id: uuid.UUID) -> None:
    review = _own_review(db, context, review_id, "delete")
    property_id = review.property_id
    db.delete(review)
    db.flush()
    refresh_property_rating(db, property_id)
    write_audit_log(db, context, "review.deleted", "review", str(review_id), {"property_id": str(property_id)})


def get_my_review(db: Session, context: RequestContext, property_id: uuid.UUID) -> Review:
    review = db.scalar(
        select(Review).where(Review.property_id == property_id, Review.tenant_id == context.current_user_id)
    )
    if review is None:
        raise NotFoundError("You have not reviewed this property yet")
    return review


def list_property_reviews(
    db: Session,
    property_id: uuid.UUID,
    *,
    page: int = 1,
    limit: int = 10,
) -> tuple[Property, list[Review], int]:
    row = get_property(db, property_id)
    stmt = select(Review).where(Review.property_id == row.id)
    total = db.scalar(select(func.count()).select_from(stmt.subquery())) or 0
    rows = db.scalars(
        stmt.order_by(desc(Review.created_at), desc(Review.id)).offset(page_offset(page, limit)).limit(limit)
    ).all()
    return row, list(rows), int(total)

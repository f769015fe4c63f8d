from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from packages.lifecycle import PropertyStatus, ReceiptStatus

from ..context import RequestContext, get_request_context, require_role
from ..db import get_db
from ..models import DealReceipt, Property, Role, User
from ..schemas import (
    AdminListingPage,
    AdminStatsResponse,
    ListingVisibilityRequest,
    Pagination,
    PropertyResponse,
    ReceiptPage,
    UserResponse,
)
from ..services.audit import write_audit_log
from ..services.common import page_count, utcnow
from ..services.deals import list_receipts
from ..services.properties import admin_listings, set_listing_visibility
from .deals import receipt_page
from .properties import serialize_property

router = APIRouter(prefix="/admin", tags=["admin"])


def _serialize_user(row: User) -> UserResponse:
    return UserResponse(
        id=row.id,
        name=row.name,
        email=row.email,
        phone=row.phone,
        role=row.role,
        suspended=row.suspended,
        suspended_at=row.suspended_at,
        created_at=row.created_at,
    )


@router.get("/receipts", response_model=ReceiptPage)
def all_receipts(
    status_filter: ReceiptStatus | None = Query(default=None, alias="status"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> ReceiptPage:
    require_role(context, Role.ADMIN)
    rows, total = list_receipts(db, status_filter=status_filter, page=page, limit=limit)
    return receipt_page(db, rows, total, page, limit)


@router.get("/listings", response_model=AdminListingPage)
def all_listings(
    status_filter: PropertyStatus | None = Query(default=None, alias="status"),
    hidden: bool | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> AdminListingPage:
    require_role(context, Role.ADMIN)
    rows, total, counts = admin_listings(db, status_filter=status_filter, hidden=hidden, page=page, limit=limit)
    return AdminListingPage(
        items=[serialize_property(row) for row in rows],
        counts=counts,
        pagination=Pagination(page=page, limit=limit, total=total, pages=page_count(total, limit)),
    )


@router.patch("/listings/{property_id}/visibility", response_model=PropertyResponse)
def patch_listing_visibility(
    property_id: uuid.UUID,
    payload: ListingVisibilityRequest,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> PropertyResponse:
    row = set_listing_visibility(db, context, property_id, payload.hide, payload.reason)
    db.commit()
    db.refresh(row)
    return serialize_property(row)


@router.patch("/users/{user_id}/suspension", response_model=UserResponse)
def toggle_user_suspension(
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> UserResponse:
    require_role(context, Role.ADMIN)
    user = db.scalar(select(User).where(User.id == user_id, User.deleted_at.is_(None)))
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="user not found")
    if user.role == Role.ADMIN:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="administrators cannot be suspended")

    user.suspended = not user.suspended
    user.suspended_at = utcnow() if user.suspended else None
    write_audit_log(
        db,
        context,
        "admin.user.suspended" if user.suspended else "admin.user.reinstated",
        "user",
        str(user.id),
        {"suspended": user.suspended},
    )
    db.commit()
    db.refresh(user)
    return _serialize_user(user)


@router.get("/stats", response_model=AdminStatsResponse)
def platform_stats(
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> AdminStatsResponse:
    require_role(context, Role.ADMIN)
    users = {role.value: 0 for role in Role}
    for role, count in db.execute(
        select(User.role, func.count(User.id)).where(User.deleted_at.is_(None)).group_by(User.role)
    ).all():
        users[role.value] = int(count)
    users["total"] = sum(users.values())
    users["suspended"] = int(db.scalar(select(func.count(User.id)).where(User.suspended.is_(True))) or 0)

    listings = {property_status.value: 0 for property_status in PropertyStatus}
    for property_status, count in db.execute(
        select(Property.status, func.count(Property.id))
        .where(Property.deleted_at.is_(None))
        .group_by(Property.status)
    ).all():
        listings[property_status.value] = int(count)
    listings["total"] = sum(listings.values())
    listings["hidden"] = int(db.scalar(select(func.count(Property.id)).where(Property.hidden.is_(True))) or 0)

    receipts = {receipt_status.value: 0 for receipt_status in ReceiptStatus}
    for receipt_status, count in db.execute(
        select(DealReceipt.status, func.count(DealReceipt.id)).group_by(DealReceipt.status)
    ).all():
        receipts[receipt_status.value] = int(count)
    receipts["total"] = sum(receipts.values())

    return AdminStatsResponse(users=users, listings=listings, receipts=receipts)

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from packages.lifecycle import DealTermJSON, PropertySnapshotJSON, ReceiptStatus

from ..context import RequestContext, get_request_context, require_role
from ..db import get_db
from ..models import DealReceipt, Property, Role, User
from ..schemas import (
    DealConfirmRequest,
    Pagination,
    PartySummary,
    PropertyResponse,
    PropertyStatusUpdateRequest,
    PropertySummary,
    ReceiptCancelRequest,
    ReceiptPage,
    ReceiptResponse,
)
from ..services.common import page_count
from ..services.deals import cancel_deal, confirm_deal, get_receipt_for_viewer, list_receipts
from ..settings import settings
from .properties import change_property_status

router = APIRouter(prefix="/deals", tags=["deals"])


def party_summary(db: Session, user_id: uuid.UUID) -> PartySummary | None:
    user = db.get(User, user_id)
    if user is None:
        return None
    return PartySummary(id=user.id, name=user.name, email=user.email, phone=user.phone)


def property_summary(db: Session, property_id: uuid.UUID) -> PropertySummary | None:
    row = db.get(Property, property_id)
    if row is None:
        return None
    return PropertySummary(id=row.id, title=row.title, address=row.address, images=list(row.images_json or [])[:1])


def serialize_receipt(db: Session, row: DealReceipt) -> ReceiptResponse:
    return ReceiptResponse(
        id=row.id,
        receipt_id=row.receipt_id,
        property_id=row.property_id,
        owner_id=row.owner_id,
        tenant_id=row.tenant_id,
        property=property_summary(db, row.property_id),
        owner=party_summary(db, row.owner_id),
        tenant=party_summary(db, row.tenant_id),
        property_snapshot=PropertySnapshotJSON.model_validate(row.property_snapshot_json),
        agreed_rent=row.agreed_rent,
        security_deposit=row.security_deposit,
        lease_start_date=row.lease_start_date,
        lease_duration_months=row.lease_duration_months,
        status=row.status,
        confirmed_at=row.confirmed_at,
        cancelled_at=row.cancelled_at,
        cancellation_reason=row.cancellation_reason,
        notes=row.notes,
        terms=[DealTermJSON.model_validate(term) for term in row.terms_json or []],
        created_at=row.created_at,
    )


def receipt_page(db: Session, rows: list[DealReceipt], total: int, page: int, limit: int) -> ReceiptPage:
    return ReceiptPage(
        items=[serialize_receipt(db, row) for row in rows],
        pagination=Pagination(page=page, limit=limit, total=total, pages=page_count(total, limit)),
    )


@router.post("/confirm", response_model=ReceiptResponse, status_code=status.HTTP_201_CREATED)
def confirm(
    payload: DealConfirmRequest,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> ReceiptResponse:
    require_role(context, Role.OWNER)
    receipt = confirm_deal(db, context, payload)
    return serialize_receipt(db, receipt)


@router.get("/receipts", response_model=ReceiptPage)
def my_receipts(
    status_filter: ReceiptStatus | None = Query(default=None, alias="status"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.default_page_size, ge=1, le=100),
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> ReceiptPage:
    rows, total = list_receipts(
        db, user_id=context.current_user_id, status_filter=status_filter, page=page, limit=limit
    )
    return receipt_page(db, rows, total, page, limit)


@router.get("/receipts/{receipt_id}", response_model=ReceiptResponse)
def get_receipt(
    receipt_id: uuid.UUID,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> ReceiptResponse:
    return serialize_receipt(db, get_receipt_for_viewer(db, context, receipt_id))


@router.patch("/receipts/{receipt_id}/cancel", response_model=ReceiptResponse)
def cancel(
    receipt_id: uuid.UUID,
    payload: ReceiptCancelRequest | None = None,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> ReceiptResponse:
    reason = payload.reason if payload is not None else None
    receipt = cancel_deal(db, context, receipt_id, reason)
    return serialize_receipt(db, receipt)


@router.patch("/properties/{property_id}/status", response_model=PropertyResponse)
def patch_property_status(
    property_id: uuid.UUID,
    payload: PropertyStatusUpdateRequest,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> PropertyResponse:
    return change_property_status(db, context, property_id, payload)

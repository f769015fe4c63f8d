"""Deal confirmation and cancellation.

Confirmation writes the receipt, the rented property and the converted lead
in one transaction. Notifications go out afterwards and are best-effort.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import desc, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from packages.lifecycle import (
    AlreadyCancelledError,
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
    PropertySnapshotJSON,
    PropertyStatus,
    ReceiptStatus,
    status_effects,
)

from ..context import RequestContext
from ..models import DealReceipt, NotificationCategory, NotificationType, Property, Role, User
from ..schemas import DealConfirmRequest
from ..settings import settings
from .audit import write_audit_log
from .common import page_offset, utcnow
from .leads import mark_lead_converted
from .notifications import NotificationSpec, notify_best_effort
from .properties import apply_status_effects, get_property
from .receipts import next_receipt_id

logger = logging.getLogger(__name__)


def build_property_snapshot(row: Property) -> PropertySnapshotJSON:
    return PropertySnapshotJSON(
        title=row.title,
        address=row.address,
        description=row.description,
        bedrooms=row.bedrooms,
        bathrooms=row.bathrooms,
        area=row.area,
        furnishing=row.furnishing,
    )


def _check_confirm_preconditions(db: Session, context: RequestContext, row: Property) -> None:
    if row.owner_id != context.current_user_id:
        raise ForbiddenError("Only the property owner can confirm deals")
    if row.status != PropertyStatus.APPROVED:
        if row.status == PropertyStatus.RENTED:
            raise ConflictError("This property is already rented")
        raise InvalidStateError(
            f"Cannot confirm deal. Property status must be 'approved'. Current status: '{row.status.value}'"
        )
    if row.confirmed_tenant_id is not None:
        raise ConflictError("This property already has a confirmed tenant")
    existing = db.scalar(
        select(DealReceipt.id).where(
            DealReceipt.property_id == row.id,
            DealReceipt.status == ReceiptStatus.CONFIRMED,
        )
    )
    if existing is not None:
        raise ConflictError("A confirmed deal already exists for this property")


def _tenant_for_deal(db: Session, tenant_id: uuid.UUID) -> User:
    tenant = db.scalar(select(User).where(User.id == tenant_id, User.deleted_at.is_(None)))
    if tenant is None:
        raise NotFoundError("Tenant not found")
    if tenant.role != Role.TENANT:
        raise InvalidInputError("Deals can only be confirmed with a tenant account")
    return tenant


def confirm_deal(db: Session, context: RequestContext, payload: DealConfirmRequest) -> DealReceipt:
    row = get_property(db, payload.property_id)
    _check_confirm_preconditions(db, context, row)
    tenant = _tenant_for_deal(db, payload.tenant_id)

    now = utcnow()
    snapshot = build_property_snapshot(row)
    try:
        receipt = DealReceipt(
            receipt_id=next_receipt_id(db, now.year),
            property_id=row.id,
            owner_id=context.current_user_id,
            tenant_id=tenant.id,
            property_snapshot_json=snapshot.model_dump(mode="json"),
            agreed_rent=payload.agreed_rent,
            security_deposit=payload.security_deposit or 0.0,
            lease_start_date=payload.lease_start_date,
            lease_duration_months=payload.lease_duration_months or settings.default_lease_duration_months,
            status=ReceiptStatus.CONFIRMED,
            confirmed_at=now,
            notes=payload.notes,
            terms_json=[term.model_dump() for term in payload.terms],
        )
        db.add(receipt)
        db.flush()

        apply_status_effects(row, status_effects(row.status, PropertyStatus.RENTED), now)
        row.confirmed_tenant_id = tenant.id
        row.rented_at = now
        lead = mark_lead_converted(db, context.current_user_id, tenant.id, row.id, now)
        db.flush()

        write_audit_log(
            db,
            context,
            "deal.confirmed",
            "deal_receipt",
            str(receipt.id),
            {
                "receipt_id": receipt.receipt_id,
                "property_id": str(row.id),
                "tenant_id": str(tenant.id),
                "lead_id": str(lead.id) if lead is not None else None,
            },
        )
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("A confirmed deal already exists for this property") from exc

    logger.info("deal %s confirmed for property %s", receipt.receipt_id, row.id)
    action_url = f"/receipt/{receipt.id}"
    notify_best_effort(
        db,
        [
            NotificationSpec(
                user_id=tenant.id,
                type=NotificationType.DEAL_CONFIRMED,
                title="Deal Confirmed!",
                body=f'Your rental for "{snapshot.title}" has been confirmed.',
                related_property_id=row.id,
                related_receipt_id=receipt.id,
                action_url=action_url,
                category=NotificationCategory.DEAL,
            ),
            NotificationSpec(
                user_id=context.current_user_id,
                type=NotificationType.DEAL_CONFIRMED,
                title="Deal Confirmed!",
                body=f'You have confirmed a tenant for "{snapshot.title}".',
                related_property_id=row.id,
                related_receipt_id=receipt.id,
                action_url=action_url,
                category=NotificationCategory.DEAL,
            ),
        ],
    )
    db.refresh(receipt)
    return receipt


def get_receipt(db: Session, receipt_pk: uuid.UUID) -> DealReceipt:
    receipt = db.scalar(select(DealReceipt).where(DealReceipt.id == receipt_pk))
    if receipt is None:
        raise NotFoundError("Receipt not found")
    return receipt


def get_receipt_for_viewer(db: Session, context: RequestContext, receipt_pk: uuid.UUID) -> DealReceipt:
    receipt = get_receipt(db, receipt_pk)
    if context.current_user_id not in (receipt.owner_id, receipt.tenant_id) and not context.is_admin:
        raise ForbiddenError("You are not authorized to view this receipt")
    return receipt


def cancel_deal(db: Session, context: RequestContext, receipt_pk: uuid.UUID, reason: str | None) -> DealReceipt:
    receipt = get_receipt(db, receipt_pk)
    if receipt.owner_id != context.current_user_id and not context.is_admin:
        raise ForbiddenError("Only the property owner or admin can cancel deals")
    if receipt.status == ReceiptStatus.CANCELLED:
        raise AlreadyCancelledError("This deal is already cancelled")

    now = utcnow()
    receipt.status = ReceiptStatus.CANCELLED
    receipt.cancelled_at = now
    receipt.cancelled_by_user_id = context.current_user_id
    receipt.cancellation_reason = reason or "No reason provided"

    row = get_property(db, receipt.property_id, include_deleted=True)
    reverted = row.confirmed_tenant_id in (None, receipt.tenant_id)
    if reverted:
        row.status = PropertyStatus.AVAILABLE
        row.confirmed_tenant_id = None
        row.rented_at = None
        row.available = True
    else:
        logger.warning("property %s now held by another tenant; leaving it as is", row.id)
    db.flush()
    write_audit_log(
        db,
        context,
        "deal.cancelled",
        "deal_receipt",
        str(receipt.id),
        {"receipt_id": receipt.receipt_id, "reason": receipt.cancellation_reason, "property_reverted": reverted},
    )
    db.commit()

    logger.info("deal %s cancelled by %s", receipt.receipt_id, context.current_user_id)
    notify_best_effort(
        db,
        [
            NotificationSpec(
                user_id=receipt.tenant_id,
                type=NotificationType.REJECTION,
                title="Deal Cancelled",
                body=f"The deal for your rental has been cancelled. Reason: {reason or 'Not specified'}",
                related_property_id=receipt.property_id,
                related_receipt_id=receipt.id,
                category=NotificationCategory.DEAL,
            )
        ],
    )
    db.refresh(receipt)
    return receipt


def list_receipts(
    db: Session,
    *,
    user_id: uuid.UUID | None = None,
    status_filter: ReceiptStatus | None = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[DealReceipt], int]:
    """Receipts where the user is owner or tenant; all receipts when user_id is None."""
    stmt = select(DealReceipt)
    if user_id is not None:
        stmt = stmt.where(or_(DealReceipt.owner_id == user_id, DealReceipt.tenant_id == user_id))
    if status_filter is not None:
        stmt = stmt.where(DealReceipt.status == status_filter)
    total = db.scalar(select(func.count()).select_from(stmt.subquery())) or 0
    rows = db.scalars(
        stmt.order_by(desc(DealReceipt.confirmed_at)).offset(page_offset(page, limit)).limit(limit)
    ).all()
    return list(rows), int(total)

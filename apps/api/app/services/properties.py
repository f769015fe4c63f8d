from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import Select, desc, func, select
from sqlalchemy.orm import Session

from packages.lifecycle import (
    Furnishing,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    PropertyStatus,
    StatusEffects,
    status_effects,
)

from ..context import RequestContext
from ..models import Property, Role
from ..schemas import PropertyCreateRequest, PropertyUpdateRequest
from ..settings import settings
from .audit import write_audit_log
from .common import page_offset, utcnow

logger = logging.getLogger(__name__)


def property_query(include_deleted: bool = False) -> Select[tuple[Property]]:
    stmt = select(Property)
    if not include_deleted:
        stmt = stmt.where(Property.deleted_at.is_(None))
    return stmt


def get_property(db: Session, property_id: uuid.UUID, include_deleted: bool = False) -> Property:
    row = db.scalar(property_query(include_deleted=include_deleted).where(Property.id == property_id))
    if row is None:
        raise NotFoundError("Property not found")
    return row


def assert_property_owner(row: Property, context: RequestContext, action: str) -> None:
    if row.owner_id != context.current_user_id:
        raise ForbiddenError(f"Only the property owner can {action}")


def apply_status_effects(row: Property, effects: StatusEffects, now: datetime) -> None:
    row.status = effects.status
    if effects.available is not None:
        row.available = effects.available
    if effects.set_archived_at:
        row.archived_at = now
    if effects.clear_archived_at:
        row.archived_at = None


def transition_property_status(
    db: Session,
    context: RequestContext,
    property_id: uuid.UUID,
    target: PropertyStatus,
) -> Property:
    row = get_property(db, property_id)
    assert_property_owner(row, context, "change status")
    previous = row.status
    effects = status_effects(previous, target)
    if target == PropertyStatus.RENTED:
        raise InvalidStateError("A property becomes 'rented' only by confirming a deal")
    apply_status_effects(row, effects, utcnow())
    db.flush()
    write_audit_log(
        db,
        context,
        "property.status_changed",
        "property",
        str(row.id),
        {"from_status": previous.value, "to_status": target.value},
    )
    logger.info("property %s status %s -> %s", row.id, previous.value, target.value)
    return row


def create_property(db: Session, context: RequestContext, payload: PropertyCreateRequest) -> Property:
    row = Property(
        owner_id=context.current_user_id,
        title=payload.title.strip(),
        description=payload.description.strip(),
        address=payload.address.strip(),
        latitude=payload.latitude,
        longitude=payload.longitude,
        price=payload.price,
        bedrooms=payload.bedrooms,
        bathrooms=payload.bathrooms,
        area=payload.area,
        furnishing=payload.furnishing,
        status=PropertyStatus.AVAILABLE,
        available=True,
        images_json=list(payload.images),
    )
    db.add(row)
    db.flush()
    write_audit_log(db, context, "property.created", "property", str(row.id))
    return row


def update_property(
    db: Session,
    context: RequestContext,
    property_id: uuid.UUID,
    payload: PropertyUpdateRequest,
) -> Property:
    row = get_property(db, property_id)
    assert_property_owner(row, context, "update this property")
    updates = payload.model_dump(exclude_none=True)
    if updates.get("available") is True and row.status in (PropertyStatus.RENTED, PropertyStatus.ARCHIVED):
        raise InvalidStateError(f"A {row.status.value} property cannot be marked available")
    new_images = updates.pop("images", None)
    for key, value in updates.items():
        setattr(row, key, value)
    if new_images:
        row.images_json = [*row.images_json, *new_images][: settings.max_property_images]
    db.flush()
    write_audit_log(db, context, "property.updated", "property", str(row.id), {"fields": sorted(payload.model_dump(exclude_none=True))})
    return row


def toggle_availability(db: Session, context: RequestContext, property_id: uuid.UUID) -> Property:
    row = get_property(db, property_id)
    assert_property_owner(row, context, "modify this property")
    if row.status == PropertyStatus.RENTED:
        raise InvalidStateError("Availability of a rented property follows its deal")
    if row.status == PropertyStatus.ARCHIVED and not row.available:
        raise InvalidStateError("Restore an archived property before making it available")
    row.available = not row.available
    db.flush()
    write_audit_log(db, context, "property.availability_toggled", "property", str(row.id), {"available": row.available})
    return row


def soft_delete_property(db: Session, context: RequestContext, property_id: uuid.UUID) -> Property:
    row = get_property(db, property_id)
    assert_property_owner(row, context, "delete this property")
    row.deleted_at = utcnow()
    row.deleted_by_user_id = context.current_user_id
    row.available = False
    db.flush()
    write_audit_log(db, context, "property.deleted", "property", str(row.id))
    return row


def viewable_property(db: Session, context: RequestContext, property_id: uuid.UUID) -> Property:
    """Load a listing for display, counting the view when it is not the owner's own."""
    row = get_property(db, property_id)
    is_owner = row.owner_id == context.current_user_id
    if row.hidden and not (is_owner or context.is_admin):
        raise NotFoundError("Property not found")
    if not is_owner:
        row.views += 1
        db.flush()
    return row


def list_owner_properties(db: Session, owner_id: uuid.UUID) -> list[Property]:
    stmt = property_query().where(Property.owner_id == owner_id).order_by(desc(Property.created_at))
    return list(db.scalars(stmt).all())


def search_properties(
    db: Session,
    *,
    min_price: float | None = None,
    max_price: float | None = None,
    bedrooms: int | None = None,
    bathrooms: int | None = None,
    furnishing: Furnishing | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Property], int]:
    stmt = property_query().where(
        Property.available.is_(True),
        Property.hidden.is_(False),
        Property.status != PropertyStatus.ARCHIVED,
    )
    if min_price is not None:
        stmt = stmt.where(Property.price >= min_price)
    if max_price is not None:
        stmt = stmt.where(Property.price <= max_price)
    if bedrooms is not None:
        stmt = stmt.where(Property.bedrooms == bedrooms)
    if bathrooms is not None:
        stmt = stmt.where(Property.bathrooms == bathrooms)
    if furnishing is not None:
        stmt = stmt.where(Property.furnishing == furnishing)
    total = db.scalar(select(func.count()).select_from(stmt.subquery())) or 0
    rows = db.scalars(stmt.order_by(desc(Property.created_at)).offset(page_offset(page, limit)).limit(limit)).all()
    return list(rows), int(total)


def set_listing_visibility(
    db: Session,
    context: RequestContext,
    property_id: uuid.UUID,
    hide: bool,
    reason: str | None,
) -> Property:
    if context.current_role != Role.ADMIN:
        raise ForbiddenError("Only administrators can moderate listings")
    row = get_property(db, property_id, include_deleted=True)
    row.hidden = hide
    row.hidden_at = utcnow() if hide else None
    row.hidden_reason = reason if hide else None
    db.flush()
    write_audit_log(db, context, "property.visibility_changed", "property", str(row.id), {"hidden": hide, "reason": reason})
    return row


def admin_listings(
    db: Session,
    *,
    status_filter: PropertyStatus | None = None,
    hidden: bool | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Property], int, dict[str, Any]]:
    stmt = property_query(include_deleted=True)
    if status_filter is not None:
        stmt = stmt.where(Property.status == status_filter)
    if hidden is not None:
        stmt = stmt.where(Property.hidden.is_(hidden))
    total = db.scalar(select(func.count()).select_from(stmt.subquery())) or 0
    rows = db.scalars(stmt.order_by(desc(Property.created_at)).offset(page_offset(page, limit)).limit(limit)).all()
    counts = {
        "total": int(db.scalar(select(func.count()).select_from(property_query(include_deleted=True).subquery())) or 0),
        "active": int(db.scalar(select(func.count()).select_from(property_query().subquery())) or 0),
        "deleted": int(db.scalar(select(func.count(Property.id)).where(Property.deleted_at.is_not(None))) or 0),
        "hidden": int(db.scalar(select(func.count(Property.id)).where(Property.hidden.is_(True))) or 0),
    }
    return list(rows), int(total), counts

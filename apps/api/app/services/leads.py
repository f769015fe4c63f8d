from __future__ import annotations

import math
import uuid
from datetime import datetime, timezone

from sqlalchemy import Select, desc, func, select, update
from sqlalchemy.orm import Session

from packages.lifecycle import (
    ACTIVE_STATUSES,
    ForbiddenError,
    InvalidInputError,
    LeadLabel,
    LeadStage,
    NotFoundError,
    PropertyStatus,
    stage_effects,
)

from ..context import RequestContext
from ..models import Lead, LeadNote, Property, Role
from ..schemas import LeadPatchRequest
from .audit import write_audit_log
from .common import insert_ignoring_conflict, page_offset, utcnow


def record_tenant_contact(
    db: Session,
    owner_id: uuid.UUID,
    tenant_id: uuid.UUID,
    property_id: uuid.UUID,
) -> Lead:
    """Create the lead on first contact and count every later message."""
    insert_ignoring_conflict(
        db,
        Lead,
        {
            "id": uuid.uuid4(),
            "owner_id": owner_id,
            "tenant_id": tenant_id,
            "property_id": property_id,
            "label": LeadLabel.WARM,
            "stage": LeadStage.ENQUIRY,
            "total_messages": 0,
        },
        index_elements=["owner_id", "tenant_id", "property_id"],
    )
    db.execute(
        update(Lead)
        .where(Lead.owner_id == owner_id, Lead.tenant_id == tenant_id, Lead.property_id == property_id)
        .values(total_messages=Lead.total_messages + 1, last_contact_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    lead = find_lead(db, owner_id, tenant_id, property_id)
    if lead is None:
        raise RuntimeError("lead upsert did not produce a row")
    db.refresh(lead)
    return lead


def find_lead(db: Session, owner_id: uuid.UUID, tenant_id: uuid.UUID, property_id: uuid.UUID) -> Lead | None:
    return db.scalar(
        select(Lead).where(Lead.owner_id == owner_id, Lead.tenant_id == tenant_id, Lead.property_id == property_id)
    )


def apply_stage(lead: Lead, stage: LeadStage, now: datetime, rejection_reason: str | None = None) -> None:
    effects = stage_effects(stage)
    lead.stage = effects.stage
    if effects.label is not None:
        lead.label = effects.label
    if effects.stamp_converted_at:
        lead.converted_at = now
    if effects.stamp_rejected_at:
        lead.rejected_at = now
    if effects.record_rejection_reason:
        lead.rejection_reason = rejection_reason


def mark_lead_converted(
    db: Session,
    owner_id: uuid.UUID,
    tenant_id: uuid.UUID,
    property_id: uuid.UUID,
    now: datetime,
) -> Lead | None:
    lead = find_lead(db, owner_id, tenant_id, property_id)
    if lead is None:
        return None
    apply_stage(lead, LeadStage.CONFIRMED, now)
    db.flush()
    return lead


def get_owner_lead(db: Session, context: RequestContext, lead_id: uuid.UUID) -> Lead:
    lead = db.scalar(select(Lead).where(Lead.id == lead_id, Lead.owner_id == context.current_user_id))
    if lead is None:
        raise NotFoundError("Lead not found")
    return lead


def get_visible_lead(db: Session, context: RequestContext, lead_id: uuid.UUID) -> Lead:
    """Read access: the owning owner, or any admin."""
    if not context.is_admin:
        return get_owner_lead(db, context, lead_id)
    lead = db.get(Lead, lead_id)
    if lead is None:
        raise NotFoundError("Lead not found")
    return lead


def update_lead(db: Session, context: RequestContext, lead_id: uuid.UUID, payload: LeadPatchRequest) -> Lead:
    lead = get_owner_lead(db, context, lead_id)
    previous_stage = lead.stage
    if payload.label is not None:
        lead.label = payload.label
    if payload.stage is not None:
        apply_stage(lead, payload.stage, utcnow(), rejection_reason=payload.rejection_reason)
    if payload.tenant_budget is not None:
        lead.tenant_budget = payload.tenant_budget
    if payload.preferred_move_in_date is not None:
        lead.preferred_move_in_date = payload.preferred_move_in_date
    db.flush()
    write_audit_log(
        db,
        context,
        "lead.updated",
        "lead",
        str(lead.id),
        {"from_stage": previous_stage.value, "to_stage": lead.stage.value, "label": lead.label.value},
    )
    return lead


def add_note(db: Session, context: RequestContext, lead_id: uuid.UUID, text: str) -> LeadNote:
    lead = get_owner_lead(db, context, lead_id)
    clean = text.strip()
    if not clean:
        raise InvalidInputError("Note text is required")
    now = utcnow()
    note = LeadNote(lead_id=lead.id, author_user_id=context.current_user_id, text=clean, noted_at=now)
    db.add(note)
    lead.last_contact_at = now
    db.flush()
    return note


def lead_notes(db: Session, lead_ids: list[uuid.UUID]) -> dict[uuid.UUID, list[LeadNote]]:
    grouped: dict[uuid.UUID, list[LeadNote]] = {lead_id: [] for lead_id in lead_ids}
    if not lead_ids:
        return grouped
    rows = db.scalars(
        select(LeadNote).where(LeadNote.lead_id.in_(lead_ids)).order_by(LeadNote.noted_at, LeadNote.created_at)
    ).all()
    for row in rows:
        grouped[row.lead_id].append(row)
    return grouped


def days_since(moment: datetime | None, now: datetime | None = None) -> int | None:
    if moment is None:
        return None
    current = now or utcnow()
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    seconds = abs((current - moment).total_seconds())
    return math.ceil(seconds / 86400)


def list_leads(
    db: Session,
    context: RequestContext,
    *,
    label: LeadLabel | None = None,
    stage: LeadStage | None = None,
    property_id: uuid.UUID | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Lead], int, dict[str, int]]:
    if context.current_role not in (Role.OWNER, Role.ADMIN):
        raise ForbiddenError("Only owners can view leads")
    stmt = select(Lead)
    if context.current_role != Role.ADMIN:
        stmt = stmt.where(Lead.owner_id == context.current_user_id)
    scope = stmt
    if label is not None:
        stmt = stmt.where(Lead.label == label)
    if stage is not None:
        stmt = stmt.where(Lead.stage == stage)
    if property_id is not None:
        stmt = stmt.where(Lead.property_id == property_id)
    total = db.scalar(select(func.count()).select_from(stmt.subquery())) or 0
    rows = db.scalars(
        stmt.order_by(desc(Lead.last_contact_at), desc(Lead.created_at)).offset(page_offset(page, limit)).limit(limit)
    ).all()
    return list(rows), int(total), label_counts(db, scope)


def label_counts(db: Session, scope: Select[tuple[Lead]]) -> dict[str, int]:
    counts = {label.value: 0 for label in LeadLabel}
    scoped = scope.subquery()
    for label, count in db.execute(select(scoped.c.label, func.count()).group_by(scoped.c.label)).all():
        counts[LeadLabel(label).value] = int(count)
    return counts


def owner_analytics(db: Session, context: RequestContext) -> dict[str, object]:
    status_rows = db.execute(
        select(Property.status, func.count(Property.id), func.coalesce(func.sum(Property.views), 0))
        .where(Property.owner_id == context.current_user_id, Property.deleted_at.is_(None))
        .group_by(Property.status)
    ).all()
    by_status = {status.value: 0 for status in PropertyStatus}
    total_views = 0
    for status, count, views in status_rows:
        by_status[status.value] = int(count)
        total_views += int(views)
    total_properties = sum(by_status.values())
    active = sum(by_status[status.value] for status in ACTIVE_STATUSES)

    labels = label_counts(db, select(Lead).where(Lead.owner_id == context.current_user_id))
    total_leads = sum(labels.values())
    conversion_rate = round(labels[LeadLabel.CONVERTED.value] / total_leads * 100, 1) if total_leads else 0.0

    return {
        "properties": {
            "total": total_properties,
            "active": active,
            "rented": by_status[PropertyStatus.RENTED.value],
            "archived": by_status[PropertyStatus.ARCHIVED.value],
            "by_status": by_status,
        },
        "engagement": {
            "total_views": total_views,
            "avg_views_per_property": round(total_views / total_properties, 1) if total_properties else 0.0,
        },
        "leads": {"total": total_leads, **labels, "conversion_rate": conversion_rate},
    }

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from packages.lifecycle import LeadLabel, LeadStage

from ..context import RequestContext, get_request_context, require_role
from ..db import get_db
from ..models import Lead, LeadNote, Role
from ..schemas import (
    LeadNoteCreateRequest,
    LeadNoteResponse,
    LeadPage,
    LeadPatchRequest,
    LeadResponse,
    OwnerAnalyticsResponse,
    Pagination,
)
from ..services.common import page_count
from ..services.leads import (
    add_note,
    days_since,
    get_owner_lead,
    get_visible_lead,
    lead_notes,
    list_leads,
    owner_analytics,
    update_lead,
)
from .deals import party_summary, property_summary

router = APIRouter(prefix="/leads", tags=["leads"])


def _serialize_note(row: LeadNote) -> LeadNoteResponse:
    return LeadNoteResponse(id=row.id, author_user_id=row.author_user_id, text=row.text, noted_at=row.noted_at)


def _serialize_lead(db: Session, row: Lead, notes: list[LeadNote]) -> LeadResponse:
    return LeadResponse(
        id=row.id,
        owner_id=row.owner_id,
        tenant_id=row.tenant_id,
        property_id=row.property_id,
        tenant=party_summary(db, row.tenant_id),
        property=property_summary(db, row.property_id),
        label=row.label,
        stage=row.stage,
        notes=[_serialize_note(note) for note in notes],
        last_contact_at=row.last_contact_at,
        days_since_contact=days_since(row.last_contact_at),
        total_messages=row.total_messages,
        tenant_budget=row.tenant_budget,
        preferred_move_in_date=row.preferred_move_in_date,
        converted_at=row.converted_at,
        rejected_at=row.rejected_at,
        rejection_reason=row.rejection_reason,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _lead_detail(db: Session, lead: Lead) -> LeadResponse:
    return _serialize_lead(db, lead, lead_notes(db, [lead.id])[lead.id])


@router.get("", response_model=LeadPage)
def get_leads(
    label: LeadLabel | None = Query(default=None),
    stage: LeadStage | None = Query(default=None),
    property_id: uuid.UUID | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> LeadPage:
    rows, total, stats = list_leads(
        db, context, label=label, stage=stage, property_id=property_id, page=page, limit=limit
    )
    notes = lead_notes(db, [row.id for row in rows])
    return LeadPage(
        items=[_serialize_lead(db, row, notes[row.id]) for row in rows],
        stats=stats,
        pagination=Pagination(page=page, limit=limit, total=total, pages=page_count(total, limit)),
    )


@router.get("/analytics", response_model=OwnerAnalyticsResponse)
def get_analytics(
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> OwnerAnalyticsResponse:
    require_role(context, Role.OWNER)
    return OwnerAnalyticsResponse.model_validate(owner_analytics(db, context))


@router.get("/{lead_id}", response_model=LeadResponse)
def get_lead(
    lead_id: uuid.UUID,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> LeadResponse:
    return _lead_detail(db, get_visible_lead(db, context, lead_id))


@router.patch("/{lead_id}", response_model=LeadResponse)
def patch_lead(
    lead_id: uuid.UUID,
    payload: LeadPatchRequest,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> LeadResponse:
    lead = update_lead(db, context, lead_id, payload)
    db.commit()
    db.refresh(lead)
    return _lead_detail(db, lead)


@router.post("/{lead_id}/notes", response_model=LeadResponse, status_code=status.HTTP_201_CREATED)
def post_note(
    lead_id: uuid.UUID,
    payload: LeadNoteCreateRequest,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> LeadResponse:
    note = add_note(db, context, lead_id, payload.text)
    db.commit()
    return _lead_detail(db, get_owner_lead(db, context, note.lead_id))

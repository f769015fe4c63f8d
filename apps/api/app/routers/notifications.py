from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..context import RequestContext, get_request_context
from ..db import get_db
from ..models import Notification
from ..schemas import MarkAllReadResponse, NotificationPage, NotificationResponse, Pagination, UnreadCountResponse
from ..services.common import page_count
from ..services.notifications import (
    delete_notification,
    list_notifications,
    mark_all_read,
    mark_read,
    unread_count,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])


def _serialize_notification(row: Notification) -> NotificationResponse:
    return NotificationResponse(
        id=row.id,
        user_id=row.user_id,
        type=row.type,
        title=row.title,
        body=row.body,
        related_property_id=row.related_property_id,
        related_user_id=row.related_user_id,
        related_receipt_id=row.related_receipt_id,
        action_url=row.action_url,
        category=row.category,
        read=row.read,
        read_at=row.read_at,
        delivered_at=row.delivered_at,
        created_at=row.created_at,
    )


@router.get("", response_model=NotificationPage)
def get_notifications(
    unread_only: bool = Query(default=False),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> NotificationPage:
    rows, total = list_notifications(db, context.current_user_id, unread_only=unread_only, page=page, limit=limit)
    return NotificationPage(
        items=[_serialize_notification(row) for row in rows],
        unread_count=unread_count(db, context.current_user_id),
        pagination=Pagination(page=page, limit=limit, total=total, pages=page_count(total, limit)),
    )


@router.get("/count", response_model=UnreadCountResponse)
def get_unread_count(
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> UnreadCountResponse:
    return UnreadCountResponse(count=unread_count(db, context.current_user_id))


@router.patch("/read-all", response_model=MarkAllReadResponse)
def patch_read_all(
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> MarkAllReadResponse:
    updated = mark_all_read(db, context.current_user_id)
    db.commit()
    return MarkAllReadResponse(updated=updated)


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
def patch_read(
    notification_id: uuid.UUID,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> NotificationResponse:
    row = mark_read(db, context.current_user_id, notification_id)
    db.commit()
    db.refresh(row)
    return _serialize_notification(row)


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_notification(
    notification_id: uuid.UUID,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> None:
    delete_notification(db, context.current_user_id, notification_id)
    db.commit()

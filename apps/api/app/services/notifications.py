from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy import delete, desc, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from packages.lifecycle import NotFoundError

from ..models import Notification, NotificationCategory, NotificationType
from ..settings import settings
from .common import page_offset, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationSpec:
    user_id: uuid.UUID
    type: NotificationType
    title: str
    body: str | None = None
    related_property_id: uuid.UUID | None = None
    related_user_id: uuid.UUID | None = None
    related_receipt_id: uuid.UUID | None = None
    action_url: str | None = None
    category: NotificationCategory = NotificationCategory.SYSTEM


def create_notification(db: Session, spec: NotificationSpec) -> Notification:
    row = Notification(
        user_id=spec.user_id,
        type=spec.type,
        title=spec.title[:200],
        body=spec.body[:500] if spec.body else None,
        related_property_id=spec.related_property_id,
        related_user_id=spec.related_user_id,
        related_receipt_id=spec.related_receipt_id,
        action_url=spec.action_url,
        category=spec.category,
    )
    db.add(row)
    db.flush()
    return row


def _enqueue_delivery(notification_id: uuid.UUID) -> None:
    if settings.notification_dispatch_mode == "mock":
        logger.debug("notification %s stored, delivery skipped in mock mode", notification_id)
        return
    try:
        from rentloop_worker.main import app as worker_app  # type: ignore

        worker_app.send_task("worker.notifications.deliver", args=[str(notification_id)])
    except Exception:
        # Keep notification writes non-blocking even if the worker broker is unavailable.
        logger.warning("could not enqueue delivery for notification %s", notification_id, exc_info=True)


def notify_best_effort(db: Session, specs: list[NotificationSpec]) -> list[Notification]:
    """Persist and dispatch notifications in their own transaction.

    Runs after the triggering change has committed; a failure here is logged
    and never propagates to the caller.
    """
    try:
        rows = [create_notification(db, spec) for spec in specs]
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.warning("failed to store %d notification(s)", len(specs), exc_info=True)
        return []
    for row in rows:
        _enqueue_delivery(row.id)
    return rows


def list_notifications(
    db: Session,
    user_id: uuid.UUID,
    *,
    unread_only: bool = False,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Notification], int]:
    stmt = select(Notification).where(Notification.user_id == user_id)
    if unread_only:
        stmt = stmt.where(Notification.read.is_(False))
    total = db.scalar(select(func.count()).select_from(stmt.subquery())) or 0
    rows = db.scalars(
        stmt.order_by(desc(Notification.created_at)).offset(page_offset(page, limit)).limit(limit)
    ).all()
    return list(rows), int(total)


def unread_count(db: Session, user_id: uuid.UUID) -> int:
    count = db.scalar(
        select(func.count(Notification.id)).where(Notification.user_id == user_id, Notification.read.is_(False))
    )
    return int(count or 0)


def _owned_notification(db: Session, user_id: uuid.UUID, notification_id: uuid.UUID) -> Notification:
    row = db.scalar(
        select(Notification).where(Notification.id == notification_id, Notification.user_id == user_id)
    )
    if row is None:
        raise NotFoundError("Notification not found")
    return row


def mark_read(db: Session, user_id: uuid.UUID, notification_id: uuid.UUID) -> Notification:
    row = _owned_notification(db, user_id, notification_id)
    if not row.read:
        row.read = True
        row.read_at = utcnow()
        db.flush()
    return row


def mark_all_read(db: Session, user_id: uuid.UUID) -> int:
    result = db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.read.is_(False))
        .values(read=True, read_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    return int(result.rowcount or 0)


def delete_notification(db: Session, user_id: uuid.UUID, notification_id: uuid.UUID) -> None:
    row = _owned_notification(db, user_id, notification_id)
    db.execute(delete(Notification).where(Notification.id == row.id))
    db.flush()

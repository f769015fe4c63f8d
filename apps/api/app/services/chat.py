from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import ColumnElement, and_, case, desc, func, or_, select, update
from sqlalchemy.orm import Session

from packages.lifecycle import ForbiddenError, InvalidInputError, NotFoundError, PropertyStatus

from ..context import RequestContext
from ..models import Message, NotificationCategory, NotificationType, Property, Role, User
from ..schemas import MessageCreateRequest
from ..settings import settings
from .common import utcnow
from .leads import record_tenant_contact
from .notifications import NotificationSpec, notify_best_effort
from .properties import get_property
from .rate_limit import enforce_user_rate_limit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Conversation:
    property_id: uuid.UUID
    counterpart_id: uuid.UUID
    last_message: str
    last_message_at: datetime
    unread_count: int


def assert_can_message(row: Property, sender_id: uuid.UUID) -> None:
    if row.status == PropertyStatus.ARCHIVED:
        raise ForbiddenError("This property is archived and no longer accepts messages")
    if row.status == PropertyStatus.RENTED and sender_id not in (row.owner_id, row.confirmed_tenant_id):
        raise ForbiddenError("This property is rented; only the owner and tenant can message")


def send_message(db: Session, context: RequestContext, payload: MessageCreateRequest) -> Message:
    enforce_user_rate_limit(
        user_id=context.current_user_id,
        bucket_name="chat_messages",
        max_requests=settings.message_rate_limit_per_minute,
    )
    if payload.receiver_id == context.current_user_id:
        raise InvalidInputError("You cannot message yourself")
    row = get_property(db, payload.property_id)
    assert_can_message(row, context.current_user_id)
    receiver = db.scalar(select(User).where(User.id == payload.receiver_id, User.deleted_at.is_(None)))
    if receiver is None:
        raise NotFoundError("Receiver not found")

    now = utcnow()
    message = Message(
        property_id=row.id,
        sender_id=context.current_user_id,
        receiver_id=receiver.id,
        content=payload.content.strip(),
        sent_at=now,
    )
    db.add(message)
    if context.current_role == Role.TENANT and receiver.id == row.owner_id:
        record_tenant_contact(db, row.owner_id, context.current_user_id, row.id)
    db.flush()
    db.commit()
    logger.info("message %s sent on property %s", message.id, row.id)

    preview = message.content if len(message.content) <= 100 else f"{message.content[:100]}..."
    notify_best_effort(
        db,
        [
            NotificationSpec(
                user_id=receiver.id,
                type=NotificationType.MESSAGE,
                title=f"New message about {row.title}",
                body=preview,
                related_property_id=row.id,
                related_user_id=context.current_user_id,
                action_url=f"/chat/{row.id}/{context.current_user_id}",
                category=NotificationCategory.CHAT,
            )
        ],
    )
    db.refresh(message)
    return message


def list_thread(
    db: Session,
    context: RequestContext,
    property_id: uuid.UUID,
    other_user_id: uuid.UUID,
    *,
    limit: int = 100,
) -> list[Message]:
    """The latest ``limit`` messages between the caller and another user about one property, oldest first.

    Returned messages addressed to the caller are marked read.
    """
    me = context.current_user_id
    newest = db.scalars(
        select(Message)
        .where(Message.property_id == property_id, _between(me, other_user_id))
        .order_by(desc(Message.sent_at), desc(Message.created_at))
        .limit(limit)
    ).all()
    rows = list(reversed(newest))
    unread_ids = [row.id for row in rows if row.receiver_id == me and not row.read]
    if unread_ids:
        db.execute(
            update(Message)
            .where(Message.id.in_(unread_ids))
            .values(read=True)
            .execution_options(synchronize_session=False)
        )
    return rows


def _between(me: uuid.UUID, other_user_id: uuid.UUID) -> ColumnElement[bool]:
    return or_(
        and_(Message.sender_id == me, Message.receiver_id == other_user_id),
        and_(Message.sender_id == other_user_id, Message.receiver_id == me),
    )


def list_conversations(db: Session, context: RequestContext) -> list[Conversation]:
    """One entry per (property, counterpart) thread the caller takes part in, most recent first."""
    me = context.current_user_id
    mine = (
        select(
            Message.property_id,
            case((Message.sender_id == me, Message.receiver_id), else_=Message.sender_id).label("counterpart_id"),
            Message.sent_at,
            case((and_(Message.receiver_id == me, Message.read.is_(False)), 1), else_=0).label("unread"),
        )
        .where(or_(Message.sender_id == me, Message.receiver_id == me))
        .subquery()
    )
    last_sent_at = func.max(mine.c.sent_at)
    groups = db.execute(
        select(mine.c.property_id, mine.c.counterpart_id, last_sent_at, func.sum(mine.c.unread))
        .group_by(mine.c.property_id, mine.c.counterpart_id)
        .order_by(desc(last_sent_at))
    ).all()

    conversations: list[Conversation] = []
    for property_id, counterpart_id, _, unread_count in groups:
        last = db.scalars(
            select(Message)
            .where(Message.property_id == property_id, _between(me, counterpart_id))
            .order_by(desc(Message.sent_at), desc(Message.created_at))
            .limit(1)
        ).first()
        if last is None:
            continue
        conversations.append(
            Conversation(
                property_id=property_id,
                counterpart_id=counterpart_id,
                last_message=last.content,
                last_message_at=last.sent_at,
                unread_count=int(unread_count or 0),
            )
        )
    return conversations

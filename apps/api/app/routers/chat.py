from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..context import RequestContext, get_request_context
from ..db import get_db
from ..models import Message
from ..schemas import ConversationResponse, MessageCreateRequest, MessageResponse
from ..services.chat import list_conversations, list_thread, send_message
from .deals import party_summary, property_summary

router = APIRouter(prefix="/chat", tags=["chat"])


def _serialize_message(row: Message) -> MessageResponse:
    return MessageResponse(
        id=row.id,
        property_id=row.property_id,
        sender_id=row.sender_id,
        receiver_id=row.receiver_id,
        content=row.content,
        sent_at=row.sent_at,
        read=row.read,
    )


@router.post("/messages", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
def post_message(
    payload: MessageCreateRequest,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> MessageResponse:
    return _serialize_message(send_message(db, context, payload))


@router.get("/messages", response_model=list[MessageResponse])
def get_thread(
    property_id: uuid.UUID = Query(),
    other_user_id: uuid.UUID = Query(),
    limit: int = Query(default=100, ge=1, le=500),
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> list[MessageResponse]:
    rows = list_thread(db, context, property_id, other_user_id, limit=limit)
    response = [_serialize_message(row) for row in rows]
    db.commit()
    return response


@router.get("/conversations", response_model=list[ConversationResponse])
def get_conversations(
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> list[ConversationResponse]:
    return [
        ConversationResponse(
            property_id=row.property_id,
            property=property_summary(db, row.property_id),
            counterpart=party_summary(db, row.counterpart_id),
            last_message=row.last_message,
            last_message_at=row.last_message_at,
            unread_count=row.unread_count,
        )
        for row in list_conversations(db, context)
    ]

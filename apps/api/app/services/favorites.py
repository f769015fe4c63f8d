from __future__ import annotations

import logging
import uuid

from sqlalchemy import desc, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from packages.lifecycle import ConflictError

from ..context import RequestContext
from ..models import Favorite, Property
from .properties import get_property

logger = logging.getLogger(__name__)


def _find_favorite(db: Session, user_id: uuid.UUID, property_id: uuid.UUID) -> Favorite | None:
    return db.scalar(select(Favorite).where(Favorite.user_id == user_id, Favorite.property_id == property_id))


def toggle_favorite(db: Session, context: RequestContext, property_id: uuid.UUID) -> bool:
    """Save the listing for the caller, or remove it if already saved. Returns the new state."""
    row = get_property(db, property_id)
    existing = _find_favorite(db, context.current_user_id, row.id)
    if existing is not None:
        db.delete(existing)
        db.flush()
        logger.info("user %s unsaved property %s", context.current_user_id, row.id)
        return False
    db.add(Favorite(user_id=context.current_user_id, property_id=row.id))
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("This property is already in your favorites") from exc
    logger.info("user %s saved property %s", context.current_user_id, row.id)
    return True


def is_favorite(db: Session, context: RequestContext, property_id: uuid.UUID) -> bool:
    return _find_favorite(db, context.current_user_id, property_id) is not None


def list_favorites(db: Session, context: RequestContext) -> list[tuple[Favorite, Property]]:
    """Saved listings, newest first. Deleted and hidden listings drop out."""
    rows = db.execute(
        select(Favorite, Property)
        .join(Property, Property.id == Favorite.property_id)
        .where(
            Favorite.user_id == context.current_user_id,
            Property.deleted_at.is_(None),
            Property.hidden.is_(False),
        )
        .order_by(desc(Favorite.created_at), desc(Favorite.id))
    ).all()
    return [(favorite, row) for favorite, row in rows]

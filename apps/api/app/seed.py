from __future__ import annotations

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from packages.lifecycle import Furnishing, PropertyStatus

from .db import session_scope
from .logging import setup_logging
from .models import Property, Role, User
from .settings import settings

logger = logging.getLogger(__name__)

DEMO_TENANT_ID = uuid.UUID("22222222-2222-2222-2222-222222222222")
DEMO_ADMIN_ID = uuid.UUID("33333333-3333-3333-3333-333333333333")
DEMO_PROPERTY_ID = uuid.UUID("44444444-4444-4444-4444-444444444444")


def _ensure_user(db: Session, user_id: uuid.UUID, name: str, email: str, role: Role) -> User:
    user = db.scalar(select(User).where(User.id == user_id))
    if user is None:
        user = User(id=user_id, name=name, email=email, role=role)
        db.add(user)
        db.flush()
    return user


def main() -> None:
    setup_logging(settings.log_level, settings.log_format)
    owner_id = uuid.UUID(settings.dev_user_id)
    with session_scope() as db:
        owner = _ensure_user(db, owner_id, "Demo Owner", "owner@rentloop.local", Role.OWNER)
        _ensure_user(db, DEMO_TENANT_ID, "Demo Tenant", "tenant@rentloop.local", Role.TENANT)
        _ensure_user(db, DEMO_ADMIN_ID, "Demo Admin", "admin@rentloop.local", Role.ADMIN)

        listing = db.scalar(select(Property).where(Property.id == DEMO_PROPERTY_ID))
        if listing is None:
            db.add(
                Property(
                    id=DEMO_PROPERTY_ID,
                    owner_id=owner.id,
                    title="Sunny two bedroom flat",
                    description="Bright corner flat close to the park and the metro station.",
                    address="12 Market Street",
                    latitude=12.9716,
                    longitude=77.5946,
                    price=25000.0,
                    bedrooms=2,
                    bathrooms=2,
                    area=950.0,
                    furnishing=Furnishing.SEMI_FURNISHED,
                    status=PropertyStatus.AVAILABLE,
                    available=True,
                    images_json=[],
                )
            )
    logger.info("seed complete: owner=%s tenant=%s admin=%s", owner_id, DEMO_TENANT_ID, DEMO_ADMIN_ID)


if __name__ == "__main__":
    main()

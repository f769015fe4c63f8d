from __future__ import annotations

import uuid
from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from .db import get_db
from .models import Role, User
from .settings import settings


@dataclass(frozen=True)
class RequestContext:
    current_user_id: uuid.UUID
    current_role: Role

    @property
    def is_admin(self) -> bool:
        return self.current_role == Role.ADMIN


def require_role(context: RequestContext, *roles: Role) -> None:
    if context.current_role not in roles:
        allowed = ", ".join(role.value for role in roles)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"role required: {allowed}")


def _parse_role(value: str) -> Role:
    try:
        return Role(value)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid dev role") from exc


def get_request_context(
    db: Session = Depends(get_db),
    x_rentloop_user_id: str | None = Header(default=None),
) -> RequestContext:
    if settings.dev_auth_bypass:
        return RequestContext(
            current_user_id=uuid.UUID(settings.dev_user_id),
            current_role=_parse_role(settings.dev_role),
        )

    if not x_rentloop_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="missing auth context headers")

    try:
        user_id = uuid.UUID(x_rentloop_user_id)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid auth context headers") from exc

    user = db.scalar(select(User).where(User.id == user_id, User.deleted_at.is_(None)))
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="unknown user")
    if user.suspended:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="account suspended")

    return RequestContext(current_user_id=user.id, current_role=user.role)

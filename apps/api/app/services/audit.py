from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy.orm import Session

from ..context import RequestContext
from ..models import AuditLog


def write_audit_log(
    db: Session,
    context: RequestContext,
    action: str,
    target_type: str,
    target_id: str,
    metadata_json: dict[str, Any] | None = None,
) -> AuditLog:
    entry = AuditLog(
        actor_user_id=context.current_user_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        metadata_json={"actor_role": context.current_role.value, **(metadata_json or {})},
    )
    db.add(entry)
    db.flush()
    return entry


def write_system_audit_log(
    db: Session,
    action: str,
    target_type: str,
    target_id: str,
    metadata_json: dict[str, Any] | None = None,
    actor_user_id: uuid.UUID | None = None,
) -> AuditLog:
    entry = AuditLog(
        actor_user_id=actor_user_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        metadata_json=metadata_json or {},
    )
    db.add(entry)
    db.flush()
    return entry

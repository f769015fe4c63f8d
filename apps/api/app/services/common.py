from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def page_count(total: int, limit: int) -> int:
    if limit <= 0:
        return 0
    return math.ceil(total / limit)


def page_offset(page: int, limit: int) -> int:
    return (max(page, 1) - 1) * limit


def insert_ignoring_conflict(db: Session, model: Any, values: dict[str, Any], index_elements: list[str]) -> None:
    """INSERT a row unless one with the same unique key already exists."""
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = postgresql.insert(model).values(**values).on_conflict_do_nothing(index_elements=index_elements)
    elif dialect == "sqlite":
        stmt = sqlite.insert(model).values(**values).on_conflict_do_nothing(index_elements=index_elements)
    else:
        raise NotImplementedError(f"unsupported dialect for conflict-free insert: {dialect}")
    db.execute(stmt)

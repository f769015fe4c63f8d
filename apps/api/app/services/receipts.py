from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.orm import Session

from packages.lifecycle import format_receipt_id

from ..models import ReceiptSequence
from .common import insert_ignoring_conflict


def next_receipt_sequence(db: Session, year: int) -> int:
    """Reserve the next per-year sequence number inside the caller's transaction.

    The UPDATE holds the counter row lock until commit, so concurrent
    confirmations in the same year are serialized rather than colliding.
    """
    insert_ignoring_conflict(db, ReceiptSequence, {"year": year, "last_value": 0}, index_elements=["year"])
    value = db.scalar(
        update(ReceiptSequence)
        .where(ReceiptSequence.year == year)
        .values(last_value=ReceiptSequence.last_value + 1)
        .returning(ReceiptSequence.last_value)
        .execution_options(synchronize_session=False)
    )
    if value is None:
        raise RuntimeError(f"receipt sequence row missing for {year}")
    return int(value)


def next_receipt_id(db: Session, year: int) -> str:
    return format_receipt_id(year, next_receipt_sequence(db, year))

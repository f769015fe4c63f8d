from __future__ import annotations

import re

from .errors import InvalidInputError, InvalidTransitionError
from .schema import LeadLabel, LeadStage, PropertyStatus, StageEffects, StatusEffects

ALLOWED_TRANSITIONS: dict[PropertyStatus, frozenset[PropertyStatus]] = {
    PropertyStatus.AVAILABLE: frozenset({PropertyStatus.IN_DISCUSSION, PropertyStatus.ARCHIVED}),
    PropertyStatus.IN_DISCUSSION: frozenset(
        {PropertyStatus.APPROVED, PropertyStatus.AVAILABLE, PropertyStatus.ARCHIVED}
    ),
    PropertyStatus.APPROVED: frozenset(
        {PropertyStatus.RENTED, PropertyStatus.IN_DISCUSSION, PropertyStatus.ARCHIVED}
    ),
    PropertyStatus.RENTED: frozenset(),
    PropertyStatus.ARCHIVED: frozenset({PropertyStatus.AVAILABLE}),
}

# Statuses still open to enquiries and deals.
ACTIVE_STATUSES: frozenset[PropertyStatus] = frozenset(
    {PropertyStatus.AVAILABLE, PropertyStatus.IN_DISCUSSION, PropertyStatus.APPROVED}
)

RECEIPT_ID_PATTERN = re.compile(r"^DEAL-(\d{4})-(\d{6})$")


def allowed_transitions(current: PropertyStatus) -> list[PropertyStatus]:
    return sorted(ALLOWED_TRANSITIONS.get(current, frozenset()), key=lambda item: item.value)


def can_transition(current: PropertyStatus, target: PropertyStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def assert_transition(current: PropertyStatus, target: PropertyStatus) -> None:
    if can_transition(current, target):
        return
    allowed = ", ".join(item.value for item in allowed_transitions(current)) or "none"
    raise InvalidTransitionError(
        f"Invalid status transition from '{current.value}' to '{target.value}'. Allowed: {allowed}"
    )


def status_effects(current: PropertyStatus, target: PropertyStatus) -> StatusEffects:
    """Validate a transition and describe the field changes that go with it."""
    assert_transition(current, target)
    if target == PropertyStatus.ARCHIVED:
        return StatusEffects(status=target, available=False, set_archived_at=True)
    if target == PropertyStatus.AVAILABLE:
        return StatusEffects(status=target, available=True, clear_archived_at=True)
    if target == PropertyStatus.RENTED:
        return StatusEffects(status=target, available=False)
    return StatusEffects(status=target)


def stage_effects(stage: LeadStage) -> StageEffects:
    if stage == LeadStage.CONFIRMED:
        return StageEffects(stage=stage, label=LeadLabel.CONVERTED, stamp_converted_at=True)
    if stage == LeadStage.REJECTED:
        return StageEffects(stage=stage, label=LeadLabel.LOST, stamp_rejected_at=True, record_rejection_reason=True)
    return StageEffects(stage=stage)


def format_receipt_id(year: int, sequence: int) -> str:
    if year < 1000 or year > 9999:
        raise InvalidInputError(f"receipt year out of range: {year}")
    if sequence < 1 or sequence > 999_999:
        raise InvalidInputError(f"receipt sequence out of range: {sequence}")
    return f"DEAL-{year:04d}-{sequence:06d}"


def parse_receipt_id(receipt_id: str) -> tuple[int, int]:
    match = RECEIPT_ID_PATTERN.match(receipt_id)
    if match is None:
        raise InvalidInputError(f"malformed receipt id: {receipt_id}")
    return int(match.group(1)), int(match.group(2))


def rented_invariant_holds(status: PropertyStatus, confirmed_tenant_id: object | None, available: bool) -> bool:
    if status != PropertyStatus.RENTED:
        return True
    return confirmed_tenant_id is not None and not available

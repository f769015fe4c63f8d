from __future__ import annotations

import uuid

import pytest

from packages.lifecycle import (
    ALLOWED_TRANSITIONS,
    InvalidInputError,
    InvalidStateError,
    InvalidTransitionError,
    LeadLabel,
    LeadStage,
    PropertyStatus,
    allowed_transitions,
    can_transition,
    format_receipt_id,
    parse_receipt_id,
    rented_invariant_holds,
    stage_effects,
    status_effects,
)


def test_transition_table_matches_lifecycle() -> None:
    assert allowed_transitions(PropertyStatus.AVAILABLE) == [PropertyStatus.ARCHIVED, PropertyStatus.IN_DISCUSSION]
    assert allowed_transitions(PropertyStatus.IN_DISCUSSION) == [
        PropertyStatus.APPROVED,
        PropertyStatus.ARCHIVED,
        PropertyStatus.AVAILABLE,
    ]
    assert allowed_transitions(PropertyStatus.APPROVED) == [
        PropertyStatus.ARCHIVED,
        PropertyStatus.IN_DISCUSSION,
        PropertyStatus.RENTED,
    ]
    assert allowed_transitions(PropertyStatus.ARCHIVED) == [PropertyStatus.AVAILABLE]
    assert allowed_transitions(PropertyStatus.RENTED) == []


def test_rented_is_terminal() -> None:
    for target in PropertyStatus:
        assert can_transition(PropertyStatus.RENTED, target) is False


def test_self_transitions_are_not_allowed() -> None:
    for current in ALLOWED_TRANSITIONS:
        assert can_transition(current, current) is False


def test_archived_to_rented_is_rejected_with_allowed_list() -> None:
    with pytest.raises(InvalidTransitionError) as exc_info:
        status_effects(PropertyStatus.ARCHIVED, PropertyStatus.RENTED)
    assert "from 'archived' to 'rented'" in exc_info.value.message
    assert "Allowed: available" in exc_info.value.message
    assert isinstance(exc_info.value, InvalidStateError)
    assert exc_info.value.code == "invalid_transition"


def test_status_effects_for_archive_and_restore() -> None:
    archived = status_effects(PropertyStatus.AVAILABLE, PropertyStatus.ARCHIVED)
    assert archived.available is False
    assert archived.set_archived_at is True

    restored = status_effects(PropertyStatus.ARCHIVED, PropertyStatus.AVAILABLE)
    assert restored.available is True
    assert restored.clear_archived_at is True

    negotiating = status_effects(PropertyStatus.AVAILABLE, PropertyStatus.IN_DISCUSSION)
    assert negotiating.available is None
    assert negotiating.set_archived_at is False


def test_status_effects_for_rented_clears_availability() -> None:
    effects = status_effects(PropertyStatus.APPROVED, PropertyStatus.RENTED)
    assert effects.status == PropertyStatus.RENTED
    assert effects.available is False


def test_stage_effects_drive_labels() -> None:
    confirmed = stage_effects(LeadStage.CONFIRMED)
    assert confirmed.label == LeadLabel.CONVERTED
    assert confirmed.stamp_converted_at is True

    rejected = stage_effects(LeadStage.REJECTED)
    assert rejected.label == LeadLabel.LOST
    assert rejected.stamp_rejected_at is True
    assert rejected.record_rejection_reason is True

    viewing = stage_effects(LeadStage.VIEWING_SCHEDULED)
    assert viewing.label is None
    assert viewing.stamp_converted_at is False


def test_receipt_id_format() -> None:
    assert format_receipt_id(2026, 1) == "DEAL-2026-000001"
    assert format_receipt_id(2026, 999_999) == "DEAL-2026-999999"
    assert parse_receipt_id("DEAL-2026-000042") == (2026, 42)


@pytest.mark.parametrize("year,sequence", [(2026, 0), (2026, 1_000_000), (99, 1)])
def test_receipt_id_rejects_out_of_range(year: int, sequence: int) -> None:
    with pytest.raises(InvalidInputError):
        format_receipt_id(year, sequence)


def test_parse_receipt_id_rejects_malformed() -> None:
    with pytest.raises(InvalidInputError):
        parse_receipt_id("DEAL-26-1")


def test_rented_invariant() -> None:
    tenant_id = uuid.uuid4()
    assert rented_invariant_holds(PropertyStatus.RENTED, tenant_id, False) is True
    assert rented_invariant_holds(PropertyStatus.RENTED, None, False) is False
    assert rented_invariant_holds(PropertyStatus.RENTED, tenant_id, True) is False
    assert rented_invariant_holds(PropertyStatus.AVAILABLE, None, True) is True

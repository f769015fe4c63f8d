from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.context import RequestContext
from app.models import AuditLog, DealReceipt, Lead, Notification, NotificationType, Property, ReceiptSequence, User
from app.schemas import DealConfirmRequest, PropertyUpdateRequest
from app.services import deals as deals_service
from app.services.deals import cancel_deal, confirm_deal, get_receipt_for_viewer, list_receipts
from app.services.leads import record_tenant_contact
from app.services.properties import transition_property_status, update_property
from app.services.receipts import next_receipt_id
from packages.lifecycle import (
    AlreadyCancelledError,
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    InvalidStateError,
    LeadLabel,
    LeadStage,
    NotFoundError,
    PropertyStatus,
    ReceiptStatus,
    parse_receipt_id,
)


def _confirm_payload(row: Property, tenant: User, rent: float = 20000.0) -> DealConfirmRequest:
    return DealConfirmRequest(property_id=row.id, tenant_id=tenant.id, agreed_rent=rent)


def _receipt_count(db: Session) -> int:
    return int(db.scalar(select(func.count(DealReceipt.id))) or 0)


def test_full_lifecycle_produces_first_receipt_of_the_year(
    db_session: Session,
    users: dict[str, User],
    contexts: dict[str, RequestContext],
    property_factory: Callable[..., Property],
) -> None:
    row = property_factory()
    owner = contexts["owner"]
    transition_property_status(db_session, owner, row.id, PropertyStatus.IN_DISCUSSION)
    transition_property_status(db_session, owner, row.id, PropertyStatus.APPROVED)
    db_session.commit()

    receipt = confirm_deal(db_session, owner, _confirm_payload(row, users["tenant"]))

    year = datetime.now(timezone.utc).year
    assert receipt.receipt_id == f"DEAL-{year}-000001"
    assert receipt.status == ReceiptStatus.CONFIRMED
    assert receipt.agreed_rent == 20000.0
    assert receipt.lease_duration_months == 12
    assert receipt.property_snapshot_json["title"] == "Garden flat near the river"
    db_session.refresh(row)
    assert row.status == PropertyStatus.RENTED
    assert row.confirmed_tenant_id == users["tenant"].id
    assert row.available is False
    assert row.rented_at is not None


def test_confirm_notifies_both_parties_and_writes_audit(
    db_session: Session,
    users: dict[str, User],
    contexts: dict[str, RequestContext],
    approved_property: Property,
) -> None:
    receipt = confirm_deal(db_session, contexts["owner"], _confirm_payload(approved_property, users["tenant"]))

    notifications = db_session.scalars(select(Notification).where(Notification.related_receipt_id == receipt.id)).all()
    assert {row.user_id for row in notifications} == {users["tenant"].id, users["owner"].id}
    assert all(row.type == NotificationType.DEAL_CONFIRMED for row in notifications)
    assert all(row.action_url == f"/receipt/{receipt.id}" for row in notifications)

    actions = db_session.scalars(select(AuditLog.action)).all()
    assert "deal.confirmed" in actions


def test_confirm_on_available_property_is_invalid_state(
    db_session: Session,
    users: dict[str, User],
    contexts: dict[str, RequestContext],
    property_factory: Callable[..., Property],
) -> None:
    row = property_factory(status=PropertyStatus.AVAILABLE)

    with pytest.raises(InvalidStateError) as exc_info:
        confirm_deal(db_session, contexts["owner"], _confirm_payload(row, users["tenant"]))

    assert "Current status: 'available'" in exc_info.value.message
    assert _receipt_count(db_session) == 0


def test_confirm_twice_is_conflict_and_keeps_one_receipt(
    db_session: Session,
    users: dict[str, User],
    contexts: dict[str, RequestContext],
    approved_property: Property,
) -> None:
    confirm_deal(db_session, contexts["owner"], _confirm_payload(approved_property, users["tenant"]))

    with pytest.raises(ConflictError):
        confirm_deal(db_session, contexts["owner"], _confirm_payload(approved_property, users["other_tenant"]))

    confirmed = db_session.scalar(
        select(func.count(DealReceipt.id)).where(
            DealReceipt.property_id == approved_property.id,
            DealReceipt.status == ReceiptStatus.CONFIRMED,
        )
    )
    assert confirmed == 1


def test_confirm_with_stale_tenant_link_is_conflict(
    db_session: Session,
    users: dict[str, User],
    contexts: dict[str, RequestContext],
    property_factory: Callable[..., Property],
) -> None:
    row = property_factory(status=PropertyStatus.APPROVED, confirmed_tenant_id=users["other_tenant"].id)

    with pytest.raises(ConflictError):
        confirm_deal(db_session, contexts["owner"], _confirm_payload(row, users["tenant"]))
    assert _receipt_count(db_session) == 0


def test_confirm_checks_run_in_order(
    db_session: Session,
    users: dict[str, User],
    contexts: dict[str, RequestContext],
    property_factory: Callable[..., Property],
) -> None:
    foreign = property_factory(owner="other_owner", status=PropertyStatus.AVAILABLE)

    # Ownership is checked before status.
    with pytest.raises(ForbiddenError):
        confirm_deal(db_session, contexts["owner"], _confirm_payload(foreign, users["tenant"]))

    missing = DealConfirmRequest(
        property_id=users["admin"].id,
        tenant_id=users["tenant"].id,
        agreed_rent=1000,
    )
    with pytest.raises(NotFoundError):
        confirm_deal(db_session, contexts["owner"], missing)


def test_confirm_requires_a_tenant_account(
    db_session: Session,
    users: dict[str, User],
    contexts: dict[str, RequestContext],
    approved_property: Property,
) -> None:
    with pytest.raises(InvalidInputError):
        confirm_deal(db_session, contexts["owner"], _confirm_payload(approved_property, users["other_owner"]))
    db_session.refresh(approved_property)
    assert approved_property.status == PropertyStatus.APPROVED


def test_confirm_converts_existing_lead(
    db_session: Session,
    users: dict[str, User],
    contexts: dict[str, RequestContext],
    approved_property: Property,
) -> None:
    lead = record_tenant_contact(db_session, users["owner"].id, users["tenant"].id, approved_property.id)
    db_session.commit()

    confirm_deal(db_session, contexts["owner"], _confirm_payload(approved_property, users["tenant"]))

    db_session.refresh(lead)
    assert lead.stage == LeadStage.CONFIRMED
    assert lead.label == LeadLabel.CONVERTED
    assert lead.converted_at is not None


def test_cancel_reverts_property_and_blocks_second_cancel(
    db_session: Session,
    users: dict[str, User],
    contexts: dict[str, RequestContext],
    approved_property: Property,
) -> None:
    receipt = confirm_deal(db_session, contexts["owner"], _confirm_payload(approved_property, users["tenant"]))

    cancelled = cancel_deal(db_session, contexts["owner"], receipt.id, "tenant withdrew")

    assert cancelled.status == ReceiptStatus.CANCELLED
    assert cancelled.cancellation_reason == "tenant withdrew"
    assert cancelled.cancelled_by_user_id == users["owner"].id
    db_session.refresh(approved_property)
    assert approved_property.status == PropertyStatus.AVAILABLE
    assert approved_property.available is True
    assert approved_property.confirmed_tenant_id is None
    assert approved_property.rented_at is None

    with pytest.raises(AlreadyCancelledError):
        cancel_deal(db_session, contexts["owner"], receipt.id, "again")

    db_session.refresh(approved_property)
    db_session.refresh(cancelled)
    assert approved_property.status == PropertyStatus.AVAILABLE
    assert cancelled.cancellation_reason == "tenant withdrew"


def test_cancel_notifies_tenant(
    db_session: Session,
    users: dict[str, User],
    contexts: dict[str, RequestContext],
    approved_property: Property,
) -> None:
    receipt = confirm_deal(db_session, contexts["owner"], _confirm_payload(approved_property, users["tenant"]))
    cancel_deal(db_session, contexts["owner"], receipt.id, None)

    rejection = db_session.scalar(
        select(Notification).where(
            Notification.user_id == users["tenant"].id,
            Notification.type == NotificationType.REJECTION,
        )
    )
    assert rejection is not None
    assert rejection.title == "Deal Cancelled"
    assert rejection.body is not None and rejection.body.endswith("Reason: Not specified")
    db_session.refresh(receipt)
    assert receipt.cancellation_reason == "No reason provided"


def test_cancel_permissions(
    db_session: Session,
    users: dict[str, User],
    contexts: dict[str, RequestContext],
    approved_property: Property,
) -> None:
    receipt = confirm_deal(db_session, contexts["owner"], _confirm_payload(approved_property, users["tenant"]))

    with pytest.raises(ForbiddenError):
        cancel_deal(db_session, contexts["tenant"], receipt.id, "changed my mind")

    cancelled = cancel_deal(db_session, contexts["admin"], receipt.id, "policy violation")
    assert cancelled.status == ReceiptStatus.CANCELLED
    assert cancelled.cancelled_by_user_id == users["admin"].id


def test_property_can_be_relet_after_cancellation(
    db_session: Session,
    users: dict[str, User],
    contexts: dict[str, RequestContext],
    approved_property: Property,
) -> None:
    owner = contexts["owner"]
    first = confirm_deal(db_session, owner, _confirm_payload(approved_property, users["tenant"]))
    cancel_deal(db_session, owner, first.id, "tenant withdrew")

    transition_property_status(db_session, owner, approved_property.id, PropertyStatus.IN_DISCUSSION)
    transition_property_status(db_session, owner, approved_property.id, PropertyStatus.APPROVED)
    db_session.commit()
    second = confirm_deal(db_session, owner, _confirm_payload(approved_property, users["other_tenant"]))

    assert parse_receipt_id(second.receipt_id)[1] == parse_receipt_id(first.receipt_id)[1] + 1
    db_session.refresh(approved_property)
    assert approved_property.confirmed_tenant_id == users["other_tenant"].id


def test_receipt_ids_strictly_increase(db_session: Session, users: dict[str, User]) -> None:
    ids = [next_receipt_id(db_session, 2031) for _ in range(5)]
    db_session.commit()

    sequences = [parse_receipt_id(receipt_id)[1] for receipt_id in ids]
    assert sequences == [1, 2, 3, 4, 5]
    assert len(set(ids)) == 5
    assert next_receipt_id(db_session, 2032) == "DEAL-2032-000001"


def test_receipt_visibility(
    db_session: Session,
    users: dict[str, User],
    contexts: dict[str, RequestContext],
    approved_property: Property,
) -> None:
    receipt = confirm_deal(db_session, contexts["owner"], _confirm_payload(approved_property, users["tenant"]))

    for key in ("owner", "tenant", "admin"):
        assert get_receipt_for_viewer(db_session, contexts[key], receipt.id).id == receipt.id
    with pytest.raises(ForbiddenError):
        get_receipt_for_viewer(db_session, contexts["other_tenant"], receipt.id)

    rows, total = list_receipts(db_session, user_id=users["tenant"].id)
    assert total == 1 and rows[0].id == receipt.id
    rows, total = list_receipts(db_session, user_id=users["other_tenant"].id)
    assert total == 0
    rows, total = list_receipts(db_session, status_filter=ReceiptStatus.CANCELLED)
    assert total == 0


def test_manual_transitions_follow_the_table(
    db_session: Session,
    contexts: dict[str, RequestContext],
    property_factory: Callable[..., Property],
) -> None:
    row = property_factory(status=PropertyStatus.ARCHIVED)

    with pytest.raises(InvalidStateError):
        transition_property_status(db_session, contexts["owner"], row.id, PropertyStatus.RENTED)
    db_session.refresh(row)
    assert row.status == PropertyStatus.ARCHIVED

    restored = transition_property_status(db_session, contexts["owner"], row.id, PropertyStatus.AVAILABLE)
    assert restored.available is True
    assert restored.archived_at is None


def test_manual_transition_cannot_rent_or_cross_owners(
    db_session: Session,
    contexts: dict[str, RequestContext],
    approved_property: Property,
) -> None:
    with pytest.raises(InvalidStateError):
        transition_property_status(db_session, contexts["owner"], approved_property.id, PropertyStatus.RENTED)
    with pytest.raises(ForbiddenError):
        transition_property_status(
            db_session, contexts["other_owner"], approved_property.id, PropertyStatus.ARCHIVED
        )
    db_session.refresh(approved_property)
    assert approved_property.status == PropertyStatus.APPROVED


def test_lead_upsert_counts_messages(
    db_session: Session,
    users: dict[str, User],
    approved_property: Property,
) -> None:
    record_tenant_contact(db_session, users["owner"].id, users["tenant"].id, approved_property.id)
    lead = record_tenant_contact(db_session, users["owner"].id, users["tenant"].id, approved_property.id)
    db_session.commit()

    assert lead.total_messages == 2
    assert lead.label == LeadLabel.WARM
    assert db_session.scalar(select(func.count(Lead.id))) == 1


def test_receipt_snapshot_survives_later_property_edits(
    db_session: Session,
    users: dict[str, User],
    contexts: dict[str, RequestContext],
    approved_property: Property,
) -> None:
    receipt = confirm_deal(db_session, contexts["owner"], _confirm_payload(approved_property, users["tenant"]))

    update_property(
        db_session,
        contexts["owner"],
        approved_property.id,
        PropertyUpdateRequest(title="Renovated loft", address="9 Canal Street", bedrooms=4, area=120.0),
    )
    db_session.commit()
    db_session.refresh(receipt)

    snapshot = receipt.property_snapshot_json
    assert snapshot["title"] == "Garden flat near the river"
    assert snapshot["address"] == "7 River Road"
    assert snapshot["bedrooms"] == 2
    assert snapshot["area"] == 72.0


def test_failed_confirm_leaves_no_partial_writes(
    monkeypatch: pytest.MonkeyPatch,
    db_session: Session,
    users: dict[str, User],
    contexts: dict[str, RequestContext],
    approved_property: Property,
) -> None:
    def _lead_store_down(*args: object, **kwargs: object) -> None:
        raise RuntimeError("lead store unavailable")

    original = deals_service.mark_lead_converted
    monkeypatch.setattr(deals_service, "mark_lead_converted", _lead_store_down)
    with pytest.raises(RuntimeError):
        confirm_deal(db_session, contexts["owner"], _confirm_payload(approved_property, users["tenant"]))
    db_session.rollback()

    year = datetime.now(timezone.utc).year
    assert _receipt_count(db_session) == 0
    assert db_session.get(ReceiptSequence, year) is None
    db_session.refresh(approved_property)
    assert approved_property.status == PropertyStatus.APPROVED
    assert approved_property.confirmed_tenant_id is None
    assert approved_property.rented_at is None

    monkeypatch.setattr(deals_service, "mark_lead_converted", original)
    receipt = confirm_deal(db_session, contexts["owner"], _confirm_payload(approved_property, users["tenant"]))
    assert receipt.receipt_id == f"DEAL-{year}-000001"

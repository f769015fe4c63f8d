from packages.lifecycle.engine import (
    ACTIVE_STATUSES,
    ALLOWED_TRANSITIONS,
    allowed_transitions,
    assert_transition,
    can_transition,
    format_receipt_id,
    parse_receipt_id,
    rented_invariant_holds,
    stage_effects,
    status_effects,
)
from packages.lifecycle.errors import (
    AlreadyCancelledError,
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    InvalidStateError,
    InvalidTransitionError,
    LifecycleError,
    NotFoundError,
)
from packages.lifecycle.schema import (
    DealTermJSON,
    Furnishing,
    LeadLabel,
    LeadStage,
    PropertySnapshotJSON,
    PropertyStatus,
    ReceiptStatus,
    StageEffects,
    StatusEffects,
)

__all__ = [
    "ACTIVE_STATUSES",
    "ALLOWED_TRANSITIONS",
    "AlreadyCancelledError",
    "ConflictError",
    "DealTermJSON",
    "ForbiddenError",
    "Furnishing",
    "InvalidInputError",
    "InvalidStateError",
    "InvalidTransitionError",
    "LeadLabel",
    "LeadStage",
    "LifecycleError",
    "NotFoundError",
    "PropertySnapshotJSON",
    "PropertyStatus",
    "ReceiptStatus",
    "StageEffects",
    "StatusEffects",
    "allowed_transitions",
    "assert_transition",
    "can_transition",
    "format_receipt_id",
    "parse_receipt_id",
    "rented_invariant_holds",
    "stage_effects",
    "status_effects",
]

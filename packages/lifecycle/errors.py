"""Error kinds raised by the property and deal lifecycle."""

from __future__ import annotations


class LifecycleError(Exception):
    """Base exception for lifecycle failures surfaced to callers."""

    code = "lifecycle_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(LifecycleError):
    """Raised when a referenced entity does not exist."""

    code = "not_found"


class ForbiddenError(LifecycleError):
    """Raised when the caller lacks ownership or role for the operation."""

    code = "forbidden"


class InvalidStateError(LifecycleError):
    """Raised when an entity is in the wrong state for the operation."""

    code = "invalid_state"


class InvalidTransitionError(InvalidStateError):
    """Raised when a status change is not in the transition table."""

    code = "invalid_transition"


class ConflictError(LifecycleError):
    """Raised when the operation would duplicate a confirmed deal."""

    code = "conflict"


class InvalidInputError(LifecycleError):
    """Raised when required fields are missing or malformed."""

    code = "validation_error"


class AlreadyCancelledError(LifecycleError):
    code = "already_cancelled"

from __future__ import annotations

import logging

from fastapi import FastAPI, status
from starlette.requests import Request
from starlette.responses import JSONResponse

from packages.lifecycle import (
    AlreadyCancelledError,
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    InvalidStateError,
    LifecycleError,
    NotFoundError,
)

logger = logging.getLogger(__name__)

# Conflicts share 400 with the other precondition failures, as the deal endpoints document.
STATUS_BY_ERROR: list[tuple[type[LifecycleError], int]] = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ForbiddenError, status.HTTP_403_FORBIDDEN),
    (InvalidStateError, status.HTTP_400_BAD_REQUEST),
    (ConflictError, status.HTTP_400_BAD_REQUEST),
    (InvalidInputError, status.HTTP_400_BAD_REQUEST),
    (AlreadyCancelledError, status.HTTP_400_BAD_REQUEST),
]


def status_code_for(exc: LifecycleError) -> int:
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_400_BAD_REQUEST


async def lifecycle_error_handler(request: Request, exc: LifecycleError) -> JSONResponse:
    status_code = status_code_for(exc)
    logger.info(
        "%s %s rejected: %s (%s)",
        request.method,
        request.url.path,
        exc.message,
        exc.code,
        extra={"request_id": getattr(request.state, "request_id", None)},
    )
    return JSONResponse(status_code=status_code, content={"detail": exc.message, "code": exc.code})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LifecycleError, lifecycle_error_handler)  # type: ignore[arg-type]

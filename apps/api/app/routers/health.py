from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

from ..db import check_db_health
from ..redis_client import get_redis_client
from ..settings import settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


def _dependency_checks() -> dict[str, str]:
    checks = {"db": "ok", "redis": "ok"}
    try:
        check_db_health()
    except SQLAlchemyError:
        logger.warning("readiness: database unreachable", exc_info=True)
        checks["db"] = "down"
    try:
        get_redis_client().ping()
    except RedisError:
        logger.warning("readiness: redis unreachable")
        checks["redis"] = "down"
    return checks


@router.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok", "service": "rentloop-api"}


@router.get("/healthz")
def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/ready")
def ready() -> dict[str, object]:
    checks = _dependency_checks()
    if any(value != "ok" for value in checks.values()):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"status": "not_ready", "env": settings.app_env, "checks": checks},
        )
    return {"status": "ready", "env": settings.app_env, "checks": checks}


@router.get("/healthz/db")
def healthz_db() -> dict[str, str]:
    try:
        check_db_health()
    except SQLAlchemyError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="database unavailable") from exc
    return {"status": "ok"}

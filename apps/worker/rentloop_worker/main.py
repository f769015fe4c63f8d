import logging
import os
import uuid
from datetime import datetime, timedelta, timezone

from celery import Celery, Task
from celery.schedules import crontab
from celery.signals import setup_logging as celery_setup_logging
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from app.db import SessionLocal
from app.logging import setup_logging
from app.models import Notification
from app.services.audit import write_system_audit_log
from app.settings import settings

logger = logging.getLogger(__name__)

broker_url = os.getenv("REDIS_URL", "redis://localhost:6379/0")
app = Celery("rentloop-worker", broker=broker_url, backend=broker_url)
app.conf.beat_schedule = {
    "purge-read-notifications": {
        "task": "worker.notifications.purge_read",
        "schedule": crontab(hour=3, minute=0),
    },
}


@celery_setup_logging.connect
def _configure_worker_logging(**_kwargs: object) -> None:
    setup_logging(settings.log_level, settings.log_format)


def _now() -> datetime:
    return datetime.now(timezone.utc)


@app.task(name="worker.health.ping")
def ping() -> str:
    return "pong"


@app.task(name="worker.notifications.deliver", bind=True, max_retries=3, retry_backoff=True)
def deliver_notification(self: Task, notification_id: str) -> str:
    try:
        with SessionLocal() as db:
            row = db.scalar(select(Notification).where(Notification.id == uuid.UUID(notification_id)))
            if row is None:
                logger.info("notification %s no longer exists", notification_id)
                return "missing"
            if row.delivered_at is not None:
                return "already_delivered"
            row.delivered_at = _now()
            db.commit()
    except SQLAlchemyError as exc:
        logger.warning("delivery of notification %s failed, retrying", notification_id, exc_info=True)
        raise self.retry(exc=exc)
    logger.info("notification %s delivered", notification_id)
    return "delivered"


@app.task(name="worker.notifications.purge_read")
def purge_read_notifications() -> int:
    """Delete read notifications older than the retention window."""
    cutoff = _now() - timedelta(days=settings.read_notification_ttl_days)
    with SessionLocal() as db:
        result = db.execute(
            delete(Notification).where(Notification.read.is_(True), Notification.read_at < cutoff)
        )
        purged = int(result.rowcount or 0)
        if purged:
            write_system_audit_log(
                db,
                "notifications.purged",
                "notification",
                "*",
                {"count": purged, "cutoff": cutoff.isoformat()},
            )
        db.commit()
    logger.info("purged %d read notification(s) older than %s", purged, cutoff.isoformat())
    return purged

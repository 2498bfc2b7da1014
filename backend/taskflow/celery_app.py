"""
Celery worker + beat schedule for refresh-session housekeeping.

Reads already ignore expired sessions; the purge only reclaims storage.
"""
from celery import Celery
import logging

from .config import settings
from .database import SessionLocal
from .services.session_store import SessionStore
from .use_cases.session_lifecycle import purge_expired_sessions_use_case

logger = logging.getLogger(__name__)

celery_app = Celery(
    "taskflow",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND
)

celery_app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,
    beat_schedule={
        "purge-expired-refresh-sessions": {
            "task": "purge_expired_refresh_sessions",
            "schedule": float(settings.REFRESH_SESSION_PURGE_INTERVAL_SECONDS),
        },
    },
)


@celery_app.task(name="purge_expired_refresh_sessions")
def purge_expired_refresh_sessions():
    """Delete refresh sessions whose TTL has elapsed."""
    db = SessionLocal()

    try:
        purged = purge_expired_sessions_use_case(store=SessionStore(db))
        logger.info("auth.refresh_sessions_purged count=%d", purged)
    except Exception:
        db.rollback()
        logger.exception("Error purging expired refresh sessions")
        raise
    finally:
        db.close()

    return {"purged": purged}

import logging

from sqlalchemy.orm import Session
from sqlalchemy.exc import OperationalError, ProgrammingError

from flightbot.db.session import SessionLocal
from flightbot.services.email_service import process_pending_emails

logger = logging.getLogger(__name__)


def process_email_queue(limit: int = 50, session_factory=SessionLocal) -> dict:
    """Retry queued/failed confirmation emails. Run periodically via Celery beat."""
    db: Session = session_factory()
    try:
        try:
            result = process_pending_emails(db, limit=limit)
        except (ProgrammingError, OperationalError):
            # DB not migrated yet; don't crash the worker.
            db.rollback()
            return {"skipped": True, "reason": "missing_tables"}
        if result["processed"]:
            logger.info("Email queue: %s", result)
        return result
    finally:
        db.close()

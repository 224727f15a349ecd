"""
Day Lifecycle Tasks

Celery Beat runs `auto_close_pending_days` every few minutes. The sweep
finds every user with an open day and moves days whose lock window has
passed to `auto_closed`, refreshing the partner-visible summary with them.

Design:
    - One global task per run (not one per user).
    - Each user is committed separately; one user's failure does NOT
      block others.
    - Within a user, each day closes in its own savepoint.
    - Reruns only ever touch days that are still open, so overlapping or
      repeated sweeps are harmless.

`escalate_missed_days` reports users whose missed streak reached the
configured threshold. It only logs and returns them; delivering a
notification is up to whoever consumes the task result.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional
from uuid import UUID

from celery import Task
from sqlalchemy.orm import Session

from tasks import celery_app
from core.config import settings
from core.database import get_db_sync
import logging

logger = logging.getLogger(__name__)


def _users_with_open_days(db: Session) -> List[UUID]:
    from models import JournalDocument
    from services.day_availability import DAY_STATUS_OPEN
    from services.document_validation import DOC_TYPE_DAY

    rows = (
        db.query(JournalDocument.user_id)
        .filter(
            JournalDocument.doc_type == DOC_TYPE_DAY,
            JournalDocument.status == DAY_STATUS_OPEN,
        )
        .distinct()
        .all()
    )
    return [row[0] for row in rows]


def _sweep_auto_close(db: Session, utc_now: datetime) -> Dict:
    """Auto-close every lock-expired open day. Commits per user."""
    from services.document_service import auto_close_pending_days

    user_ids = _users_with_open_days(db)
    days_closed = 0
    errors = []

    for user_id in user_ids:
        try:
            closed = auto_close_pending_days(db, user_id, now=utc_now)
            db.commit()
            days_closed += closed
        except Exception as e:
            db.rollback()
            logger.error(f"Auto-close failed for user {user_id}: {type(e).__name__}: {e}", exc_info=True)
            errors.append({"user_id": str(user_id), "error": str(e)})

    return {
        "status": "ok",
        "utc_time": utc_now.isoformat(),
        "users_processed": len(user_ids) - len(errors),
        "users_errored": len(errors),
        "days_closed": days_closed,
        "errors": errors if errors else None,
    }


def _find_missed_day_escalations(db: Session, utc_now: datetime, threshold: int) -> Dict:
    """Users whose consecutive missed-day count is at or above `threshold`."""
    from models import User
    from services.missed_days import get_consecutive_missed_count

    escalations = []
    errors = []

    for user in db.query(User).all():
        try:
            count = get_consecutive_missed_count(db, user.id, now=utc_now)
        except Exception as e:
            logger.error(f"Missed-day check failed for user {user.id}: {e}", exc_info=True)
            errors.append({"user_id": str(user.id), "error": str(e)})
            continue

        if count >= threshold:
            logger.warning(
                f"User {user.id} has missed {count} consecutive days",
                extra={"extra_fields": {"user_id": str(user.id), "missed_days": count}},
            )
            escalations.append({"user_id": str(user.id), "missed_days": count})

    return {
        "status": "ok",
        "utc_time": utc_now.isoformat(),
        "threshold": threshold,
        "escalations": escalations,
        "errors": errors if errors else None,
    }


@celery_app.task(
    name="tasks.auto_close_pending_days",
    bind=True,
    max_retries=0,      # The next beat run picks up anything left open
    soft_time_limit=600,
    time_limit=720,
)
def auto_close_pending_days_task(self: Task) -> Dict:
    db: Session = get_db_sync()
    utc_now = datetime.now(timezone.utc)

    try:
        result = _sweep_auto_close(db, utc_now)
        logger.info(
            f"Auto-close sweep: {result['days_closed']} days closed "
            f"across {result['users_processed']} users"
        )
        return result
    except Exception as e:
        logger.error(f"Auto-close sweep failed: {e}", exc_info=True)
        return {"status": "error", "message": str(e)}
    finally:
        db.close()


@celery_app.task(name="tasks.escalate_missed_days", bind=True, max_retries=0)
def escalate_missed_days_task(self: Task, threshold: Optional[int] = None) -> Dict:
    """
    Daily missed-streak check.

    Args:
        threshold: Override for MISSED_DAYS_ESCALATION_THRESHOLD.
    """
    db: Session = get_db_sync()
    utc_now = datetime.now(timezone.utc)

    try:
        return _find_missed_day_escalations(
            db, utc_now, threshold or settings.MISSED_DAYS_ESCALATION_THRESHOLD
        )
    except Exception as e:
        logger.error(f"Missed-day escalation failed: {e}", exc_info=True)
        return {"status": "error", "message": str(e)}
    finally:
        db.close()


@celery_app.task(name="tasks.backfill_status_summaries", bind=True, max_retries=0)
def backfill_status_summaries_task(self: Task) -> Dict:
    """Recompute every day's status summary from its document."""
    from services.status_summary import backfill_summaries

    db: Session = get_db_sync()
    try:
        updated = backfill_summaries(db)
        db.commit()
        logger.info(f"Status summary backfill: {updated} rows updated")
        return {"status": "ok", "updated": updated}
    except Exception as e:
        db.rollback()
        logger.error(f"Status summary backfill failed: {e}", exc_info=True)
        return {"status": "error", "message": str(e)}
    finally:
        db.close()

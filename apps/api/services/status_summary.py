"""
Status Summary Projector

Derives the small, partner-visible summary of a day document:

    day_closed          status == closed (auto-closed days are NOT closed)
    one_thing_done      primary task planned > 0 and done >= planned
    reflection_present  all six reflection fields non-empty

Rows are keyed by (user_id, date) and only ever written from here, after
a close, an auto-close, or a backfill. Raw document content never leaves
through this projection.
"""

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.exceptions import InternalError
from models import DailyStatusSummary, JournalDocument
from services.day_availability import DAY_STATUS_CLOSED, parse_date_key, utc_now
from services.day_content import get_reflection, has_complete_reflection, is_one_thing_done
from services.document_validation import DOC_TYPE_DAY

logger = logging.getLogger(__name__)


def update_summary(
    db: Session,
    user_id: UUID,
    date_key: str,
    document: JournalDocument,
    now: Optional[datetime] = None,
) -> DailyStatusSummary:
    """Recompute and upsert the summary row for one day. Storage errors raise InternalError."""
    summary_date = parse_date_key(date_key)
    content = document.content

    try:
        summary = (
            db.query(DailyStatusSummary)
            .filter(DailyStatusSummary.user_id == user_id, DailyStatusSummary.date == summary_date)
            .first()
        )
        if summary is None:
            summary = DailyStatusSummary(user_id=user_id, date=summary_date)
            db.add(summary)

        summary.day_closed = document.status == DAY_STATUS_CLOSED
        summary.one_thing_done = is_one_thing_done(content)
        summary.reflection_present = has_complete_reflection(get_reflection(content))
        summary.updated_at = now or utc_now()
        db.flush()
    except SQLAlchemyError as e:
        logger.error(f"Failed to update status summary for user {user_id} on {date_key}: {e}")
        raise InternalError("Failed to update status summary")

    return summary


def get_summaries(db: Session, user_id: UUID, start_date: date, end_date: date) -> List[DailyStatusSummary]:
    try:
        return (
            db.query(DailyStatusSummary)
            .filter(
                DailyStatusSummary.user_id == user_id,
                DailyStatusSummary.date >= start_date,
                DailyStatusSummary.date <= end_date,
            )
            .order_by(DailyStatusSummary.date.asc())
            .all()
        )
    except SQLAlchemyError as e:
        logger.error(f"Failed to load status summaries for user {user_id}: {e}")
        raise InternalError("Failed to load status summaries")


def update_summaries_for_user(
    db: Session,
    user_id: UUID,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
) -> int:
    """Recompute summaries for a user's day documents, optionally within [start_date, end_date]."""
    documents = (
        db.query(JournalDocument)
        .filter(JournalDocument.user_id == user_id, JournalDocument.doc_type == DOC_TYPE_DAY)
        .all()
    )
    updated = 0
    for document in documents:
        if start_date and document.doc_key < start_date:
            continue
        if end_date and document.doc_key > end_date:
            continue
        update_summary(db, user_id, document.doc_key, document)
        updated += 1
    return updated


def backfill_summaries(db: Session) -> int:
    """
    Ensure every day document has an up-to-date summary row.

    Each document is projected inside its own savepoint; a failure skips
    that document only and is not counted.
    """
    documents = db.query(JournalDocument).filter(JournalDocument.doc_type == DOC_TYPE_DAY).all()
    updated = 0
    for document in documents:
        try:
            with db.begin_nested():
                update_summary(db, document.user_id, document.doc_key, document)
            updated += 1
        except (InternalError, SQLAlchemyError, ValueError) as e:
            logger.error(
                f"Summary backfill failed for document {document.id}: {e}",
                extra={"extra_fields": {"user_id": str(document.user_id), "doc_key": document.doc_key}},
            )
    return updated

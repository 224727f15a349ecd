"""
Missed-Day Detector

A day is missed when its lock window has passed, it was never closed by
the user, and its reflection is incomplete. An auto-closed day with an
incomplete reflection is missed; a closed day never is, even though both
are locked.
"""

from datetime import datetime, timedelta
from typing import Dict, List, Optional
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from models import JournalDocument
from services.day_availability import DAY_STATUS_CLOSED, format_date_key, is_day_locked, utc_now
from services.day_content import get_reflection, has_complete_reflection
from services.document_repository import DocumentRepository
from services.document_validation import DOC_TYPE_DAY
from services.user_settings import get_user_settings

logger = logging.getLogger(__name__)

# How far back to look for the most recent fully-locked day.
LOCK_SEARCH_DAYS = 7
# Upper bound on a reported streak.
MAX_STREAK_DAYS = 365


def is_missed_day(document: JournalDocument, tz_name: Optional[str], now: Optional[datetime] = None) -> bool:
    if document.doc_type != DOC_TYPE_DAY:
        return False
    if document.status == DAY_STATUS_CLOSED:
        return False
    if not is_day_locked(document.doc_key, tz_name, now=now):
        return False
    return not has_complete_reflection(get_reflection(document.content))


def _missed_map(db: Session, user_id: UUID, tz_name: str, now: datetime) -> Dict[str, bool]:
    documents = DocumentRepository(db).find_by_user(user_id, doc_type=DOC_TYPE_DAY)
    return {document.doc_key: is_missed_day(document, tz_name, now=now) for document in documents}


def get_missed_days(db: Session, user_id: UUID, limit: int = 30, now: Optional[datetime] = None) -> List[str]:
    """Missed day keys, most recent first."""
    now = now or utc_now()
    tz_name = get_user_settings(db, user_id).timezone
    missed = sorted(
        (key for key, is_missed in _missed_map(db, user_id, tz_name, now).items() if is_missed),
        reverse=True,
    )
    return missed[:limit]


def get_consecutive_missed_count(db: Session, user_id: UUID, now: Optional[datetime] = None) -> int:
    """
    Length of the missed streak ending at the most recent fully-locked day.

    Days still inside their own edit window are skipped, not counted. The
    walk stops at the first day that is not missed or has no document.
    """
    now = now or utc_now()
    tz_name = get_user_settings(db, user_id).timezone
    missed = _missed_map(db, user_id, tz_name, now)

    start_offset = 0
    while start_offset < LOCK_SEARCH_DAYS:
        candidate = format_date_key(now - timedelta(days=start_offset), tz_name)
        if is_day_locked(candidate, tz_name, now=now):
            break
        start_offset += 1

    count = 0
    for offset in range(start_offset, MAX_STREAK_DAYS):
        date_key = format_date_key(now - timedelta(days=offset), tz_name)
        if not missed.get(date_key):
            break
        count += 1
    return count

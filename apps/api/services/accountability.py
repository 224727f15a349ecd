"""
Partner summary.

An accountability partner only ever sees StatusSummary rows for the
requested range, never document content. Pairing itself is managed
elsewhere; this module only reads accepted pairs.
"""

from datetime import date
from typing import List, Optional
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from core.exceptions import ForbiddenError, ValidationError
from models import AccountabilityPair, DailyStatusSummary
from services.status_summary import get_summaries


def get_partner_id(db: Session, user_id: UUID) -> Optional[UUID]:
    pair = (
        db.query(AccountabilityPair)
        .filter(or_(AccountabilityPair.user_id == user_id, AccountabilityPair.partner_id == user_id))
        .order_by(AccountabilityPair.created_at.desc())
        .first()
    )
    if not pair:
        return None
    return pair.partner_id if pair.user_id == user_id else pair.user_id


def get_partner_summary(
    db: Session,
    user_id: UUID,
    start_date: date,
    end_date: date,
) -> List[DailyStatusSummary]:
    if start_date > end_date:
        raise ValidationError(
            "startDate must not be after endDate",
            {"startDate": start_date.isoformat(), "endDate": end_date.isoformat()},
        )
    partner_id = get_partner_id(db, user_id)
    if partner_id is None:
        raise ForbiddenError("No accountability partner")
    return get_summaries(db, partner_id, start_date, end_date)

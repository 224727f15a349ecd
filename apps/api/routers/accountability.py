"""
Accountability API Router

Partners see per-day status booleans only, never document content.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from datetime import date

from core.database import get_db
from core.auth import get_current_user
from models import User
from schemas import StatusSummaryResponse
from services.accountability import get_partner_summary

router = APIRouter(prefix="/v1/accountability", tags=["Accountability"])


@router.get("/partner/summary")
def partner_summary(
    start_date: date = Query(..., alias="startDate"),
    end_date: date = Query(..., alias="endDate"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    summaries = get_partner_summary(db, current_user.id, start_date, end_date)
    return {
        "success": True,
        "data": {
            "summary": [
                StatusSummaryResponse.model_validate(s).model_dump(by_alias=True, mode="json")
                for s in summaries
            ]
        },
    }

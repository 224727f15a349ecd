"""
User settings provider for the day lifecycle.

Missing timezone means UTC; missing account start date means no floor.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional
from uuid import UUID
import logging
import zoneinfo

from sqlalchemy.orm import Session

from models import User

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "UTC"


@dataclass(frozen=True)
class UserSettings:
    timezone: str = DEFAULT_TIMEZONE
    account_start_date: Optional[date] = None


def _valid_timezone(name: Optional[str]) -> Optional[str]:
    if not name:
        return None
    try:
        zoneinfo.ZoneInfo(name)
        return name
    except (zoneinfo.ZoneInfoNotFoundError, ValueError):
        return None


def get_user_settings(db: Session, user_id: UUID) -> UserSettings:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        return UserSettings()

    tz = _valid_timezone(user.timezone)
    if user.timezone and tz is None:
        logger.warning(f"Invalid timezone '{user.timezone}' for user {user_id}, using {DEFAULT_TIMEZONE}")

    return UserSettings(
        timezone=tz or DEFAULT_TIMEZONE,
        account_start_date=user.account_start_date,
    )

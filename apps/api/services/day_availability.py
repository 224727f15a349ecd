"""
Day Availability Calculator

Decides whether a day document can be read, edited, or must be locked,
based on the user's local calendar:

    available   from 24h before local midnight of the day
    editable    [day start - 24h, day end + 48h]
    locked      strictly after day end + 48h

Every function is a pure function of its inputs plus a single read of
"now" (or an explicit `now`), so callers that need several answers for one
request pass the same `now` to each. Nothing here raises.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Union
import logging
import zoneinfo

logger = logging.getLogger(__name__)

DAY_AVAILABLE_HOURS_BEFORE = 24
DAY_LOCK_HOURS_AFTER = 48

DAY_STATUS_OPEN = "open"
DAY_STATUS_CLOSED = "closed"
DAY_STATUS_AUTO_CLOSED = "auto_closed"
DAY_STATUS_PENDING_AUTO_CLOSE = "pending_auto_close"

DateLike = Union[str, date]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _zone(tz_name: Optional[str]) -> zoneinfo.ZoneInfo:
    try:
        return zoneinfo.ZoneInfo(tz_name or "UTC")
    except (zoneinfo.ZoneInfoNotFoundError, ValueError):
        logger.debug(f"Unknown timezone '{tz_name}', using UTC")
        return zoneinfo.ZoneInfo("UTC")


def _key(value: Optional[DateLike]) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, date):
        return value.isoformat()
    return value


def parse_date_key(date_key: str) -> date:
    return date.fromisoformat(date_key)


def get_day_start(date_key: str, tz_name: Optional[str]) -> datetime:
    """Local midnight of `date_key` in `tz_name`, as a UTC instant."""
    local = datetime.combine(parse_date_key(date_key), time(0, 0), tzinfo=_zone(tz_name))
    return local.astimezone(timezone.utc)


def get_day_end(date_key: str, tz_name: Optional[str]) -> datetime:
    """Last millisecond of `date_key` in `tz_name`, as a UTC instant."""
    local = datetime.combine(
        parse_date_key(date_key), time(23, 59, 59, 999000), tzinfo=_zone(tz_name)
    )
    return local.astimezone(timezone.utc)


def format_date_key(instant: datetime, tz_name: Optional[str] = "UTC") -> str:
    """The local calendar day (YYYY-MM-DD) that `instant` falls on in `tz_name`."""
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(_zone(tz_name)).date().isoformat()


def _before_account_start(date_key: str, account_start_date: Optional[DateLike]) -> bool:
    floor = _key(account_start_date)
    return floor is not None and date_key < floor


def is_day_available(
    date_key: str,
    tz_name: Optional[str],
    account_start_date: Optional[DateLike] = None,
    now: Optional[datetime] = None,
) -> bool:
    if _before_account_start(date_key, account_start_date):
        return False
    now = now or utc_now()
    available_at = get_day_start(date_key, tz_name) - timedelta(hours=DAY_AVAILABLE_HOURS_BEFORE)
    return now >= available_at


def is_day_editable(
    date_key: str,
    tz_name: Optional[str],
    account_start_date: Optional[DateLike] = None,
    now: Optional[datetime] = None,
) -> bool:
    if _before_account_start(date_key, account_start_date):
        return False
    now = now or utc_now()
    editable_start = get_day_start(date_key, tz_name) - timedelta(hours=DAY_AVAILABLE_HOURS_BEFORE)
    editable_end = get_day_end(date_key, tz_name) + timedelta(hours=DAY_LOCK_HOURS_AFTER)
    return editable_start <= now <= editable_end


def is_day_locked(date_key: str, tz_name: Optional[str], now: Optional[datetime] = None) -> bool:
    now = now or utc_now()
    lock_at = get_day_end(date_key, tz_name) + timedelta(hours=DAY_LOCK_HOURS_AFTER)
    return now > lock_at


def get_day_status(document, date_key: str, tz_name: Optional[str], now: Optional[datetime] = None) -> str:
    """
    Effective status of a day.

    Persisted terminal states pass through. An unswept day past its lock
    window reports `pending_auto_close`; anything else is open.
    """
    status = getattr(document, "status", None)
    if status == DAY_STATUS_CLOSED:
        return DAY_STATUS_CLOSED
    if status == DAY_STATUS_AUTO_CLOSED:
        return DAY_STATUS_AUTO_CLOSED
    if is_day_locked(date_key, tz_name, now=now):
        return DAY_STATUS_PENDING_AUTO_CLOSE
    return DAY_STATUS_OPEN


def should_auto_close(document, date_key: str, tz_name: Optional[str], now: Optional[datetime] = None) -> bool:
    if document is None or document.status != DAY_STATUS_OPEN:
        return False
    return is_day_locked(date_key, tz_name, now=now)

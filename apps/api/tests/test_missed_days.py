"""
Missed-day detection tests.

With NOW at 2026-02-07 12:00 UTC the most recent fully-locked day is
2026-02-04.
"""

from datetime import datetime, timezone
from types import SimpleNamespace

from services.document_service import auto_close_pending_days, close_day, get_document
from services.missed_days import get_consecutive_missed_count, get_missed_days, is_missed_day
from tests.journal_helpers import NOW, day_content, reflection


def day(doc_key, status="open", content=None):
    return SimpleNamespace(doc_type="day", doc_key=doc_key, status=status, content=content or {})


class TestIsMissedDay:

    def test_locked_open_day_without_reflection(self):
        assert is_missed_day(day("2026-02-04"), "UTC", now=NOW)

    def test_auto_closed_without_reflection(self):
        assert is_missed_day(day("2026-02-04", status="auto_closed"), "UTC", now=NOW)

    def test_closed_day_never_missed(self):
        assert not is_missed_day(day("2026-02-04", status="closed"), "UTC", now=NOW)

    def test_day_still_in_window(self):
        assert not is_missed_day(day("2026-02-05"), "UTC", now=NOW)

    def test_complete_reflection_not_missed(self):
        assert not is_missed_day(day("2026-02-04", content=day_content(day_reflection=reflection())), "UTC", now=NOW)

    def test_only_day_documents(self):
        week = SimpleNamespace(doc_type="week", doc_key="2026-W05", status="active", content={})
        assert not is_missed_day(week, "UTC", now=NOW)


class TestMissedStreak:

    def test_counts_back_from_latest_locked_day(self, db_session, test_user):
        for key in ("2026-02-04", "2026-02-03"):
            get_document(db_session, test_user.id, "day", key, now=NOW)
        close_day(db_session, test_user.id, "2026-02-02", reflection(),
                  now=datetime(2026, 2, 2, 20, tzinfo=timezone.utc))

        assert get_consecutive_missed_count(db_session, test_user.id, now=NOW) == 2

    def test_gap_breaks_streak(self, db_session, test_user):
        for key in ("2026-02-04", "2026-02-02"):
            get_document(db_session, test_user.id, "day", key, now=NOW)
        assert get_consecutive_missed_count(db_session, test_user.id, now=NOW) == 1

    def test_open_days_in_window_are_skipped(self, db_session, test_user):
        for key in ("2026-02-07", "2026-02-06", "2026-02-05", "2026-02-04"):
            get_document(db_session, test_user.id, "day", key, now=NOW)
        assert get_consecutive_missed_count(db_session, test_user.id, now=NOW) == 1

    def test_auto_close_keeps_streak(self, db_session, test_user):
        for key in ("2026-02-04", "2026-02-03"):
            get_document(db_session, test_user.id, "day", key, now=NOW)
        auto_close_pending_days(db_session, test_user.id, now=NOW)
        assert get_consecutive_missed_count(db_session, test_user.id, now=NOW) == 2

    def test_no_documents(self, db_session, test_user):
        assert get_consecutive_missed_count(db_session, test_user.id, now=NOW) == 0


class TestMissedDayList:

    def test_most_recent_first_with_limit(self, db_session, test_user):
        for key in ("2026-02-01", "2026-02-04", "2026-02-02", "2026-02-06"):
            get_document(db_session, test_user.id, "day", key, now=NOW)

        assert get_missed_days(db_session, test_user.id, now=NOW) == ["2026-02-04", "2026-02-02", "2026-02-01"]
        assert get_missed_days(db_session, test_user.id, limit=1, now=NOW) == ["2026-02-04"]

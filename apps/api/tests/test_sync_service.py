"""
Sync service tests: push with per-mutation results, pull watermark, full sync.
"""

from datetime import timedelta

import pytest

from core.exceptions import ValidationError
from models import JournalDocument
from schemas import SyncMutation
from services.document_service import close_day, save_document
from services.sync_service import (
    get_changed_documents,
    parse_doc_types,
    process_push_mutations,
    sync_full,
)
from tests.journal_helpers import NOW, TODAY, ago, day_content, iso, reflection, task, week_content


def upsert(mutation_id, doc_type="day", doc_key=TODAY, content=None, minutes_ago=1, device="phone"):
    return SyncMutation(
        id=mutation_id,
        doc_type=doc_type,
        doc_key=doc_key,
        content=content if content is not None else day_content(),
        client_updated_at=iso(ago(minutes_ago)),
        device_id=device,
        operation="upsert",
    )


def delete(mutation_id, doc_type="day", doc_key=TODAY):
    return SyncMutation(
        id=mutation_id,
        doc_type=doc_type,
        doc_key=doc_key,
        client_updated_at=iso(NOW),
        device_id="phone",
        operation="delete",
    )


class TestPush:

    def test_partial_failure_does_not_abort_batch(self, db_session, test_user):
        bad = day_content()
        bad["planning"]["topThree"] = [task()]
        results = process_push_mutations(
            db_session,
            test_user.id,
            [
                upsert("m1"),
                upsert("m2", doc_key="2026-02-06", content=bad),
                upsert("m3", doc_type="week", doc_key="2026-W06", content=week_content()),
            ],
            now=NOW,
        )

        assert [r.id for r in results] == ["m1", "m2", "m3"]
        assert [r.success for r in results] == [True, False, True]
        assert results[1].error["code"] == "VALIDATION_ERROR"
        assert "fieldErrors" in results[1].error["details"]
        keys = {d.doc_key for d in db_session.query(JournalDocument).all()}
        assert keys == {TODAY, "2026-W06"}

    def test_each_failure_carries_its_own_code(self, db_session, test_user):
        skewed = upsert("skew", minutes_ago=-30)
        locked = upsert("locked", doc_key="2026-02-01")
        results = process_push_mutations(db_session, test_user.id, [skewed, locked], now=NOW)
        assert [r.error["code"] for r in results] == ["CLOCK_SKEW_REJECTED", "DOC_LOCKED"]
        assert results[1].error["details"] == {"docKey": "2026-02-01"}

    def test_create_has_no_conflict_resolution(self, db_session, test_user):
        [result] = process_push_mutations(db_session, test_user.id, [upsert("m1")], now=NOW)
        assert result.success
        assert result.winner is None
        assert result.document is None

    def test_stale_upsert_reports_existing_winner(self, db_session, test_user):
        save_document(db_session, test_user.id, "day", TODAY, day_content(), iso(ago(1)), "laptop", now=NOW)
        stale = upsert("old", content=day_content(one_thing=task("Stale")), minutes_ago=30)

        [result] = process_push_mutations(db_session, test_user.id, [stale], now=NOW)
        assert result.success
        assert result.winner == "existing"
        assert result.document.content["planning"]["oneThing"]["title"] == "Chapter one"

    def test_mutations_apply_in_order(self, db_session, test_user):
        first = upsert("a", content=day_content(one_thing=task("First")), minutes_ago=5)
        second = upsert("b", content=day_content(one_thing=task("Second")), minutes_ago=2)
        results = process_push_mutations(db_session, test_user.id, [first, second], now=NOW)

        assert results[1].winner == "incoming"
        document = db_session.query(JournalDocument).one()
        assert document.content["planning"]["oneThing"]["title"] == "Second"

    def test_delete_removes_document(self, db_session, test_user):
        process_push_mutations(db_session, test_user.id, [upsert("m1")], now=NOW)
        [result] = process_push_mutations(db_session, test_user.id, [delete("d1")], now=NOW)
        assert result.success
        assert db_session.query(JournalDocument).count() == 0

    def test_delete_missing_document_succeeds(self, db_session, test_user):
        [result] = process_push_mutations(db_session, test_user.id, [delete("d1")], now=NOW)
        assert result.success

    def test_delete_bypasses_day_lifecycle(self, db_session, test_user):
        close_day(db_session, test_user.id, TODAY, reflection(), now=NOW)
        [result] = process_push_mutations(db_session, test_user.id, [delete("d1")], now=NOW)
        assert result.success
        assert db_session.query(JournalDocument).count() == 0

    def test_delete_only_touches_own_documents(self, db_session, test_user, make_user):
        other = make_user()
        save_document(db_session, other.id, "day", TODAY, day_content(), iso(ago(1)), now=NOW)
        process_push_mutations(db_session, test_user.id, [delete("d1")], now=NOW)
        assert db_session.query(JournalDocument).filter(JournalDocument.user_id == other.id).count() == 1


class TestPull:

    def _seed(self, db_session, user):
        save_document(db_session, user.id, "day", TODAY, day_content(), iso(ago(30)), now=ago(20))
        save_document(db_session, user.id, "week", "2026-W06", week_content(), iso(ago(30)), now=ago(10))
        save_document(db_session, user.id, "day", "2026-02-06", day_content(), iso(ago(30)), now=ago(5))

    def test_returns_changes_oldest_first(self, db_session, test_user):
        self._seed(db_session, test_user)
        result = get_changed_documents(db_session, test_user.id, iso(ago(60)), now=NOW)
        assert [d.doc_key for d in result.documents] == [TODAY, "2026-W06", "2026-02-06"]
        assert result.server_time == NOW

    def test_watermark_is_inclusive(self, db_session, test_user):
        self._seed(db_session, test_user)
        result = get_changed_documents(db_session, test_user.id, iso(ago(10)), now=NOW)
        assert [d.doc_key for d in result.documents] == ["2026-W06", "2026-02-06"]

    def test_doc_type_filter(self, db_session, test_user):
        self._seed(db_session, test_user)
        result = get_changed_documents(db_session, test_user.id, iso(ago(60)), doc_types=["week"], now=NOW)
        assert [d.doc_key for d in result.documents] == ["2026-W06"]

    def test_limit(self, db_session, test_user):
        self._seed(db_session, test_user)
        result = get_changed_documents(db_session, test_user.id, iso(ago(60)), limit=2, now=NOW)
        assert len(result.documents) == 2

    def test_server_time_as_next_watermark_sees_later_writes(self, db_session, test_user):
        self._seed(db_session, test_user)
        first = get_changed_documents(db_session, test_user.id, iso(ago(60)), now=NOW)
        save_document(
            db_session, test_user.id, "week", "2026-W06", week_content(progress=90), iso(NOW),
            now=NOW + timedelta(seconds=1),
        )
        second = get_changed_documents(
            db_session, test_user.id, first.server_time, now=NOW + timedelta(seconds=2)
        )
        assert [d.doc_key for d in second.documents] == ["2026-W06"]

    def test_invalid_since(self, db_session, test_user):
        with pytest.raises(ValidationError):
            get_changed_documents(db_session, test_user.id, "last tuesday", now=NOW)


class TestParseDocTypes:

    def test_comma_separated(self):
        assert parse_doc_types("day, week") == ["day", "week"]

    def test_empty_means_all(self):
        assert parse_doc_types(None) is None
        assert parse_doc_types("") is None

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            parse_doc_types("day,year")


class TestSyncFull:

    def test_push_then_pull_from_caller_watermark(self, db_session, test_user):
        result = sync_full(db_session, test_user.id, [upsert("m1")], iso(ago(60)), now=NOW)
        assert [r.success for r in result.results] == [True]
        assert [d.doc_key for d in result.pull.documents] == [TODAY]
        assert result.pull.server_time == NOW

    def test_bad_watermark_rejected_before_push(self, db_session, test_user):
        with pytest.raises(ValidationError):
            sync_full(db_session, test_user.id, [upsert("m1")], "not-a-time", now=NOW)
        assert db_session.query(JournalDocument).count() == 0

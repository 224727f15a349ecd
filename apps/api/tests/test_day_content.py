"""
Day content template, merge and user settings tests.
"""

from datetime import date

from services.day_content import (
    build_empty_content,
    build_empty_day_content,
    has_complete_reflection,
    merge_day_content,
)
from services.user_settings import get_user_settings
from tests.journal_helpers import reflection, task


class TestTemplates:

    def test_empty_day_has_three_top_tasks(self):
        content = build_empty_day_content()
        assert len(content["planning"]["topThree"]) == 3
        assert content["dayClose"]["reflection"]["wentWell"] == ""

    def test_templates_are_independent_copies(self):
        first = build_empty_day_content()
        first["planning"]["topThree"][0]["title"] = "Changed"
        assert build_empty_day_content()["planning"]["topThree"][0]["title"] == ""

    def test_other_types(self):
        assert build_empty_content("week") == {"weeklyGoals": []}
        assert build_empty_content("month") == {"monthlyGoals": []}
        quarter = build_empty_content("quarter")
        assert quarter["quarterGoals"] == []
        assert set(quarter["lifeWheel"]) == {
            "work", "fun", "social", "giving", "money", "growth", "health", "love",
        }


class TestMerge:

    def test_partial_content_filled_from_template(self):
        merged = merge_day_content({"planning": {"oneThing": {"title": "Only title"}}})
        assert merged["planning"]["oneThing"]["title"] == "Only title"
        assert merged["planning"]["oneThing"]["pomodorosPlanned"] == 0
        assert merged["dayStart"]["gratefulFor"] == ""

    def test_wrong_sized_top_three_replaced(self):
        merged = merge_day_content({"planning": {"topThree": [task()]}})
        assert merged["planning"]["topThree"] == build_empty_day_content()["planning"]["topThree"]

    def test_boolean_pillar_normalised(self):
        merged = merge_day_content({"lifePillars": {"training": True}})
        assert merged["lifePillars"]["training"] == {"task": "", "completed": True}
        assert merged["lifePillars"]["realConnection"] == {"task": "", "completed": False}

    def test_input_not_mutated(self):
        stored = {"dayClose": {"reflection": {"wentWell": "x"}}}
        merge_day_content(stored)
        assert stored == {"dayClose": {"reflection": {"wentWell": "x"}}}

    def test_none_gives_template(self):
        assert merge_day_content(None) == build_empty_day_content()


class TestReflectionCompleteness:

    def test_complete(self):
        assert has_complete_reflection(reflection())

    def test_empty_or_missing_field(self):
        assert not has_complete_reflection(reflection(whyWentWrong=""))
        partial = reflection()
        del partial["doDifferently"]
        assert not has_complete_reflection(partial)
        assert not has_complete_reflection(None)


class TestUserSettings:

    def test_defaults_for_unknown_user(self, db_session):
        from uuid import uuid4

        settings = get_user_settings(db_session, uuid4())
        assert settings.timezone == "UTC"
        assert settings.account_start_date is None

    def test_invalid_timezone_falls_back(self, db_session, make_user):
        user = make_user(timezone="Not/AZone")
        assert get_user_settings(db_session, user.id).timezone == "UTC"

    def test_reads_user_fields(self, db_session, make_user):
        user = make_user(timezone="Europe/Berlin", account_start_date=date(2026, 1, 5))
        settings = get_user_settings(db_session, user.id)
        assert settings.timezone == "Europe/Berlin"
        assert settings.account_start_date == date(2026, 1, 5)

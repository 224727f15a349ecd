"""
Day content helpers: empty templates per document type, merging stored
content onto the day template, and the completeness checks shared by the
close flow, the status summary, and missed-day detection.
"""

import copy
from typing import Any, Dict, Optional

from services.document_validation import (
    DOC_TYPE_DAY,
    DOC_TYPE_MONTH,
    DOC_TYPE_WEEK,
    REFLECTION_FIELDS,
)

PILLARS = ("training", "deepRelaxation", "healthyNutrition", "realConnection")


def _empty_task() -> Dict[str, Any]:
    return {"title": "", "description": "", "pomodorosPlanned": 0, "pomodorosDone": 0}


def build_empty_day_content() -> Dict[str, Any]:
    return {
        "dayStart": {
            "slept8Hours": False,
            "water3Glasses": False,
            "meditation5Min": False,
            "mobility5Min": False,
            "gratefulFor": "",
            "intentionForDay": "",
        },
        "planning": {
            "oneThing": _empty_task(),
            "topThree": [_empty_task(), _empty_task(), _empty_task()],
            "otherTasks": [],
        },
        "lifePillars": {pillar: {"task": "", "completed": False} for pillar in PILLARS},
        "dayClose": {
            "noScreens2Hours": False,
            "noCarbs3Hours": False,
            "tomorrowPlanned": False,
            "goalsReviewed": False,
            "reflection": {field: "" for field in REFLECTION_FIELDS},
        },
    }


def build_empty_content(doc_type: str) -> Dict[str, Any]:
    if doc_type == DOC_TYPE_DAY:
        return build_empty_day_content()
    if doc_type == DOC_TYPE_WEEK:
        return {"weeklyGoals": []}
    if doc_type == DOC_TYPE_MONTH:
        return {"monthlyGoals": []}
    return {
        "lifeWheel": {
            "work": 0,
            "fun": 0,
            "social": 0,
            "giving": 0,
            "money": 0,
            "growth": 0,
            "health": 0,
            "love": 0,
        },
        "quarterGoals": [],
    }


def _section(content: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = content.get(key)
    return value if isinstance(value, dict) else {}


def _pillar(value: Any, fallback: Dict[str, Any]) -> Dict[str, Any]:
    if isinstance(value, bool):
        return {"task": "", "completed": value}
    if isinstance(value, dict):
        merged = dict(fallback)
        if "task" in value:
            merged["task"] = value["task"] if isinstance(value["task"], str) else ""
        if "completed" in value:
            merged["completed"] = bool(value["completed"])
        return merged
    return dict(fallback)


def merge_day_content(content: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Overlay stored day content onto the empty template.

    Missing sections and fields take template defaults; `topThree` is kept
    only when it has exactly three items. The input is never mutated.
    """
    base = build_empty_day_content()
    incoming = copy.deepcopy(content) if isinstance(content, dict) else {}

    planning_in = _section(incoming, "planning")
    top_three = planning_in.get("topThree")
    day_close_in = _section(incoming, "dayClose")
    pillars_in = _section(incoming, "lifePillars")

    merged = {**base, **incoming}
    merged["dayStart"] = {**base["dayStart"], **_section(incoming, "dayStart")}
    merged["planning"] = {
        **base["planning"],
        **planning_in,
        "oneThing": {**base["planning"]["oneThing"], **_section(planning_in, "oneThing")},
        "topThree": top_three if isinstance(top_three, list) and len(top_three) == 3 else base["planning"]["topThree"],
        "otherTasks": planning_in.get("otherTasks") or base["planning"]["otherTasks"],
    }
    merged["lifePillars"] = {
        pillar: _pillar(pillars_in.get(pillar), base["lifePillars"][pillar]) for pillar in PILLARS
    }
    merged["dayClose"] = {
        **base["dayClose"],
        **day_close_in,
        "reflection": {**base["dayClose"]["reflection"], **_section(day_close_in, "reflection")},
    }
    return merged


def get_reflection(content: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not isinstance(content, dict):
        return None
    reflection = _section(content, "dayClose").get("reflection")
    return reflection if isinstance(reflection, dict) else None


def has_complete_reflection(reflection: Optional[Dict[str, Any]]) -> bool:
    if not reflection:
        return False
    return all(
        isinstance(reflection.get(field), str) and len(reflection[field]) > 0
        for field in REFLECTION_FIELDS
    )


def is_one_thing_done(content: Optional[Dict[str, Any]]) -> bool:
    if not isinstance(content, dict):
        return False
    one_thing = _section(_section(content, "planning"), "oneThing")
    planned = one_thing.get("pomodorosPlanned")
    done = one_thing.get("pomodorosDone")
    if not isinstance(planned, (int, float)) or not isinstance(done, (int, float)):
        return False
    return planned > 0 and done >= planned

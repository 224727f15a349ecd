"""
Document content schemas.

One pydantic model per document type. `validate_document` is the only
entry point used by the document service; it raises the API
ValidationError with field-identifying details on any structural
mismatch.
"""

from typing import Annotated, Any, Dict, List, Optional, Type, Union

from pydantic import BaseModel, Field, StrictBool
from pydantic import ValidationError as PydanticValidationError

from core.exceptions import ValidationError

MAX_POMODOROS_PER_TASK = 12

DOC_TYPE_DAY = "day"
DOC_TYPE_WEEK = "week"
DOC_TYPE_MONTH = "month"
DOC_TYPE_QUARTER = "quarter"
DOC_TYPES = (DOC_TYPE_DAY, DOC_TYPE_WEEK, DOC_TYPE_MONTH, DOC_TYPE_QUARTER)

NonEmptyStr = Annotated[str, Field(strict=True, min_length=1)]
Pomodoros = Annotated[int, Field(strict=True, ge=0, le=MAX_POMODOROS_PER_TASK)]
Progress = Annotated[int, Field(strict=True, ge=0, le=100)]
WheelScore = Annotated[int, Field(strict=True, ge=1, le=10)]


# --- Day ---

class DayStart(BaseModel):
    slept8Hours: StrictBool
    water3Glasses: StrictBool
    meditation5Min: StrictBool
    mobility5Min: StrictBool
    gratefulFor: NonEmptyStr
    intentionForDay: NonEmptyStr


class PlannedTask(BaseModel):
    title: NonEmptyStr
    description: NonEmptyStr
    pomodorosPlanned: Pomodoros
    pomodorosDone: Pomodoros


class OtherTask(BaseModel):
    title: NonEmptyStr
    description: Optional[str] = None
    pomodorosPlanned: Optional[Pomodoros] = None
    pomodorosDone: Optional[Pomodoros] = None


class Planning(BaseModel):
    oneThing: PlannedTask
    topThree: Annotated[List[PlannedTask], Field(min_length=3, max_length=3)]
    otherTasks: Optional[List[OtherTask]] = None


class LifePillar(BaseModel):
    task: str = ""
    completed: StrictBool = False


# Older clients send a bare boolean per pillar.
PillarValue = Union[StrictBool, LifePillar]


class LifePillars(BaseModel):
    training: PillarValue
    deepRelaxation: PillarValue
    healthyNutrition: PillarValue
    realConnection: PillarValue


class Reflection(BaseModel):
    wentWell: NonEmptyStr
    whyWentWell: NonEmptyStr
    repeatInFuture: NonEmptyStr
    wentWrong: NonEmptyStr
    whyWentWrong: NonEmptyStr
    doDifferently: NonEmptyStr


class DayClose(BaseModel):
    noScreens2Hours: StrictBool
    noCarbs3Hours: StrictBool
    tomorrowPlanned: StrictBool
    goalsReviewed: StrictBool
    reflection: Reflection


class DayContent(BaseModel):
    dayStart: DayStart
    planning: Planning
    lifePillars: LifePillars
    dayClose: DayClose


# --- Week / Month ---

class WeeklyGoal(BaseModel):
    id: NonEmptyStr
    title: NonEmptyStr
    description: NonEmptyStr
    linkedMonthGoals: Annotated[List[NonEmptyStr], Field(min_length=1)]
    progress: Progress


class WeekContent(BaseModel):
    weeklyGoals: List[WeeklyGoal]


class MonthlyGoal(BaseModel):
    id: NonEmptyStr
    title: NonEmptyStr
    description: NonEmptyStr
    linkedQuarterGoals: Annotated[List[NonEmptyStr], Field(min_length=1)]
    progress: Progress


class MonthContent(BaseModel):
    monthlyGoals: List[MonthlyGoal]


# --- Quarter ---

class LifeWheel(BaseModel):
    work: WheelScore
    fun: WheelScore
    social: WheelScore
    giving: WheelScore
    money: WheelScore
    growth: WheelScore
    health: WheelScore
    love: WheelScore


class QuarterGoal(BaseModel):
    id: NonEmptyStr
    title: NonEmptyStr
    smartDefinition: NonEmptyStr
    whatIsDifferent: NonEmptyStr
    consequencesIfNot: NonEmptyStr
    rewardIfAchieved: NonEmptyStr
    progress: Progress


class QuarterContent(BaseModel):
    lifeWheel: LifeWheel
    quarterGoals: Annotated[List[QuarterGoal], Field(min_length=3, max_length=3)]


CONTENT_SCHEMAS: Dict[str, Type[BaseModel]] = {
    DOC_TYPE_DAY: DayContent,
    DOC_TYPE_WEEK: WeekContent,
    DOC_TYPE_MONTH: MonthContent,
    DOC_TYPE_QUARTER: QuarterContent,
}

REFLECTION_FIELDS = tuple(Reflection.model_fields.keys())


def _field_errors(exc: PydanticValidationError) -> Dict[str, List[str]]:
    errors: Dict[str, List[str]] = {}
    for error in exc.errors():
        path = ".".join(str(part) for part in error["loc"]) or "content"
        errors.setdefault(path, []).append(error["msg"])
    return errors


def validate_document(doc_type: str, content: Any) -> None:
    schema = CONTENT_SCHEMAS.get(doc_type)
    if schema is None:
        raise ValidationError("Unsupported document type", {"docType": doc_type})
    try:
        schema.model_validate(content)
    except PydanticValidationError as e:
        raise ValidationError("Invalid document content", {"fieldErrors": _field_errors(e)})

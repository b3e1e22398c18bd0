"""
Plan Request Model
------------------
The immutable input of one generation attempt.

Assembled by services/request_builder.py, serialised into the generator
instruction by agents/planner_agent.py and used again by the validator to
know what horizon was asked for.
"""

from datetime import date, timedelta
from typing import Any, Dict, List, Tuple

from pydantic import ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from studyplan.models.academic import CamelModel, Course, Exam, Lecture, Quiz, Task
from studyplan.models.plan import DATE_PATTERN, format_date, parse_date
from studyplan.models.preferences import UserPreferences

DEFAULT_PLAN_DURATION_DAYS = 7


class PlanRequest(CamelModel):
    """
    Everything the generator needs for one plan.

    EXAMPLE:
    PlanRequest(
        user_preferences=DEFAULT_PREFERENCES,
        courses=(course,), exams=(), tasks=(), lectures=(), quizzes=(),
        current_date="2025-01-06",
        plan_duration_days=7,
    )
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    user_preferences: UserPreferences
    courses: Tuple[Course, ...] = ()
    exams: Tuple[Exam, ...] = ()
    tasks: Tuple[Task, ...] = ()
    lectures: Tuple[Lecture, ...] = ()
    quizzes: Tuple[Quiz, ...] = ()
    current_date: str = Field(..., pattern=DATE_PATTERN, description="Plan anchor date")
    plan_duration_days: int = Field(default=DEFAULT_PLAN_DURATION_DAYS, ge=1)

    @field_validator("current_date")
    @classmethod
    def real_calendar_date(cls, v: str) -> str:
        parse_date(v)
        return v

    @property
    def start(self) -> date:
        return parse_date(self.current_date)

    @property
    def end_date(self) -> str:
        """Last day covered: currentDate + planDurationDays - 1"""
        return format_date(self.start + timedelta(days=self.plan_duration_days - 1))

    def expected_dates(self) -> List[str]:
        """Every date of the horizon, in order"""
        return [format_date(self.start + timedelta(days=i)) for i in range(self.plan_duration_days)]

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


def is_valid_plan_request(data: Any) -> bool:
    """Pure predicate: does `data` satisfy the PlanRequest schema?"""
    try:
        PlanRequest.model_validate(data)
    except (ValidationError, ValueError, TypeError):
        return False
    return True

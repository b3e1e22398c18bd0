"""
Study Plan Pydantic Models
--------------------------
Canonical shape of a generated study plan.

PLAN STRUCTURE:
- StudyPlan: the whole horizon (startDate .. endDate)
- StudyPlanDay: one calendar date
- StudyActivity: one time-boxed entry in a day (study block, break, ...)

These models are the STRICT definition of a valid plan. Plans produced by
the generator are checked leniently by services/plan_validator.py, which
reuses the constants and helpers defined here.
"""

import re
from datetime import date, datetime, time
from enum import Enum
from typing import Any, List, Optional

from pydantic import Field, ValidationError, field_validator, model_validator

from studyplan.models.academic import CamelModel, RecordId


# =============================================================================
# FORMATS
# =============================================================================

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"
TIME_PATTERN = r"^(0[1-9]|1[0-2]):[0-5]\d (AM|PM)$"

DATE_RE = re.compile(DATE_PATTERN)
TIME_RE = re.compile(TIME_PATTERN)

DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%I:%M %p"

ROOT_KEYS = ("startDate", "endDate", "dailyPlans")
DAY_REQUIRED_FIELDS = ("date", "dayOfWeek")
ACTIVITY_REQUIRED_FIELDS = ("id", "startTime", "endTime", "description", "type")


def parse_date(value: str) -> date:
    """
    Parse a YYYY-MM-DD string into a date.

    RAISES:
    ValueError if the string has the wrong shape or is not a real date
    """
    if not isinstance(value, str) or not DATE_RE.match(value):
        raise ValueError(f"'{value}' is not in YYYY-MM-DD format")
    return datetime.strptime(value, DATE_FORMAT).date()


def format_date(value: date) -> str:
    return value.strftime(DATE_FORMAT)


def parse_time_of_day(value: str) -> time:
    """
    Parse an "HH:MM AM/PM" string.

    EXAMPLE:
    parse_time_of_day("01:30 PM") -> time(13, 30)
    """
    if not isinstance(value, str) or not TIME_RE.match(value):
        raise ValueError(f"'{value}' is not in HH:MM AM/PM format")
    return datetime.strptime(value, TIME_FORMAT).time()


def day_name(value: date) -> str:
    """English weekday name, e.g. "Monday" """
    return value.strftime("%A")


# =============================================================================
# ENUMS
# =============================================================================

class ActivityType(str, Enum):
    """Closed set of activity kinds a plan may contain"""
    STUDY = "study"
    BREAK = "break"
    TASK_WORK = "task_work"
    EXAM_PREP = "exam_prep"
    LECTURE_REVIEW = "lecture_review"
    QUIZ_PREP = "quiz_prep"
    PERSONAL = "personal"
    LECTURE = "lecture"


ACTIVITY_TYPES = frozenset(t.value for t in ActivityType)


# =============================================================================
# PLAN MODELS
# =============================================================================

class StudyActivity(CamelModel):
    """
    A single time-boxed activity.

    EXAMPLE:
    {
        "id": "2f0c6c1e-8a53-4c1c-9a44-0c0c7d7b1a10",
        "startTime": "09:00 AM",
        "endTime": "09:50 AM",
        "description": "Pomodoro Session: Calculus chapter 3",
        "type": "study",
        "courseId": 101,
        "completed": false
    }
    """
    id: str = Field(..., min_length=1)
    start_time: str = Field(..., pattern=TIME_PATTERN)
    end_time: str = Field(..., pattern=TIME_PATTERN)
    description: str = Field(..., min_length=1)
    type: ActivityType
    related_item_id: Optional[RecordId] = None
    course_id: Optional[RecordId] = None
    completed: bool = False

    @field_validator("description")
    @classmethod
    def description_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("description must not be blank")
        return v

    @model_validator(mode="after")
    def end_after_start(self):
        if parse_time_of_day(self.end_time) <= parse_time_of_day(self.start_time):
            raise ValueError("endTime must be after startTime")
        return self


class StudyPlanDay(CamelModel):
    """One day of the plan. An empty `activities` list is a rest day."""
    date: str = Field(..., pattern=DATE_PATTERN)
    day_of_week: str = Field(..., min_length=1)
    activities: List[StudyActivity] = Field(default_factory=list)
    summary: Optional[str] = None

    @model_validator(mode="after")
    def weekday_matches_date(self):
        expected = day_name(parse_date(self.date))
        if self.day_of_week.strip().lower() != expected.lower():
            raise ValueError(f"dayOfWeek '{self.day_of_week}' does not match {self.date} ({expected})")
        return self


class StudyPlan(CamelModel):
    """
    Complete study plan.

    INVARIANTS:
    - endDate = startDate + len(dailyPlans) - 1 days
    - dailyPlans[i].date = startDate + i days
    - activity ids are unique across the whole plan
    """
    start_date: str = Field(..., pattern=DATE_PATTERN)
    end_date: str = Field(..., pattern=DATE_PATTERN)
    daily_plans: List[StudyPlanDay]
    overall_summary: Optional[str] = None

    @model_validator(mode="after")
    def dates_are_consecutive(self):
        start = parse_date(self.start_date)
        for index, day in enumerate(self.daily_plans):
            if parse_date(day.date).toordinal() != start.toordinal() + index:
                raise ValueError(f"dailyPlans[{index}].date {day.date} is out of sequence")
        if self.daily_plans and parse_date(self.end_date).toordinal() != start.toordinal() + len(self.daily_plans) - 1:
            raise ValueError("endDate does not match the number of days")
        return self

    @model_validator(mode="after")
    def activity_ids_unique(self):
        seen = set()
        for day in self.daily_plans:
            for activity in day.activities:
                if activity.id in seen:
                    raise ValueError(f"duplicate activity id '{activity.id}'")
                seen.add(activity.id)
        return self


def is_valid_study_plan(data: Any) -> bool:
    """Pure predicate: does `data` satisfy the strict StudyPlan schema?"""
    try:
        StudyPlan.model_validate(data)
    except (ValidationError, ValueError, TypeError):
        return False
    return True

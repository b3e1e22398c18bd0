"""
Models Package
--------------
Pydantic schemas for plan requests, generated plans and the records they
are built from.
"""

from studyplan.models.academic import (
    ACADEMIC_CATEGORIES, Course, Exam, Lecture, Quiz, RecordCategory, Task,
    TaskPriority, TaskStatus,
)
from studyplan.models.plan import (
    ActivityType, StudyActivity, StudyPlan, StudyPlanDay, is_valid_study_plan,
)
from studyplan.models.preferences import (
    DEFAULT_PREFERENCES, NotificationLeadTimes, StudyTechniqueOption,
    StudyTimeOption, UserPreferences,
)
from studyplan.models.request import PlanRequest, is_valid_plan_request

__all__ = [
    # Records
    "ACADEMIC_CATEGORIES",
    "Course",
    "Exam",
    "Lecture",
    "Quiz",
    "RecordCategory",
    "Task",
    "TaskPriority",
    "TaskStatus",

    # Plan output
    "ActivityType",
    "StudyActivity",
    "StudyPlan",
    "StudyPlanDay",
    "is_valid_study_plan",

    # Preferences
    "DEFAULT_PREFERENCES",
    "NotificationLeadTimes",
    "StudyTechniqueOption",
    "StudyTimeOption",
    "UserPreferences",

    # Request
    "PlanRequest",
    "is_valid_plan_request",
]

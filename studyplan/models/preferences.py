"""
User Preference Models
----------------------
How and when the student likes to study. Stored as a single blob per
session (see services/plan_store.py) and embedded in every plan request.
"""

from enum import Enum
from typing import List

from pydantic import Field

from studyplan.models.academic import CamelModel


class StudyTimeOption(str, Enum):
    """Time-of-day buckets"""
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"


class StudyTechniqueOption(str, Enum):
    POMODORO = "pomodoro"
    SPACED_REPETITION = "spaced_repetition"
    FEYNMAN = "feynman"


class NotificationLeadTimes(CamelModel):
    """How far ahead the student wants reminders"""
    task: int = Field(..., ge=0, description="Hours before a task is due")
    session: int = Field(..., ge=0, description="Hours before a study session")
    exam: int = Field(..., ge=0, description="Days before an exam")


class UserPreferences(CamelModel):
    """
    Study preferences used to shape a plan.

    EXAMPLE:
    {
        "preferredStudyTimes": ["evening"],
        "studyTechniques": ["pomodoro", "spaced_repetition"],
        "defaultSessionLength": 50,
        "defaultBreakCadence": 10,
        "notificationLeadTimes": {"task": 24, "session": 1, "exam": 3}
    }
    """
    preferred_study_times: List[StudyTimeOption] = Field(default_factory=list)
    study_techniques: List[StudyTechniqueOption] = Field(default_factory=list)
    default_session_length: int = Field(..., gt=0, description="Minutes per session")
    default_break_cadence: int = Field(..., gt=0, description="Minutes per break")
    notification_lead_times: NotificationLeadTimes

    @property
    def uses_pomodoro(self) -> bool:
        return StudyTechniqueOption.POMODORO in self.study_techniques

    @property
    def uses_spaced_repetition(self) -> bool:
        return StudyTechniqueOption.SPACED_REPETITION in self.study_techniques


DEFAULT_PREFERENCES = UserPreferences(
    preferred_study_times=[StudyTimeOption.AFTERNOON, StudyTimeOption.EVENING],
    study_techniques=[StudyTechniqueOption.POMODORO, StudyTechniqueOption.SPACED_REPETITION],
    default_session_length=50,
    default_break_cadence=10,
    notification_lead_times=NotificationLeadTimes(task=24, session=1, exam=3),
)

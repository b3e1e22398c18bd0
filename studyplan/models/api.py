"""
API Schemas
-----------
Request and response bodies of the /plans endpoints.

The plan itself travels as the plain JSON document it is stored as; its
shape is checked by the validator, not re-modelled here.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from studyplan.models.academic import CamelModel
from studyplan.models.preferences import UserPreferences


class GeneratePlanBody(CamelModel):
    """
    Body of POST /plans/generate. Every field is optional.

    EXAMPLE:
    {
        "currentDate": "2024-06-03",
        "planDurationDays": 7,
        "carryCompleted": false
    }
    """
    current_date: Optional[str] = Field(None, description="First day of the plan, YYYY-MM-DD; defaults to today")
    plan_duration_days: Optional[int] = Field(None, description="Number of days to plan")
    preferences: Optional[UserPreferences] = Field(None, description="Overrides the saved preferences for this run")
    carry_completed: bool = Field(False, description="Keep completed flags on activities whose id survives")


class ActivityUpdate(BaseModel):
    """Body of PUT /plans/current/activities/{activity_id}"""
    completed: bool


class GeneratePlanResponse(CamelModel):
    plan: Dict[str, Any]
    violations: List[Dict[str, Any]] = Field(default_factory=list)
    dropped_records: List[Dict[str, Any]] = Field(default_factory=list)


class PlanProgress(BaseModel):
    total_activities: int
    completed_activities: int
    pending_activities: int
    progress_percentage: float


class MessageResponse(BaseModel):
    """
    Generic response message.

    RESPONSE:
    {
        "message": "Saved plan cleared"
    }
    """
    message: str

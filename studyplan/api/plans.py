"""
Plan API Routes
---------------
HTTP endpoints for the study plan of the calling session.

ENDPOINTS:
- POST   /plans/generate                           - Generate and save a new plan
- POST   /plans/generate/cancel                    - Cancel the running generation
- GET    /plans/current                            - Get the held plan
- PUT    /plans/current/activities/{activity_id}   - Mark an activity (not) completed
- DELETE /plans/current                            - Clear the held plan
- GET    /plans/current/progress                   - Completion statistics
- GET    /plans/preferences                        - Saved study preferences
- PUT    /plans/preferences                        - Save study preferences

SESSIONS:
The X-Session-Id header selects whose plan is used ("default" when absent).
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status

from studyplan.exceptions import (
    GenerationCancelled, GenerationFailure, GenerationInProgress, MalformedRequestError,
    NotFoundError, PlanRejectedError, UpstreamUnavailable,
)
from studyplan.models.api import (
    ActivityUpdate, GeneratePlanBody, GeneratePlanResponse, MessageResponse, PlanProgress,
)
from studyplan.models.preferences import UserPreferences
from studyplan.services.plan_service import PlanService, get_plan_service

logger = logging.getLogger(__name__)

# Create router
router = APIRouter()


def get_session_id(x_session_id: Optional[str] = Header(None)) -> str:
    """Session key from the X-Session-Id header"""
    if x_session_id is None or not x_session_id.strip():
        return "default"
    return x_session_id.strip()


# =============================================================================
# GENERATE PLAN
# =============================================================================

@router.post("/generate", response_model=GeneratePlanResponse, status_code=status.HTTP_201_CREATED)
async def generate_plan(
    body: Optional[GeneratePlanBody] = None,
    session_id: str = Depends(get_session_id),
    plan_service: PlanService = Depends(get_plan_service)
):
    """
    Generate a new study plan and make it the held plan.

    PROCESS:
    1. Loads courses, exams, lectures and quizzes from the records API
    2. Asks the AI model for a plan (one request)
    3. Validates the plan; structural problems reject it, smaller ones are
       returned as violations
    4. Replaces the held plan

    REQUEST BODY (all optional):
    ```json
    {"currentDate": "2024-06-03", "planDurationDays": 7}
    ```

    EXAMPLE:
    ```bash
    curl -X POST "http://localhost:8000/plans/generate" \
      -H "X-Session-Id: alice" \
      -H "Content-Type: application/json" \
      -d '{"planDurationDays": 3}'
    ```
    """
    body = body or GeneratePlanBody()

    try:
        outcome = await plan_service.generate_plan(
            session_id,
            current_date=body.current_date,
            plan_duration_days=body.plan_duration_days,
            preferences=body.preferences,
            carry_completed=body.carry_completed
        )
    except MalformedRequestError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.user_message)
    except UpstreamUnavailable as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.user_message)
    except (GenerationFailure, PlanRejectedError) as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.user_message)
    except (GenerationInProgress, GenerationCancelled) as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.user_message)

    return GeneratePlanResponse(
        plan=outcome.plan,
        violations=[v.to_dict() for v in outcome.violations],
        dropped_records=[d.to_dict() for d in outcome.dropped_records]
    )


@router.post("/generate/cancel", response_model=MessageResponse)
async def cancel_generation(
    session_id: str = Depends(get_session_id),
    plan_service: PlanService = Depends(get_plan_service)
):
    """Stop the running generation at its next stage boundary"""
    if not plan_service.cancel_generation(session_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No study plan generation is running"
        )
    return MessageResponse(message="Cancellation requested")


# =============================================================================
# HELD PLAN
# =============================================================================

@router.get("/current")
async def get_current_plan(
    session_id: str = Depends(get_session_id),
    plan_service: PlanService = Depends(get_plan_service)
) -> Dict[str, Any]:
    """Get the held plan, exactly as stored"""
    plan = plan_service.get_plan(session_id)

    if plan is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No study plan saved"
        )

    return plan


@router.put("/current/activities/{activity_id}")
async def update_activity(
    activity_id: str,
    update: ActivityUpdate,
    session_id: str = Depends(get_session_id),
    plan_service: PlanService = Depends(get_plan_service)
) -> Dict[str, Any]:
    """
    Mark an activity completed or not completed.

    Only that activity's flag changes. Returns the updated plan.

    EXAMPLE:
    ```bash
    curl -X PUT "http://localhost:8000/plans/current/activities/3f1c..." \
      -H "Content-Type: application/json" \
      -d '{"completed": true}'
    ```
    """
    try:
        return plan_service.set_activity_completed(session_id, activity_id, update.completed)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.user_message)


@router.delete("/current", response_model=MessageResponse)
async def clear_plan(
    session_id: str = Depends(get_session_id),
    plan_service: PlanService = Depends(get_plan_service)
):
    """Delete the held plan"""
    plan_service.clear_plan(session_id)
    return MessageResponse(message="Saved plan cleared")


@router.get("/current/progress", response_model=PlanProgress)
async def get_progress(
    session_id: str = Depends(get_session_id),
    plan_service: PlanService = Depends(get_plan_service)
):
    """
    Completion statistics for the held plan.

    RETURNS:
    {
        "total_activities": 20,
        "completed_activities": 5,
        "pending_activities": 15,
        "progress_percentage": 25.0
    }
    """
    progress = plan_service.get_progress(session_id)

    if progress is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No study plan saved"
        )

    return progress


# =============================================================================
# PREFERENCES
# =============================================================================

@router.get("/preferences", response_model=UserPreferences, response_model_by_alias=True)
async def get_preferences(
    session_id: str = Depends(get_session_id),
    plan_service: PlanService = Depends(get_plan_service)
):
    """Saved preferences, or the defaults"""
    return plan_service.get_preferences(session_id)


@router.put("/preferences", response_model=UserPreferences, response_model_by_alias=True)
async def save_preferences(
    preferences: UserPreferences,
    session_id: str = Depends(get_session_id),
    plan_service: PlanService = Depends(get_plan_service)
):
    """Replace the saved preferences"""
    saved = plan_service.save_preferences(session_id, preferences)
    logger.info(f"Preferences updated for session {session_id}")
    return saved

"""
Plan Service
------------
Business logic for study plan generation and the held plan.

RESPONSIBILITIES:
- Run the generation pipeline: fetch records -> build request -> generate ->
  validate -> persist
- Allow one generation in flight per session, with cooperative cancellation
- Pass plan and preference operations through to the session's stores

A rejected or cancelled generation never touches the held plan.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Set, Union

from studyplan.agents.planner_agent import PlannerAgent
from studyplan.db.database import SessionLocal
from studyplan.exceptions import GenerationCancelled, GenerationInProgress, PlanRejectedError
from studyplan.models.preferences import UserPreferences
from studyplan.services.plan_store import (
    KeyValueStore, PlanStore, PreferenceStore, SQLAlchemyKeyValueStore
)
from studyplan.services.plan_validator import SoftViolation, validate_candidate
from studyplan.services.records_provider import AcademicRecordsClient, InMemoryTaskProvider, TaskProvider
from studyplan.services.request_builder import DroppedRecord, build_plan_request

logger = logging.getLogger(__name__)


StoreFactory = Callable[[str], KeyValueStore]


def _database_store(session_id: str) -> KeyValueStore:
    return SQLAlchemyKeyValueStore(SessionLocal, session_id)


@dataclass
class GenerationOutcome:
    """An accepted, persisted plan and what was noticed on the way"""
    plan: Dict[str, Any]
    violations: List[SoftViolation] = field(default_factory=list)
    dropped_records: List[DroppedRecord] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "plan": self.plan,
            "violations": [v.to_dict() for v in self.violations],
            "droppedRecords": [d.to_dict() for d in self.dropped_records],
        }


class PlanService:
    """
    Service for generating and managing the study plan of each session.

    USAGE:
    service = PlanService()
    outcome = await service.generate_plan("default", plan_duration_days=7)
    service.set_activity_completed("default", activity_id, True)
    """

    def __init__(
        self,
        store_factory: Optional[StoreFactory] = None,
        records_client: Optional[Any] = None,
        task_provider: Optional[TaskProvider] = None,
        agent: Optional[PlannerAgent] = None
    ):
        self.store_factory = store_factory or _database_store
        self.records_client = records_client or AcademicRecordsClient()
        self.task_provider = task_provider or InMemoryTaskProvider()
        self.planner_agent = agent or PlannerAgent()

        self._locks: Dict[str, asyncio.Lock] = {}
        self._cancelled: Set[str] = set()
        logger.info("Plan service initialized")

    # -------------------------------------------------------------------------
    # STORES
    # -------------------------------------------------------------------------
    def plan_store(self, session_id: str) -> PlanStore:
        return PlanStore(self.store_factory(session_id))

    def preference_store(self, session_id: str) -> PreferenceStore:
        return PreferenceStore(self.store_factory(session_id))

    # -------------------------------------------------------------------------
    # GENERATION
    # -------------------------------------------------------------------------
    def is_generating(self, session_id: str) -> bool:
        lock = self._locks.get(session_id)
        return lock is not None and lock.locked()

    def cancel_generation(self, session_id: str) -> bool:
        """
        Ask the running generation for this session to stop.

        The flag is checked between pipeline stages, so an in-flight model
        call finishes before the run is abandoned.

        RETURNS:
        True if a generation was running
        """
        if not self.is_generating(session_id):
            return False
        self._cancelled.add(session_id)
        logger.info(f"Cancellation requested for session {session_id}")
        return True

    def _check_cancelled(self, session_id: str, stage: str) -> None:
        if session_id in self._cancelled:
            logger.warning(f"Generation for session {session_id} cancelled {stage}")
            raise GenerationCancelled(stage)

    async def generate_plan(
        self,
        session_id: str,
        current_date: Union[str, date, None] = None,
        plan_duration_days: Optional[int] = None,
        preferences: Optional[UserPreferences] = None,
        carry_completed: bool = False
    ) -> GenerationOutcome:
        """
        Generate a new study plan and make it the held plan.

        WORKFLOW:
        1. Fetch academic records and tasks
        2. Build and validate the PlanRequest
        3. Ask the planner agent for a candidate (one request)
        4. Validate the candidate
        5. Replace the held plan

        ARGS:
        - session_id: whose plan this is
        - current_date: first day of the plan; defaults to today
        - plan_duration_days: horizon; defaults to the configured value
        - preferences: overrides the saved preferences for this run
        - carry_completed: keep completed flags on activities whose id survives

        RAISES:
        - GenerationInProgress: a generation is already running for the session
        - MalformedRequestError / UpstreamUnavailable: request could not be built
        - GenerationFailure: the model call failed
        - PlanRejectedError: the candidate failed the hard check
        - GenerationCancelled: cancel_generation() was called
        """
        lock = self._locks.setdefault(session_id, asyncio.Lock())
        if lock.locked():
            logger.warning(f"Generation already in progress for session {session_id}")
            raise GenerationInProgress(session_id)

        try:
            async with lock:
                self._cancelled.discard(session_id)
                return await self._run_pipeline(
                    session_id, current_date, plan_duration_days, preferences, carry_completed
                )
        finally:
            self._cancelled.discard(session_id)
            # Nobody waits on the lock, so it can go once released
            self._locks.pop(session_id, None)

    async def _run_pipeline(
        self,
        session_id: str,
        current_date: Union[str, date, None],
        plan_duration_days: Optional[int],
        preferences: Optional[UserPreferences],
        carry_completed: bool
    ) -> GenerationOutcome:
        if preferences is None:
            preferences = self.preference_store(session_id).load()

        logger.info(f"Generating plan for session {session_id}...")

        snapshot = await self.records_client.fetch_all()
        snapshot.add(await self.task_provider.fetch())
        self._check_cancelled(session_id, "after fetching records")

        built = build_plan_request(snapshot, preferences, current_date, plan_duration_days)
        self._check_cancelled(session_id, "after building the request")

        candidate = await self.planner_agent.generate_candidate(built.request)
        self._check_cancelled(session_id, "after generation")

        result = validate_candidate(candidate, built.request)
        if not result.accepted:
            logger.error(f"Plan for session {session_id} rejected: {result.diagnostic}")
            raise PlanRejectedError(result)

        self._check_cancelled(session_id, "before saving")
        saved = self.plan_store(session_id).replace(result.plan, carry_completed=carry_completed)

        logger.info(
            f"✅ Plan generated for session {session_id}: "
            f"{saved['startDate']} to {saved['endDate']}, {len(result.violations)} warning(s)"
        )
        return GenerationOutcome(plan=saved, violations=result.violations, dropped_records=built.dropped)

    # -------------------------------------------------------------------------
    # HELD PLAN
    # -------------------------------------------------------------------------
    def get_plan(self, session_id: str) -> Optional[Dict[str, Any]]:
        return self.plan_store(session_id).load()

    def set_activity_completed(self, session_id: str, activity_id: str, completed: bool) -> Dict[str, Any]:
        return self.plan_store(session_id).set_activity_completed(activity_id, completed)

    def clear_plan(self, session_id: str) -> None:
        self.plan_store(session_id).clear()

    def get_progress(self, session_id: str) -> Optional[Dict[str, Any]]:
        return self.plan_store(session_id).progress()

    # -------------------------------------------------------------------------
    # PREFERENCES
    # -------------------------------------------------------------------------
    def get_preferences(self, session_id: str) -> UserPreferences:
        return self.preference_store(session_id).load()

    def save_preferences(self, session_id: str, preferences: UserPreferences) -> UserPreferences:
        self.preference_store(session_id).save(preferences)
        return preferences


# =============================================================================
# GLOBAL SERVICE INSTANCE
# =============================================================================
_service: Optional[PlanService] = None


def get_plan_service() -> PlanService:
    """
    Get the global plan service instance.

    USAGE:
    from studyplan.services.plan_service import get_plan_service

    service = get_plan_service()
    outcome = await service.generate_plan("default")
    """
    global _service
    if _service is None:
        _service = PlanService()
    return _service


def set_plan_service(service: Optional[PlanService]) -> None:
    """Replace the global instance (None resets to lazy default)"""
    global _service
    _service = service

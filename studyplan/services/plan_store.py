"""
Plan Store
----------
Owns the single persisted study plan of a session and the session's
preference blob.

RESPONSIBILITIES:
- load / save / clear the plan document as a whole
- flip one activity's `completed` flag without touching anything else
- replace the plan on regeneration

PERSISTENCE:
Documents live in a KeyValueStore (one JSON value per key, read and written
wholesale). InMemoryKeyValueStore is used in tests; SQLAlchemyKeyValueStore
keeps one row per (session, key) in the database.

The store assumes a single writer per session.
"""

import copy
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterator, Optional, Tuple

from pydantic import ValidationError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.attributes import flag_modified

from studyplan.config import settings
from studyplan.db.models import StoredDocument
from studyplan.exceptions import NotFoundError
from studyplan.models.preferences import DEFAULT_PREFERENCES, UserPreferences

logger = logging.getLogger(__name__)


# =============================================================================
# KEY-VALUE SUBSTRATE
# =============================================================================

class KeyValueStore(ABC):
    """A session-scoped slot store holding JSON values"""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Stored value, or None when the key is empty"""

    @abstractmethod
    def put(self, key: str, value: Any) -> None:
        """Overwrite the value under `key`"""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove `key`; a missing key is not an error"""


class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store. Values are deep-copied in and out."""

    def __init__(self):
        self._data: Dict[str, Any] = {}

    def get(self, key: str) -> Optional[Any]:
        value = self._data.get(key)
        return copy.deepcopy(value)

    def put(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class SQLAlchemyKeyValueStore(KeyValueStore):
    """
    Database-backed store scoped to one session id.

    USAGE:
    kv = SQLAlchemyKeyValueStore(SessionLocal, session_id="abc")
    kv.put("studyPlannerStudyPlan", plan)
    """

    def __init__(self, session_factory: sessionmaker, session_id: str):
        self.session_factory = session_factory
        self.session_id = session_id

    def _find(self, db: Session, key: str) -> Optional[StoredDocument]:
        return db.query(StoredDocument).filter(
            StoredDocument.session_id == self.session_id,
            StoredDocument.key == key
        ).first()

    def get(self, key: str) -> Optional[Any]:
        db = self.session_factory()
        try:
            row = self._find(db, key)
            return copy.deepcopy(row.value) if row is not None else None
        finally:
            db.close()

    def put(self, key: str, value: Any) -> None:
        db = self.session_factory()
        try:
            row = self._find(db, key)
            if row is None:
                db.add(StoredDocument(session_id=self.session_id, key=key, value=value))
            else:
                row.value = copy.deepcopy(value)
                flag_modified(row, "value")
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def delete(self, key: str) -> None:
        db = self.session_factory()
        try:
            row = self._find(db, key)
            if row is not None:
                db.delete(row)
                db.commit()
        finally:
            db.close()


# =============================================================================
# PLAN STORE
# =============================================================================

def _iter_activities(plan: Dict[str, Any]) -> Iterator[Tuple[int, int, Dict[str, Any]]]:
    for day_index, day in enumerate(plan.get("dailyPlans") or []):
        if not isinstance(day, dict) or not isinstance(day.get("activities"), list):
            continue
        for activity_index, activity in enumerate(day["activities"]):
            if isinstance(activity, dict):
                yield day_index, activity_index, activity


def _looks_like_plan(value: Any) -> bool:
    return isinstance(value, dict) and bool(value.get("startDate")) and isinstance(value.get("dailyPlans"), list)


class PlanStore:
    """
    The single plan held for a session.

    USAGE:
    store = PlanStore(InMemoryKeyValueStore())
    store.save(plan)
    store.set_activity_completed("activity-id", True)
    """

    def __init__(self, kv: KeyValueStore, key: Optional[str] = None):
        self.kv = kv
        self.key = key or settings.PLAN_STORAGE_KEY

    def load(self) -> Optional[Dict[str, Any]]:
        """
        Current plan, or None.

        A stored value that is not a plan document is discarded.
        """
        value = self.kv.get(self.key)
        if value is None:
            return None
        if not _looks_like_plan(value):
            logger.warning("Stored plan is not a valid plan document; discarding it")
            self.kv.delete(self.key)
            return None
        return value

    def save(self, plan: Dict[str, Any]) -> None:
        """Write the plan wholesale"""
        self.kv.put(self.key, plan)
        logger.info(f"Plan saved ({plan.get('startDate')} to {plan.get('endDate')})")

    def replace(self, plan: Dict[str, Any], carry_completed: bool = False) -> Dict[str, Any]:
        """
        Swap in a regenerated plan.

        ARGS:
        - carry_completed: copy completed=True onto activities of the new
          plan that have the same id as a completed activity of the old
          plan. Off by default: regenerated ids are fresh UUIDs and a match
          is a coincidence, not continuity.

        RETURNS:
        The plan as saved
        """
        new_plan = copy.deepcopy(plan)

        if carry_completed:
            previous = self.load()
            done = {
                activity["id"]
                for _, _, activity in _iter_activities(previous or {})
                if activity.get("completed") is True and isinstance(activity.get("id"), str)
            }
            carried = 0
            for _, _, activity in _iter_activities(new_plan):
                activity_id = activity.get("id")
                if isinstance(activity_id, str) and activity_id in done:
                    activity["completed"] = True
                    carried += 1
            logger.info(f"Carried {carried} completed flag(s) into the regenerated plan")

        self.save(new_plan)
        return new_plan

    def set_activity_completed(self, activity_id: str, completed: bool) -> Dict[str, Any]:
        """
        Set one activity's completed flag.

        RETURNS:
        The updated plan

        RAISES:
        NotFoundError if no plan is held or no activity has that id
        """
        plan = self.load()
        if plan is None:
            raise NotFoundError(activity_id)

        for _, _, activity in _iter_activities(plan):
            if activity.get("id") == activity_id:
                activity["completed"] = bool(completed)
                self.save(plan)
                logger.info(f"Activity {activity_id} marked {'completed' if completed else 'not completed'}")
                return plan

        logger.warning(f"Activity {activity_id} not found in current plan")
        raise NotFoundError(activity_id)

    def completion_map(self) -> Dict[str, bool]:
        """activity id -> completed, for the held plan"""
        plan = self.load() or {}
        return {
            activity["id"]: bool(activity.get("completed", False))
            for _, _, activity in _iter_activities(plan)
            if isinstance(activity.get("id"), str)
        }

    def progress(self) -> Optional[Dict[str, Any]]:
        """
        Completion statistics for the held plan.

        RETURNS:
        {"total_activities": 20, "completed_activities": 5,
         "pending_activities": 15, "progress_percentage": 25.0}
        or None when no plan is held. Breaks are not counted.
        """
        plan = self.load()
        if plan is None:
            return None

        total = 0
        completed = 0
        for _, _, activity in _iter_activities(plan):
            if activity.get("type") == "break":
                continue
            total += 1
            if activity.get("completed") is True:
                completed += 1

        percentage = (completed / total * 100) if total > 0 else 0
        return {
            "total_activities": total,
            "completed_activities": completed,
            "pending_activities": total - completed,
            "progress_percentage": round(percentage, 1),
        }

    def clear(self) -> None:
        self.kv.delete(self.key)
        logger.info("Saved plan cleared")


# =============================================================================
# PREFERENCES
# =============================================================================

class PreferenceStore:
    """The session's preference blob"""

    def __init__(self, kv: KeyValueStore, key: Optional[str] = None):
        self.kv = kv
        self.key = key or settings.PREFERENCES_STORAGE_KEY

    def load(self) -> UserPreferences:
        """Saved preferences, or the defaults when none (or a corrupt blob) are stored"""
        value = self.kv.get(self.key)
        if value is None:
            return DEFAULT_PREFERENCES
        try:
            return UserPreferences.model_validate(value)
        except ValidationError as e:
            logger.warning(f"Stored preferences are invalid, using defaults: {e.error_count()} error(s)")
            return DEFAULT_PREFERENCES

    def save(self, preferences: UserPreferences) -> None:
        self.kv.put(self.key, preferences.to_payload())
        logger.info("Preferences saved")

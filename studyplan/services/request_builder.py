"""
Plan Request Builder
--------------------
Assembles a validated PlanRequest from whatever the collaborators returned.

RULES:
- currentDate must be a real YYYY-MM-DD date and planDurationDays >= 1,
  otherwise MalformedRequestError naming the field
- a record without its identifying field (courseId, examId, ...) fails the
  whole build with MalformedRequestError; the generator must never be left
  to guess which record an activity belongs to
- a record that has its id but fails the rest of its schema is dropped,
  logged at WARNING and listed in BuildResult.dropped
- a category whose fetch failed counts as "no data"; if EVERY academic
  records category failed the provider is considered unreachable and the
  build raises UpstreamUnavailable

The builder is pure: it never performs I/O.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Union

from pydantic import ValidationError

from studyplan.config import settings
from studyplan.exceptions import MalformedRequestError, UpstreamUnavailable
from studyplan.models.academic import ACADEMIC_CATEGORIES, RecordCategory, TaskPriority, TaskStatus
from studyplan.models.plan import format_date, parse_date
from studyplan.models.preferences import UserPreferences
from studyplan.models.request import PlanRequest

logger = logging.getLogger(__name__)


# =============================================================================
# COLLABORATOR SNAPSHOT
# =============================================================================

@dataclass
class CollectionFetch:
    """
    Result of fetching one category from a collaborator.

    `error` is set when the fetch failed; `records` is then empty.
    """
    category: RecordCategory
    records: List[Any] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass
class RecordsSnapshot:
    """Raw collaborator output for every category, keyed by category"""
    fetches: Dict[RecordCategory, CollectionFetch] = field(default_factory=dict)

    @classmethod
    def from_records(cls, **records: Sequence[Any]) -> "RecordsSnapshot":
        """
        Build a snapshot of successful fetches.

        EXAMPLE:
        RecordsSnapshot.from_records(courses=[...], exams=[...])
        """
        snapshot = cls()
        for name, items in records.items():
            category = RecordCategory(name)
            snapshot.fetches[category] = CollectionFetch(category=category, records=list(items))
        return snapshot

    def add(self, fetch: CollectionFetch) -> None:
        self.fetches[fetch.category] = fetch

    def get(self, category: RecordCategory) -> Optional[CollectionFetch]:
        return self.fetches.get(category)


@dataclass(frozen=True)
class DroppedRecord:
    """A record excluded from the request because it failed its schema"""
    category: RecordCategory
    index: int
    record_id: Any
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category.value,
            "index": self.index,
            "recordId": self.record_id,
            "reason": self.reason,
        }


@dataclass
class BuildResult:
    request: PlanRequest
    dropped: List[DroppedRecord] = field(default_factory=list)
    unavailable: List[RecordCategory] = field(default_factory=list)


# =============================================================================
# BUILDER
# =============================================================================

def _normalise_date(current_date: Union[str, date, None]) -> str:
    if current_date is None:
        return format_date(date.today())
    if isinstance(current_date, date):
        return format_date(current_date)
    try:
        parse_date(current_date)
    except ValueError as e:
        raise MalformedRequestError("currentDate", str(e)) from e
    return current_date


def _first_error(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first.get('msg')}" if location else first.get("msg", str(error))


def _collect_category(
    category: RecordCategory,
    fetch: Optional[CollectionFetch],
    dropped: List[DroppedRecord],
) -> list:
    if fetch is None:
        logger.warning(f"No {category.value} supplied; planning without them")
        return []
    if fetch.failed:
        logger.warning(f"Fetching {category.value} failed ({fetch.error}); planning without them")
        return []

    model = category.model
    id_field = category.id_field
    accepted = []

    for index, record in enumerate(fetch.records):
        location = f"{category.value}[{index}].{id_field}"
        if not isinstance(record, dict):
            raise MalformedRequestError(location, "record is not an object")

        record_id = record.get(id_field)
        if record_id is None or (isinstance(record_id, str) and not record_id.strip()):
            raise MalformedRequestError(location, "identifying field is missing")

        try:
            accepted.append(model.model_validate(record))
        except ValidationError as e:
            reason = _first_error(e)
            logger.warning(f"Dropping {category.value} record {record_id!r}: {reason}")
            dropped.append(DroppedRecord(category=category, index=index, record_id=record_id, reason=reason))

    return accepted


def build_plan_request(
    snapshot: RecordsSnapshot,
    preferences: UserPreferences,
    current_date: Union[str, date, None] = None,
    plan_duration_days: Optional[int] = None,
) -> BuildResult:
    """
    Package collaborator data into a PlanRequest.

    ARGS:
    - snapshot: per-category fetch results
    - preferences: the user's study preferences
    - current_date: plan anchor; defaults to today
    - plan_duration_days: horizon; defaults to settings.PLAN_DEFAULT_DURATION_DAYS

    RAISES:
    - MalformedRequestError: bad date/horizon or a record without its id
    - UpstreamUnavailable: every academic records category failed
    """
    anchor = _normalise_date(current_date)

    if plan_duration_days is None:
        plan_duration_days = settings.PLAN_DEFAULT_DURATION_DAYS
    if isinstance(plan_duration_days, bool) or not isinstance(plan_duration_days, int) or plan_duration_days < 1:
        raise MalformedRequestError("planDurationDays", f"must be a positive integer, got {plan_duration_days!r}")

    failed = [
        category for category in ACADEMIC_CATEGORIES
        if snapshot.get(category) is not None and snapshot.get(category).failed
    ]
    if failed and len(failed) == len(ACADEMIC_CATEGORIES):
        raise UpstreamUnavailable(
            [c.value for c in failed],
            detail="the academic records service could not be reached",
        )

    dropped: List[DroppedRecord] = []
    collections = {
        category.value: tuple(_collect_category(category, snapshot.get(category), dropped))
        for category in RecordCategory
    }

    try:
        request = PlanRequest(
            user_preferences=preferences,
            current_date=anchor,
            plan_duration_days=plan_duration_days,
            **collections,
        )
    except ValidationError as e:
        raise MalformedRequestError("planRequest", _first_error(e)) from e

    logger.info(
        f"Plan request built for {request.current_date} "
        f"({request.plan_duration_days} days): "
        + ", ".join(f"{len(v)} {k}" for k, v in collections.items())
        + (f"; dropped {len(dropped)} record(s)" if dropped else "")
    )

    return BuildResult(request=request, dropped=dropped, unavailable=failed)


# =============================================================================
# DEADLINE ORDERING
# =============================================================================

# Same-day ties: exams before quizzes before tasks
_KIND_RANK = {"exam": 0, "quiz": 1, "task": 2}
_PRIORITY_RANK = {TaskPriority.HIGH: 0, TaskPriority.MEDIUM: 1, TaskPriority.LOW: 2}


@dataclass(frozen=True)
class DeadlineItem:
    kind: str
    item_id: Any
    title: str
    due_date: str
    course_id: Any = None
    priority: Optional[TaskPriority] = None

    def sort_key(self):
        return (
            self.due_date,
            _KIND_RANK[self.kind],
            _PRIORITY_RANK.get(self.priority, 1),
            str(self.item_id),
        )


def deadline_priorities(request: PlanRequest, include_done: bool = False) -> List[DeadlineItem]:
    """
    Deterministic order in which deadline-bearing items should be worked on.

    ORDER:
    1. earlier due date first (exam/quiz datetimes are cut to YYYY-MM-DD)
    2. exam, then quiz, then task on the same day
    3. task priority high, medium, low
    4. id, as text

    Completed tasks are left out unless include_done is set.
    """
    items = [
        DeadlineItem(
            kind="exam", item_id=e.exam_id, title=e.exam_title,
            due_date=e.starts_at[:10], course_id=e.course_id,
        )
        for e in request.exams
    ]
    items += [
        DeadlineItem(
            kind="quiz", item_id=q.quiz_id, title=q.title,
            due_date=q.creation_date[:10], course_id=q.course_id,
        )
        for q in request.quizzes
    ]
    items += [
        DeadlineItem(
            kind="task", item_id=t.id, title=t.title,
            due_date=t.due_date, course_id=t.course_id, priority=t.priority,
        )
        for t in request.tasks
        if include_done or t.status is not TaskStatus.DONE
    ]
    return sorted(items, key=DeadlineItem.sort_key)

"""
Plan Validator
--------------
Decides whether a candidate returned by the generator is an acceptable
study plan.

TWO-TIER RESULT:
- RejectedPlan: hard structural failure at the root (no usable plan).
- AcceptedPlan: the plan plus zero or more SoftViolations. Defects inside
  days and activities degrade to recorded warnings; the plan is kept.

CHECK ORDER:
1. Root wrapper: object with startDate, endDate and a dailyPlans list.
   A bare array of days is reported as WRAPPER_MISSING, anything else
   as MALFORMED. This is the only rejecting check.
2. Day count against the requested horizon.
3. Root dates against the requested horizon.
4. Each day: date, dayOfWeek, activities list, date sequence, weekday.
5. Each activity: required fields, type enum, time formats and order,
   duplicate ids, reference types, completed flag type.

Nothing is repaired. The only normalisation is defaulting a missing
`completed` flag to false.
"""

import copy
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from studyplan.models.plan import (
    ACTIVITY_REQUIRED_FIELDS,
    ACTIVITY_TYPES,
    DAY_REQUIRED_FIELDS,
    ROOT_KEYS,
    day_name,
    format_date,
    parse_date,
    parse_time_of_day,
)
from studyplan.models.request import PlanRequest

logger = logging.getLogger(__name__)


# =============================================================================
# RESULT TYPES
# =============================================================================

class RejectionReason(str, Enum):
    """Why a candidate was rejected outright"""
    WRAPPER_MISSING = "wrapper_missing"  # generator returned the days array alone
    MALFORMED = "malformed"


class ViolationCode(str, Enum):
    DAY_COUNT_MISMATCH = "day_count_mismatch"
    START_DATE_MISMATCH = "start_date_mismatch"
    END_DATE_MISMATCH = "end_date_mismatch"
    DATE_FORMAT_INVALID = "date_format_invalid"
    DAY_MALFORMED = "day_malformed"
    DAY_FIELD_MISSING = "day_field_missing"
    DAY_OUT_OF_SEQUENCE = "day_out_of_sequence"
    DAY_OF_WEEK_MISMATCH = "day_of_week_mismatch"
    ACTIVITIES_MISSING = "activities_missing"
    ACTIVITY_MALFORMED = "activity_malformed"
    ACTIVITY_FIELD_MISSING = "activity_field_missing"
    ACTIVITY_FIELD_INVALID = "activity_field_invalid"
    ACTIVITY_TYPE_INVALID = "activity_type_invalid"
    TIME_FORMAT_INVALID = "time_format_invalid"
    TIME_ORDER_INVALID = "time_order_invalid"
    DUPLICATE_ACTIVITY_ID = "duplicate_activity_id"


@dataclass(frozen=True)
class SoftViolation:
    """
    A defect that does not block acceptance.

    `day_index` / `activity_index` locate the offending item (None for
    plan-level violations); `field` names the offending key when there is one.
    """
    code: ViolationCode
    message: str
    day_index: Optional[int] = None
    activity_index: Optional[int] = None
    field: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code.value,
            "message": self.message,
            "dayIndex": self.day_index,
            "activityIndex": self.activity_index,
            "field": self.field,
        }


@dataclass(frozen=True)
class RejectedPlan:
    reason: RejectionReason
    diagnostic: str

    accepted = False


@dataclass
class AcceptedPlan:
    plan: Dict[str, Any]
    violations: List[SoftViolation] = field(default_factory=list)

    accepted = True

    @property
    def is_clean(self) -> bool:
        return not self.violations

    def violations_for(self, day_index: int, activity_index: Optional[int] = None) -> List[SoftViolation]:
        """Violations recorded against one day, or one activity of that day"""
        return [
            v for v in self.violations
            if v.day_index == day_index
            and (activity_index is None or v.activity_index == activity_index)
        ]


ValidationResult = Union[AcceptedPlan, RejectedPlan]


# =============================================================================
# CHECKS
# =============================================================================

def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _check_root(candidate: Any) -> Optional[RejectedPlan]:
    if isinstance(candidate, list):
        return RejectedPlan(
            reason=RejectionReason.WRAPPER_MISSING,
            diagnostic=(
                "missing root wrapper: generator returned the dailyPlans array directly "
                "(no startDate, endDate or dailyPlans keys)"
            ),
        )

    if not isinstance(candidate, dict):
        return RejectedPlan(
            reason=RejectionReason.MALFORMED,
            diagnostic=f"missing root wrapper: expected a JSON object, got {type(candidate).__name__}",
        )

    missing = [key for key in ROOT_KEYS if key not in candidate or _is_blank(candidate[key])]
    if missing:
        return RejectedPlan(
            reason=RejectionReason.MALFORMED,
            diagnostic=f"missing root wrapper: {', '.join(missing)} not present",
        )

    if not isinstance(candidate["dailyPlans"], list):
        return RejectedPlan(
            reason=RejectionReason.MALFORMED,
            diagnostic="missing root wrapper: dailyPlans is not an array",
        )

    return None


def _check_root_dates(plan: Dict[str, Any], request: PlanRequest, day_count: int) -> List[SoftViolation]:
    violations = []
    expected = {"startDate": request.current_date, "endDate": request.end_date}
    # A plan with the wrong day count is already reported; an endDate
    # matching its own last day is consistent with it.
    also_allowed = {"startDate": None, "endDate": None}
    if day_count != request.plan_duration_days:
        also_allowed["endDate"] = format_date(request.start + timedelta(days=day_count - 1))
    codes = {"startDate": ViolationCode.START_DATE_MISMATCH, "endDate": ViolationCode.END_DATE_MISMATCH}

    for key, expected_value in expected.items():
        value = plan[key]
        try:
            parse_date(value)
        except ValueError:
            violations.append(SoftViolation(
                code=ViolationCode.DATE_FORMAT_INVALID,
                message=f"{key} '{value}' is not a valid YYYY-MM-DD date",
                field=key,
            ))
            continue
        if value not in (expected_value, also_allowed[key]):
            violations.append(SoftViolation(
                code=codes[key],
                message=f"{key} mismatch: got {value}, expected {expected_value}",
                field=key,
            ))

    return violations


def _check_activity(
    activity: Any,
    day_index: int,
    activity_index: int,
    seen_ids: Dict[str, tuple],
) -> List[SoftViolation]:
    where = f"day {day_index} activity {activity_index}"

    def violation(code, message, field_name=None):
        return SoftViolation(
            code=code,
            message=f"{where}: {message}",
            day_index=day_index,
            activity_index=activity_index,
            field=field_name,
        )

    if not isinstance(activity, dict):
        return [violation(ViolationCode.ACTIVITY_MALFORMED, "activity is not an object")]

    violations = []
    for name in ACTIVITY_REQUIRED_FIELDS:
        value = activity.get(name)
        if _is_blank(value):
            violations.append(violation(
                ViolationCode.ACTIVITY_FIELD_MISSING, f"missing required field '{name}'", name
            ))
        elif not isinstance(value, str):
            violations.append(violation(
                ViolationCode.ACTIVITY_FIELD_INVALID,
                f"field '{name}' must be a string, got {type(value).__name__}",
                name,
            ))

    activity_type = activity.get("type")
    if isinstance(activity_type, str) and activity_type.strip() and activity_type not in ACTIVITY_TYPES:
        violations.append(violation(
            ViolationCode.ACTIVITY_TYPE_INVALID, f"type '{activity_type}' is not a known activity type", "type"
        ))

    times = {}
    for name in ("startTime", "endTime"):
        value = activity.get(name)
        if not isinstance(value, str) or not value.strip():
            continue
        try:
            times[name] = parse_time_of_day(value)
        except ValueError:
            violations.append(violation(
                ViolationCode.TIME_FORMAT_INVALID, f"{name} '{value}' is not in HH:MM AM/PM format", name
            ))
    if len(times) == 2 and times["endTime"] <= times["startTime"]:
        violations.append(violation(
            ViolationCode.TIME_ORDER_INVALID,
            f"endTime {activity['endTime']} is not after startTime {activity['startTime']}",
            "endTime",
        ))

    activity_id = activity.get("id")
    if isinstance(activity_id, str) and activity_id.strip():
        if activity_id in seen_ids:
            first_day, first_activity = seen_ids[activity_id]
            violations.append(violation(
                ViolationCode.DUPLICATE_ACTIVITY_ID,
                f"id '{activity_id}' already used by day {first_day} activity {first_activity}",
                "id",
            ))
        else:
            seen_ids[activity_id] = (day_index, activity_index)

    for name in ("relatedItemId", "courseId"):
        value = activity.get(name)
        if value is not None and (isinstance(value, bool) or not isinstance(value, (str, int))):
            violations.append(violation(
                ViolationCode.ACTIVITY_FIELD_INVALID,
                f"{name} must be a string or integer id, got {type(value).__name__}",
                name,
            ))

    completed = activity.get("completed")
    if completed is not None and not isinstance(completed, bool):
        violations.append(violation(
            ViolationCode.ACTIVITY_FIELD_INVALID, "completed must be a boolean", "completed"
        ))

    return violations


def _check_day(
    day: Any,
    day_index: int,
    expected_date: str,
    seen_ids: Dict[str, tuple],
) -> List[SoftViolation]:
    where = f"day {day_index}"

    if not isinstance(day, dict):
        return [SoftViolation(
            code=ViolationCode.DAY_MALFORMED,
            message=f"{where}: day is not an object",
            day_index=day_index,
        )]

    violations = []
    for name in DAY_REQUIRED_FIELDS:
        if _is_blank(day.get(name)):
            violations.append(SoftViolation(
                code=ViolationCode.DAY_FIELD_MISSING,
                message=f"{where}: missing required field '{name}'",
                day_index=day_index,
                field=name,
            ))

    day_date = day.get("date")
    if not _is_blank(day_date):
        try:
            parsed = parse_date(day_date)
        except ValueError:
            violations.append(SoftViolation(
                code=ViolationCode.DATE_FORMAT_INVALID,
                message=f"{where}: date '{day_date}' is not a valid YYYY-MM-DD date",
                day_index=day_index,
                field="date",
            ))
        else:
            if day_date != expected_date:
                violations.append(SoftViolation(
                    code=ViolationCode.DAY_OUT_OF_SEQUENCE,
                    message=f"{where}: date {day_date} out of sequence, expected {expected_date}",
                    day_index=day_index,
                    field="date",
                ))
            weekday = day.get("dayOfWeek")
            if isinstance(weekday, str) and weekday.strip() and weekday.strip().lower() != day_name(parsed).lower():
                violations.append(SoftViolation(
                    code=ViolationCode.DAY_OF_WEEK_MISMATCH,
                    message=f"{where}: dayOfWeek '{weekday}' does not match {day_date} ({day_name(parsed)})",
                    day_index=day_index,
                    field="dayOfWeek",
                ))

    activities = day.get("activities")
    if not isinstance(activities, list):
        violations.append(SoftViolation(
            code=ViolationCode.ACTIVITIES_MISSING,
            message=f"{where}: activities is missing or not an array",
            day_index=day_index,
            field="activities",
        ))
        return violations

    for activity_index, activity in enumerate(activities):
        violations.extend(_check_activity(activity, day_index, activity_index, seen_ids))

    return violations


def _default_completed_flags(plan: Dict[str, Any]) -> None:
    for day in plan["dailyPlans"]:
        if not isinstance(day, dict) or not isinstance(day.get("activities"), list):
            continue
        for activity in day["activities"]:
            if isinstance(activity, dict) and "completed" not in activity:
                activity["completed"] = False


# =============================================================================
# ENTRY POINT
# =============================================================================

def validate_candidate(candidate: Any, request: PlanRequest) -> ValidationResult:
    """
    Validate an untrusted generator output against the request it answers.

    RETURNS:
    RejectedPlan on a root-level structural failure, otherwise AcceptedPlan
    with every soft violation found (in document order)

    EXAMPLE:
    result = validate_candidate(candidate, request)
    if not result.accepted:
        raise PlanRejectedError(result)
    for violation in result.violations:
        print(violation.message)
    """
    rejection = _check_root(candidate)
    if rejection is not None:
        logger.error(f"Plan rejected ({rejection.reason.value}): {rejection.diagnostic}")
        return rejection

    plan = copy.deepcopy(candidate)
    days = plan["dailyPlans"]
    violations: List[SoftViolation] = []

    if len(days) != request.plan_duration_days:
        violations.append(SoftViolation(
            code=ViolationCode.DAY_COUNT_MISMATCH,
            message=f"day count mismatch: got {len(days)}, expected {request.plan_duration_days}",
            field="dailyPlans",
        ))

    violations.extend(_check_root_dates(plan, request, len(days)))

    seen_ids: Dict[str, tuple] = {}
    for day_index, day in enumerate(days):
        expected_date = format_date(request.start + timedelta(days=day_index))
        violations.extend(_check_day(day, day_index, expected_date, seen_ids))

    _default_completed_flags(plan)

    for v in violations:
        logger.warning(f"Plan soft violation [{v.code.value}] {v.message}")

    logger.info(f"Plan accepted: {len(days)} days, {len(violations)} soft violation(s)")
    return AcceptedPlan(plan=plan, violations=violations)

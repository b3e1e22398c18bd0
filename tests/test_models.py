"""Tests for the strict schema models"""

import pytest
from pydantic import ValidationError

from studyplan.models import (
    DEFAULT_PREFERENCES, ActivityType, PlanRequest, RecordCategory, StudyActivity,
    UserPreferences, is_valid_plan_request, is_valid_study_plan,
)
from studyplan.models.plan import parse_time_of_day
from tests.conftest import make_plan


def test_strict_plan_accepts_generated_shape():
    assert is_valid_study_plan(make_plan(days=4))


@pytest.mark.parametrize("mutate", [
    lambda p: p.update(endDate="2024-06-09"),
    lambda p: p["dailyPlans"][1].update(date="2024-06-08"),
    lambda p: p["dailyPlans"][0].update(dayOfWeek="Sunday"),
    lambda p: p["dailyPlans"][2]["activities"][0].update(id="act-0-0"),
    lambda p: p["dailyPlans"][0]["activities"][0].update(type="nap"),
    lambda p: p["dailyPlans"][0]["activities"][0].update(startTime="13:00 PM"),
])
def test_strict_plan_rejects_invariant_breaks(mutate):
    plan = make_plan(days=3)
    mutate(plan)

    assert not is_valid_study_plan(plan)


def test_activity_end_must_follow_start():
    with pytest.raises(ValidationError):
        StudyActivity(id="a", start_time="10:00 AM", end_time="09:00 AM", description="x", type=ActivityType.STUDY)


def test_twelve_hour_clock_parsing():
    assert parse_time_of_day("12:00 AM").hour == 0
    assert parse_time_of_day("12:30 PM").hour == 12
    assert parse_time_of_day("01:30 PM").hour == 13


def test_plan_request_horizon():
    request = PlanRequest(user_preferences=DEFAULT_PREFERENCES, current_date="2024-12-30", plan_duration_days=4)

    assert request.end_date == "2025-01-02"
    assert request.expected_dates() == ["2024-12-30", "2024-12-31", "2025-01-01", "2025-01-02"]


@pytest.mark.parametrize("overrides", [
    {"currentDate": "2024-02-30"},
    {"currentDate": "2024/01/01"},
    {"planDurationDays": 0},
    {"userPreferences": {"defaultSessionLength": 50}},
])
def test_plan_request_schema(overrides):
    payload = {
        "userPreferences": DEFAULT_PREFERENCES.to_payload(),
        "currentDate": "2024-06-03",
        "planDurationDays": 7,
    }
    assert is_valid_plan_request(payload)

    payload.update(overrides)
    assert not is_valid_plan_request(payload)


def test_plan_request_is_immutable():
    request = PlanRequest(user_preferences=DEFAULT_PREFERENCES, current_date="2024-06-03")

    with pytest.raises(ValidationError):
        request.plan_duration_days = 3


def test_preferences_read_wire_format():
    prefs = UserPreferences.model_validate({
        "preferredStudyTimes": ["evening"],
        "studyTechniques": ["feynman"],
        "defaultSessionLength": 25,
        "defaultBreakCadence": 5,
        "notificationLeadTimes": {"task": 2, "session": 0, "exam": 7},
    })

    assert not prefs.uses_pomodoro
    assert prefs.notification_lead_times.exam == 7


def test_record_categories():
    assert [c.id_field for c in RecordCategory] == ["courseId", "examId", "id", "lectureId", "quizId"]
    assert not RecordCategory.TASKS.from_records_api

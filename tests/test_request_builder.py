"""Tests for building plan requests from collaborator data"""

from datetime import date

import pytest

from studyplan.exceptions import MalformedRequestError, UpstreamUnavailable
from studyplan.models.academic import RecordCategory
from studyplan.models.preferences import DEFAULT_PREFERENCES
from studyplan.models.request import is_valid_plan_request
from studyplan.services.request_builder import (
    CollectionFetch, RecordsSnapshot, build_plan_request, deadline_priorities,
)


def test_builds_request_from_all_categories(sample_records):
    snapshot = RecordsSnapshot.from_records(**sample_records)

    result = build_plan_request(snapshot, DEFAULT_PREFERENCES, "2024-06-03", 5)

    request = result.request
    assert request.current_date == "2024-06-03"
    assert request.plan_duration_days == 5
    assert request.end_date == "2024-06-07"
    assert [c.course_id for c in request.courses] == [101]
    assert len(request.tasks) == 2
    assert result.dropped == []
    assert result.unavailable == []
    assert is_valid_plan_request(request.to_payload())


def test_defaults_to_today_and_configured_horizon():
    result = build_plan_request(RecordsSnapshot.from_records(courses=[]), DEFAULT_PREFERENCES)

    assert result.request.current_date == date.today().isoformat()
    assert result.request.plan_duration_days == 7


def test_payload_uses_camel_case_keys(sample_records):
    snapshot = RecordsSnapshot.from_records(**sample_records)
    payload = build_plan_request(snapshot, DEFAULT_PREFERENCES, "2024-06-03", 3).request.to_payload()

    assert set(payload) == {
        "userPreferences", "courses", "exams", "tasks", "lectures", "quizzes",
        "currentDate", "planDurationDays",
    }
    assert payload["exams"][0]["examTitle"] == "Calculus Midterm"
    assert payload["userPreferences"]["defaultSessionLength"] == 50


@pytest.mark.parametrize("current_date", ["2024-13-01", "06/03/2024", "2024-02-30"])
def test_bad_current_date_is_malformed(current_date):
    with pytest.raises(MalformedRequestError) as exc_info:
        build_plan_request(RecordsSnapshot(), DEFAULT_PREFERENCES, current_date, 7)

    assert exc_info.value.field == "currentDate"


@pytest.mark.parametrize("days", [0, -3, True, "7"])
def test_bad_horizon_is_malformed(days):
    with pytest.raises(MalformedRequestError) as exc_info:
        build_plan_request(RecordsSnapshot(), DEFAULT_PREFERENCES, "2024-06-03", days)

    assert exc_info.value.field == "planDurationDays"


def test_record_without_id_fails_the_build(sample_records):
    exams = sample_records["exams"] + [{"examTitle": "Final", "courseId": 101}]
    snapshot = RecordsSnapshot.from_records(**dict(sample_records, exams=exams))

    with pytest.raises(MalformedRequestError) as exc_info:
        build_plan_request(snapshot, DEFAULT_PREFERENCES, "2024-06-03", 3)

    assert exc_info.value.field == "exams[1].examId"
    assert "exams[1].examId" in exc_info.value.user_message


def test_record_with_bad_fields_is_dropped(sample_records):
    bad_task = {"id": "task-3", "title": "Essay", "dueDate": "next week", "priority": "high", "status": "todo"}
    snapshot = RecordsSnapshot.from_records(**dict(sample_records, tasks=sample_records["tasks"] + [bad_task]))

    result = build_plan_request(snapshot, DEFAULT_PREFERENCES, "2024-06-03", 3)

    assert [t.id for t in result.request.tasks] == ["task-1", "task-2"]
    [dropped] = result.dropped
    assert dropped.category is RecordCategory.TASKS
    assert dropped.record_id == "task-3"
    assert dropped.index == 2
    assert dropped.to_dict()["reason"].startswith("dueDate")


def test_failed_category_counts_as_no_data(sample_records):
    snapshot = RecordsSnapshot.from_records(**sample_records)
    snapshot.add(CollectionFetch(category=RecordCategory.QUIZZES, error="HTTP 500"))

    result = build_plan_request(snapshot, DEFAULT_PREFERENCES, "2024-06-03", 3)

    assert result.request.quizzes == ()
    assert result.unavailable == [RecordCategory.QUIZZES]
    assert len(result.request.exams) == 1


def test_unreachable_records_provider_blocks_generation(sample_records):
    snapshot = RecordsSnapshot.from_records(tasks=sample_records["tasks"])
    for category in ("courses", "exams", "lectures", "quizzes"):
        snapshot.add(CollectionFetch(category=RecordCategory(category), error="request failed: ConnectError"))

    with pytest.raises(UpstreamUnavailable) as exc_info:
        build_plan_request(snapshot, DEFAULT_PREFERENCES, "2024-06-03", 3)

    assert set(exc_info.value.categories) == {"courses", "exams", "lectures", "quizzes"}


# =============================================================================
# DEADLINE ORDER
# =============================================================================

def test_deadlines_order_by_date_then_kind_then_priority(request_factory):
    request = request_factory(
        days=3,
        tasks=[
            {"id": "t-low", "title": "Low", "dueDate": "2024-06-05", "priority": "low", "status": "todo"},
            {"id": "t-high", "title": "High", "dueDate": "2024-06-05", "priority": "high", "status": "inprogress"},
            {"id": "t-early", "title": "Early", "dueDate": "2024-06-04", "priority": "low", "status": "todo"},
            {"id": "t-done", "title": "Done", "dueDate": "2024-06-03", "priority": "high", "status": "done"},
        ],
    )

    order = [(d.kind, d.item_id) for d in deadline_priorities(request)]

    assert order == [
        ("task", "t-early"),
        ("exam", 7),
        ("quiz", 12),
        ("task", "t-high"),
        ("task", "t-low"),
    ]


def test_deadlines_can_include_done_tasks(request_factory):
    request = request_factory(days=3)

    ids = [d.item_id for d in deadline_priorities(request, include_done=True)]

    assert "task-2" in ids

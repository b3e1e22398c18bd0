"""HTTP tests for the /plans routes"""

import pytest
from fastapi.testclient import TestClient

from studyplan.agents.planner_agent import PlannerAgent
from studyplan.exceptions import GenerationInProgress
from studyplan.main import app
from studyplan.services.plan_service import PlanService, get_plan_service
from studyplan.services.plan_store import InMemoryKeyValueStore
from studyplan.services.records_provider import InMemoryTaskProvider
from studyplan.services.request_builder import CollectionFetch, RecordsSnapshot
from studyplan.models.academic import RecordCategory
from tests.conftest import FakeLLM, make_plan

START = "2024-06-03"
ALICE = {"X-Session-Id": "alice"}


class StaticRecordsClient:
    def __init__(self, records, down=False):
        self.records = records
        self.down = down

    async def fetch_all(self):
        if self.down:
            snapshot = RecordsSnapshot()
            for category in ("courses", "exams", "lectures", "quizzes"):
                snapshot.add(CollectionFetch(category=RecordCategory(category), error="HTTP 503"))
            return snapshot
        return RecordsSnapshot.from_records(
            **{k: v for k, v in self.records.items() if k != "tasks"}
        )


@pytest.fixture
def llm():
    return FakeLLM()


@pytest.fixture
def make_client(sample_records, llm):
    stores = {}

    def build(down=False):
        service = PlanService(
            store_factory=lambda session_id: stores.setdefault(session_id, InMemoryKeyValueStore()),
            records_client=StaticRecordsClient(sample_records, down=down),
            task_provider=InMemoryTaskProvider(sample_records["tasks"]),
            agent=PlannerAgent(llm=llm),
        )
        app.dependency_overrides[get_plan_service] = lambda: service
        return TestClient(app)

    yield build
    app.dependency_overrides.clear()


@pytest.fixture
def client(make_client):
    return make_client()


def generate(client, days=2, headers=ALICE):
    return client.post("/plans/generate", json={"currentDate": START, "planDurationDays": days}, headers=headers)


# =============================================================================
# GENERATE
# =============================================================================

def test_generate_returns_plan_and_violations(client, llm):
    plan = make_plan(START, days=2)
    del plan["dailyPlans"][1]["activities"][0]["endTime"]
    llm.queue(plan)

    response = generate(client)

    assert response.status_code == 201
    body = response.json()
    assert body["plan"]["endDate"] == "2024-06-04"
    assert body["droppedRecords"] == []
    assert body["violations"] == [{
        "code": "activity_field_missing",
        "message": "day 1 activity 0: missing required field 'endTime'",
        "dayIndex": 1,
        "activityIndex": 0,
        "field": "endTime",
    }]


def test_plan_is_scoped_to_session_header(client, llm):
    llm.queue(make_plan(START, days=2))
    generate(client)

    assert client.get("/plans/current", headers=ALICE).json()["startDate"] == START
    assert client.get("/plans/current").status_code == 404
    assert client.get("/plans/current", headers={"X-Session-Id": "bob"}).status_code == 404


def test_malformed_request_is_400(client, llm):
    response = client.post("/plans/generate", json={"currentDate": "2024-02-30"}, headers=ALICE)

    assert response.status_code == 400
    assert "currentDate" in response.json()["detail"]
    assert llm.calls == []


def test_rejected_plan_is_502_and_nothing_saved(client, llm):
    llm.queue(make_plan(START, days=2)["dailyPlans"])

    response = generate(client)

    assert response.status_code == 502
    assert "missing root wrapper" in response.json()["detail"]
    assert client.get("/plans/current", headers=ALICE).status_code == 404


def test_generation_failure_is_502(client, llm):
    llm.queue("Sorry, I can't help with that.")

    assert generate(client).status_code == 502


def test_unreachable_records_is_503(make_client, llm):
    client = make_client(down=True)

    response = generate(client)

    assert response.status_code == 503
    assert "courses" in response.json()["detail"]
    assert llm.calls == []


def test_generation_in_progress_is_409():
    class BusyService:
        async def generate_plan(self, session_id, **kwargs):
            raise GenerationInProgress(session_id)

    app.dependency_overrides[get_plan_service] = lambda: BusyService()
    try:
        response = generate(TestClient(app))
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 409


def test_cancel_without_generation_is_404(client):
    assert client.post("/plans/generate/cancel", headers=ALICE).status_code == 404


# =============================================================================
# HELD PLAN
# =============================================================================

def test_toggle_progress_and_clear(client, llm):
    llm.queue(make_plan(START, days=2))
    generate(client)

    response = client.put("/plans/current/activities/act-0-0", json={"completed": True}, headers=ALICE)
    assert response.status_code == 200
    assert response.json()["dailyPlans"][0]["activities"][0]["completed"] is True

    progress = client.get("/plans/current/progress", headers=ALICE).json()
    assert progress["completed_activities"] == 1
    assert progress["progress_percentage"] == 50.0

    missing = client.put("/plans/current/activities/nope", json={"completed": True}, headers=ALICE)
    assert missing.status_code == 404

    assert client.delete("/plans/current", headers=ALICE).json() == {"message": "Saved plan cleared"}
    assert client.get("/plans/current/progress", headers=ALICE).status_code == 404


# =============================================================================
# PREFERENCES
# =============================================================================

def test_preferences_round_trip(client):
    defaults = client.get("/plans/preferences", headers=ALICE).json()
    assert defaults["defaultSessionLength"] == 50

    updated = dict(defaults, preferredStudyTimes=["morning"], studyTechniques=["feynman"])
    assert client.put("/plans/preferences", json=updated, headers=ALICE).status_code == 200

    assert client.get("/plans/preferences", headers=ALICE).json()["studyTechniques"] == ["feynman"]
    assert client.get("/plans/preferences").json()["studyTechniques"] == ["pomodoro", "spaced_repetition"]


def test_invalid_preferences_are_422(client):
    response = client.put("/plans/preferences", json={"defaultSessionLength": 0}, headers=ALICE)

    assert response.status_code == 422


def test_health(client):
    assert client.get("/health").json()["status"] == "healthy"

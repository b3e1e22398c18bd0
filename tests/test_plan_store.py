"""Tests for the plan and preference stores"""

import copy

import pytest
from sqlalchemy.orm import sessionmaker

from studyplan.db.database import drop_db, init_db, make_engine
from studyplan.exceptions import NotFoundError
from studyplan.models.preferences import DEFAULT_PREFERENCES, StudyTimeOption
from studyplan.services.plan_store import (
    InMemoryKeyValueStore, PlanStore, PreferenceStore, SQLAlchemyKeyValueStore,
)
from tests.conftest import make_plan


def stored_plan(days=3):
    plan = make_plan(days=days)
    for day in plan["dailyPlans"]:
        for activity in day["activities"]:
            activity["completed"] = False
    return plan


@pytest.fixture
def session_factory():
    engine = make_engine("sqlite://")
    init_db(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    drop_db(bind=engine)


@pytest.fixture(params=["memory", "sqlalchemy"])
def kv(request, session_factory):
    if request.param == "memory":
        return InMemoryKeyValueStore()
    return SQLAlchemyKeyValueStore(session_factory, session_id="alice")


# =============================================================================
# PLAN STORE
# =============================================================================

def test_load_save_clear(kv):
    store = PlanStore(kv)
    assert store.load() is None

    plan = stored_plan()
    store.save(plan)
    assert store.load() == plan

    store.clear()
    assert store.load() is None


def test_uses_fixed_storage_key(kv):
    PlanStore(kv).save(stored_plan())

    assert kv.get("studyPlannerStudyPlan")["startDate"] == "2024-06-03"


@pytest.mark.parametrize("value", [
    {"endDate": "2024-06-05", "dailyPlans": []},
    {"startDate": "2024-06-03", "dailyPlans": "nope"},
    ["not", "a", "plan"],
])
def test_invalid_stored_plan_is_discarded(kv, value):
    kv.put("studyPlannerStudyPlan", value)

    assert PlanStore(kv).load() is None
    assert kv.get("studyPlannerStudyPlan") is None


def test_toggle_is_idempotent_and_isolated(kv):
    store = PlanStore(kv)
    original = stored_plan()
    store.save(original)

    store.set_activity_completed("act-1-1", True)
    assert store.completion_map()["act-1-1"] is True

    store.set_activity_completed("act-1-1", False)
    assert store.load() == original


def test_toggle_returns_updated_plan_and_touches_one_activity(kv):
    store = PlanStore(kv)
    original = stored_plan()
    store.save(original)

    updated = store.set_activity_completed("act-2-0", True)

    expected = copy.deepcopy(original)
    expected["dailyPlans"][2]["activities"][0]["completed"] = True
    assert updated == expected
    assert store.load() == expected


def test_toggle_unknown_id_raises(kv):
    store = PlanStore(kv)
    store.save(stored_plan())

    with pytest.raises(NotFoundError) as exc_info:
        store.set_activity_completed("missing", True)

    assert exc_info.value.activity_id == "missing"


def test_toggle_without_plan_raises(kv):
    with pytest.raises(NotFoundError):
        PlanStore(kv).set_activity_completed("act-0-0", True)


def test_replace_does_not_carry_completion_by_default(kv):
    store = PlanStore(kv)
    store.save(stored_plan(days=3))
    store.set_activity_completed("act-0-0", True)

    saved = store.replace(stored_plan(days=5))

    assert len(saved["dailyPlans"]) == 5
    assert not any(store.completion_map().values())


def test_replace_can_carry_completion_by_id(kv):
    store = PlanStore(kv)
    store.save(stored_plan(days=3))
    store.set_activity_completed("act-0-0", True)

    store.replace(stored_plan(days=2), carry_completed=True)

    completion = store.completion_map()
    assert completion["act-0-0"] is True
    assert sum(completion.values()) == 1


def test_replace_carry_ignores_non_string_ids(kv):
    store = PlanStore(kv)
    previous = stored_plan(days=1)
    previous["dailyPlans"][0]["activities"][1]["id"] = {"nested": "id"}
    previous["dailyPlans"][0]["activities"][1]["completed"] = True
    store.save(previous)
    store.set_activity_completed("act-0-0", True)

    regenerated = stored_plan(days=1)
    regenerated["dailyPlans"][0]["activities"][1]["id"] = ["weird"]

    saved = store.replace(regenerated, carry_completed=True)

    activities = saved["dailyPlans"][0]["activities"]
    assert activities[0]["completed"] is True
    assert activities[1]["completed"] is False


def test_progress_skips_breaks(kv):
    store = PlanStore(kv)
    assert store.progress() is None

    store.save(stored_plan(days=2))  # each day: one study block, one break
    store.set_activity_completed("act-0-0", True)

    assert store.progress() == {
        "total_activities": 2,
        "completed_activities": 1,
        "pending_activities": 1,
        "progress_percentage": 50.0,
    }


def test_sessions_are_isolated(session_factory):
    alice = PlanStore(SQLAlchemyKeyValueStore(session_factory, "alice"))
    bob = PlanStore(SQLAlchemyKeyValueStore(session_factory, "bob"))

    alice.save(stored_plan())

    assert bob.load() is None
    bob.save(stored_plan(days=1))
    assert len(alice.load()["dailyPlans"]) == 3


# =============================================================================
# PREFERENCES
# =============================================================================

def test_preferences_default_until_saved(kv):
    store = PreferenceStore(kv)
    assert store.load() == DEFAULT_PREFERENCES

    custom = DEFAULT_PREFERENCES.model_copy(update={"preferred_study_times": [StudyTimeOption.MORNING]})
    store.save(custom)

    assert store.load().preferred_study_times == [StudyTimeOption.MORNING]
    assert kv.get("studyPlannerPreferences")["preferredStudyTimes"] == ["morning"]


def test_corrupt_preferences_fall_back_to_defaults(kv):
    kv.put("studyPlannerPreferences", {"defaultSessionLength": -5})

    assert PreferenceStore(kv).load() == DEFAULT_PREFERENCES

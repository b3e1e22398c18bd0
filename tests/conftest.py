"""
Shared test fixtures.

The language model is always replaced by FakeLLM; no test touches the
network or the configured database.
"""

import json
from typing import Any, List, Optional

import pytest

from studyplan.llm.base_client import BaseLLMClient, LLMMessage, LLMResponse
from studyplan.models.preferences import DEFAULT_PREFERENCES
from studyplan.services.request_builder import RecordsSnapshot, build_plan_request

START = "2024-06-03"  # a Monday
WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


class FakeLLM(BaseLLMClient):
    """Returns queued responses in order and records every call"""

    provider_name = "fake"

    def __init__(self, *responses: Any):
        super().__init__(model="fake-model")
        self.responses: List[Any] = list(responses)
        self.calls: List[dict] = []

    def queue(self, response: Any) -> None:
        self.responses.append(response)

    async def chat(self, messages: List[LLMMessage], max_tokens: int = 1000,
                   temperature: float = 0.7, json_mode: bool = False, **kwargs) -> LLMResponse:
        self.calls.append({
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "json_mode": json_mode,
            "kwargs": kwargs,
        })
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if not isinstance(response, str):
            response = json.dumps(response)
        return LLMResponse(
            content=response,
            model=self.model,
            provider=self.provider_name,
            usage={"total_tokens": 42},
        )

    async def generate(self, prompt: str, max_tokens: int = 1000, temperature: float = 0.7,
                       json_mode: bool = False, **kwargs) -> LLMResponse:
        raise NotImplementedError("planner only uses chat()")

    async def is_available(self) -> bool:
        return True


def make_plan(start: str = START, days: int = 3, activities_per_day: int = 2,
              id_prefix: str = "act") -> dict:
    """A plan document that passes every validator check"""
    from datetime import date, timedelta

    first = date.fromisoformat(start)
    slots = [
        ("09:00 AM", "09:50 AM", "study", "Pomodoro Session: Calculus"),
        ("09:50 AM", "10:00 AM", "break", "Short break"),
        ("02:00 PM", "03:30 PM", "exam_prep", "Review for Calculus midterm"),
    ]
    daily = []
    for d in range(days):
        day = first + timedelta(days=d)
        activities = []
        for a in range(activities_per_day):
            start_time, end_time, kind, description = slots[a % len(slots)]
            activities.append({
                "id": f"{id_prefix}-{d}-{a}",
                "startTime": start_time,
                "endTime": end_time,
                "description": description,
                "type": kind,
            })
        daily.append({
            "date": day.isoformat(),
            "dayOfWeek": WEEKDAYS[day.weekday()],
            "activities": activities,
        })
    return {
        "startDate": first.isoformat(),
        "endDate": (first + timedelta(days=days - 1)).isoformat(),
        "dailyPlans": daily,
    }


@pytest.fixture
def plan_factory():
    return make_plan


@pytest.fixture
def sample_records():
    return {
        "courses": [
            {"courseId": 101, "code": "MATH201", "title": "Calculus II", "language": "English",
             "semester": "Spring 2024", "schedule": "MWF 9:00 AM - 9:50 AM"},
        ],
        "exams": [
            {"examId": 7, "examTitle": "Calculus Midterm", "courseId": 101, "duration": 90,
             "startsAt": "2024-06-05T10:00:00", "endsAt": "2024-06-05T11:30:00",
             "language": "English", "totalMark": 100},
        ],
        "lectures": [
            {"lectureId": 3, "title": "Series and Sequences", "courseId": 101,
             "startsAt": "2024-06-04T09:00:00", "endsAt": "2024-06-04T09:50:00", "isDone": False},
        ],
        "quizzes": [
            {"quizId": 12, "title": "Integrals Quiz", "courseId": 101, "lectureId": 3,
             "totalMarks": 10, "creationDate": "2024-06-05"},
        ],
        "tasks": [
            {"id": "task-1", "title": "Problem Set 4", "courseId": 101, "dueDate": "2024-06-05",
             "priority": "high", "status": "todo"},
            {"id": "task-2", "title": "Read chapter 9", "dueDate": "2024-06-04",
             "priority": "low", "status": "done"},
        ],
    }


@pytest.fixture
def request_factory(sample_records):
    """Build a PlanRequest from the sample records"""
    def build(days: int = 3, current_date: str = START, preferences=DEFAULT_PREFERENCES, **overrides):
        records = dict(sample_records, **overrides)
        snapshot = RecordsSnapshot.from_records(**records)
        return build_plan_request(snapshot, preferences, current_date, days).request
    return build


@pytest.fixture
def fake_llm():
    return FakeLLM()

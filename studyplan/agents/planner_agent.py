"""
Planner Agent
-------------
Issues the single generation request for a study plan.

WHAT THIS DOES:
1. Turns a validated PlanRequest into a fully specified instruction
2. Sends exactly one request to the text-generation capability
3. Extracts and parses the JSON the model returned

WHAT THIS DOES NOT DO:
- Retry. A failed call raises GenerationFailure and the caller decides.
- Validate. The parsed output is untrusted; services/plan_validator.py
  decides whether it is an acceptable plan.

The instruction restates every hard constraint the validator checks (day
count, root keys, required activity fields, type enum, time format), since
the model is the only thing that can produce conforming content.
"""

import json
import logging
from typing import Any, List, Optional

from studyplan.config import settings
from studyplan.exceptions import GenerationFailure
from studyplan.llm import LLMGateway, LLMMessage, MessageRole, get_llm_gateway
from studyplan.models.plan import ACTIVITY_REQUIRED_FIELDS, ActivityType
from studyplan.models.request import PlanRequest
from studyplan.services.request_builder import deadline_priorities
from studyplan.utils.json_extract import extract_json

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = """You are an AI Study Planner.

Your ABSOLUTE PRIMARY TASK is to generate a single JSON object representing a study plan.
The JSON object MUST have the top-level keys "startDate", "endDate" and "dailyPlans".
An "overallSummary" key is also allowed at the root.
Return ONLY valid JSON. No markdown, no commentary."""


class PlannerAgent:
    """
    Agent that asks the language model for a study plan.

    The model client is injected so tests can use canned responses. Any
    object with an async `chat(messages, max_tokens, temperature, **kwargs)`
    returning an LLMResponse works; the default is the global gateway with
    provider fallback disabled (one request, one provider).

    USAGE:
    agent = PlannerAgent()
    candidate = await agent.generate_candidate(request)
    """

    def __init__(
        self,
        llm: Optional[Any] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None
    ):
        self._llm = llm
        self.max_tokens = max_tokens or settings.PLAN_MAX_TOKENS
        self.temperature = settings.PLAN_TEMPERATURE if temperature is None else temperature
        logger.info("Planner Agent initialized")

    @property
    def llm(self):
        if self._llm is None:
            self._llm = get_llm_gateway()
        return self._llm

    # -------------------------------------------------------------------------
    # INSTRUCTION
    # -------------------------------------------------------------------------
    def build_instruction(self, request: PlanRequest) -> str:
        """
        Build the user message for plan generation.

        PROMPT COMPONENTS:
        - Horizon: exact day count, start and end dates
        - Output schema for days and activities
        - Scheduling rules derived from the user's preferences
        - Deterministic deadline order
        - The request payload as JSON
        """
        n = request.plan_duration_days
        prefs = request.user_preferences
        payload = request.to_payload()

        type_list = ", ".join(f"'{t.value}'" for t in ActivityType)
        required = ", ".join(f"`{f}`" for f in ACTIVITY_REQUIRED_FIELDS)

        deadlines = deadline_priorities(request)
        deadline_text = "\n".join(
            f"  {i}. {d.due_date} {d.kind} {d.item_id}: {d.title}"
            + (f" (priority {d.priority.value})" if d.priority else "")
            for i, d in enumerate(deadlines, start=1)
        )

        technique_rules: List[str] = []
        if prefs.uses_pomodoro:
            technique_rules.append(
                f"- Pomodoro: split study blocks into {prefs.default_session_length}-minute sessions "
                f"each followed by a {prefs.default_break_cadence}-minute 'break' activity. "
                f"Label them \"Pomodoro Session: <topic>\" and \"Short break\"."
            )
        if prefs.uses_spaced_repetition:
            technique_rules.append(
                "- Spaced repetition: revisit each topic on later days at growing intervals "
                "(for example 1, 3 and 6 days after first study) using 'lecture_review' activities."
            )
        preferred_times = ", ".join(t.value for t in prefs.preferred_study_times) or "any time"

        return f"""Create a study plan covering exactly {n} day(s).

HORIZON:
- "startDate" MUST be "{request.current_date}"
- "endDate" MUST be "{request.end_date}"
- "dailyPlans" MUST contain exactly {n} objects, one per consecutive date: {", ".join(request.expected_dates())}
- Do NOT include empty {{}} objects or incomplete days.

EACH DAY OBJECT:
- `date`: YYYY-MM-DD
- `dayOfWeek`: English weekday name matching `date` (e.g. "Monday")
- `activities`: array of activity objects (an empty array means a rest day)
- `summary` (optional): brief focus of the day; mention if the day is packed or light

EACH ACTIVITY OBJECT MUST contain {required}, all non-empty:
- `id`: a unique UUID string you generate
- `startTime` / `endTime`: "HH:MM AM/PM" with a two-digit hour (e.g. "09:00 AM", "01:30 PM"); endTime after startTime on the same day
- `description`: clear, actionable (e.g. "Review Chapter 3 of Calculus")
- `type`: one of {type_list}
- `relatedItemId` (optional): id of the task, exam, quiz or lecture from the input
- `courseId` (optional): courseId from the input courses
- `completed`: false

SCHEDULING RULES:
- Put the most intensive work in the preferred study times: {preferred_times}.
{chr(10).join(technique_rules) if technique_rules else "- Use focused study blocks with short breaks between them."}
- Add every lecture from the input as a 'lecture' activity at its `startsAt` time; schedule nothing that overlaps it.
- Allocate 'exam_prep' before exams (`startsAt`), 'quiz_prep' before quizzes (`creationDate`) and 'task_work' before task `dueDate`s.
- Include at least one longer break when study spans several hours.

DEADLINE PRIORITY (work on earlier entries first):
{deadline_text or "  (no upcoming deadlines)"}

INPUT DATA:
{json.dumps(payload, indent=2, ensure_ascii=False)}

FINAL REMINDER: output ONE JSON object with "startDate", "endDate" and "dailyPlans" at the root; "dailyPlans" has exactly {n} complete day objects."""

    # -------------------------------------------------------------------------
    # GENERATION
    # -------------------------------------------------------------------------
    async def generate_candidate(self, request: PlanRequest) -> Any:
        """
        Make the one generation call and parse its output.

        RETURNS:
        The parsed JSON value, untrusted (may be a list, may miss keys)

        RAISES:
        GenerationFailure on transport errors, empty output or text that
        contains no parseable JSON
        """
        messages = [
            LLMMessage(role=MessageRole.SYSTEM, content=SYSTEM_PROMPT),
            LLMMessage(role=MessageRole.USER, content=self.build_instruction(request)),
        ]

        logger.info(
            f"Requesting study plan: {request.current_date} + {request.plan_duration_days} day(s)"
        )

        # A gateway fallback would be a second request
        extra = {"allow_fallback": False} if isinstance(self.llm, LLMGateway) else {}

        try:
            response = await self.llm.chat(
                messages,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                json_mode=True,
                **extra,
            )
        except Exception as e:
            logger.error(f"Study plan generation call failed: {e}", exc_info=True)
            raise GenerationFailure(f"Failed to generate study plan: {e}", cause=e) from e

        content = response.content if response is not None else None
        if not content or not content.strip():
            logger.error("LLM returned empty response")
            raise GenerationFailure("Failed to generate study plan. The AI model did not return an output.")

        logger.info(f"LLM response received from {response.provider} ({response.usage.get('total_tokens', 0)} tokens)")
        logger.debug(f"LLM response content: {content[:500]}...")

        try:
            return extract_json(content)
        except json.JSONDecodeError as e:
            logger.error(f"JSON parsing failed: {e}. Response was: {content[:1000]}")
            raise GenerationFailure(f"The AI model returned text that is not valid JSON: {e.msg}", cause=e) from e

"""
Planning Errors
---------------
Typed failures raised by the plan generation pipeline.

Every error carries a `user_message` that the API layer can show as-is.
Soft violations are NOT errors; see services/plan_validator.py.
"""

from typing import Iterable, List, Optional


class PlanningError(Exception):
    """Base class for every failure the planner reports to a caller"""

    def __init__(self, user_message: str):
        super().__init__(user_message)
        self.user_message = user_message


class MalformedRequestError(PlanningError):
    """A PlanRequest failed its own schema before generation was attempted"""

    def __init__(self, field: str, detail: str):
        self.field = field
        self.detail = detail
        super().__init__(f"Malformed plan request at '{field}': {detail}")


class UpstreamUnavailable(PlanningError):
    """A required collaborator could not be reached, so nothing was generated"""

    def __init__(self, categories: Iterable[str], detail: Optional[str] = None):
        self.categories: List[str] = list(categories)
        message = f"Could not load data for: {', '.join(self.categories)}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class GenerationFailure(PlanningError):
    """The text-generation call errored, timed out or returned nothing usable"""

    def __init__(self, user_message: str, cause: Optional[BaseException] = None):
        super().__init__(user_message)
        self.cause = cause


class PlanRejectedError(PlanningError):
    """The candidate plan failed the hard structural check"""

    def __init__(self, rejection):
        self.rejection = rejection
        super().__init__(f"Generated plan was rejected: {rejection.diagnostic}")


class NotFoundError(PlanningError):
    """An activity id is not present in the currently held plan"""

    def __init__(self, activity_id: str):
        self.activity_id = activity_id
        super().__init__(f"Activity '{activity_id}' was not found in the current plan")


class GenerationInProgress(PlanningError):
    """A generation is already running for this session"""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__("A study plan is already being generated. Please wait for it to finish.")


class GenerationCancelled(PlanningError):
    """The caller cancelled a generation between pipeline stages"""

    def __init__(self, stage: str):
        self.stage = stage
        super().__init__(f"Study plan generation was cancelled ({stage})")

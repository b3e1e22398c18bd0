"""
Academic Record Models
----------------------
Pydantic schemas for the records the planner consumes: courses, exams,
lectures and quizzes from the academic records API, and tasks from the
task provider.

Wire format is camelCase (that is what the records API returns), Python
attributes are snake_case. Always dump with `to_payload()` so aliases are
kept.
"""

from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# Records API ids arrive as either strings or numbers
RecordId = Union[str, int]


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase keys"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> Dict[str, Any]:
        """JSON-ready dict using wire (camelCase) keys"""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


# =============================================================================
# RECORDS API MODELS
# =============================================================================

class Course(CamelModel):
    """
    A course the student is enrolled in.

    EXAMPLE:
    {
        "courseId": 101,
        "code": "CS101",
        "title": "Introduction to Programming",
        "language": "English",
        "semester": "Fall 2025",
        "schedule": "MWF 9:00 AM - 9:50 AM"
    }
    """
    course_id: RecordId
    code: str
    title: str
    language: str
    semester: str
    schedule: str = Field(..., description="e.g. MWF 9:00 AM - 9:50 AM")


class Exam(CamelModel):
    """An upcoming exam. `startsAt`/`endsAt` are ISO datetime strings."""
    exam_id: RecordId
    exam_title: str
    course_id: RecordId
    duration: float = Field(..., description="Duration in minutes")
    starts_at: str
    ends_at: str
    language: str
    total_mark: float
    generated_at: Optional[str] = None
    total_questions: Optional[int] = None
    creator_id: Optional[int] = None
    file_name: Optional[str] = None


class Lecture(CamelModel):
    """A scheduled lecture. Lectures may span several days."""
    lecture_id: RecordId
    title: str
    course_id: RecordId
    starts_at: str
    ends_at: str
    is_done: bool
    hierarchy: Optional[int] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class Quiz(CamelModel):
    quiz_id: RecordId
    title: str
    course_id: RecordId
    lecture_id: RecordId
    total_marks: float
    creation_date: str = Field(..., description="YYYY-MM-DD or ISO string")


# =============================================================================
# TASK PROVIDER MODELS
# =============================================================================

class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "inprogress"
    DONE = "done"


class Task(CamelModel):
    """
    A task or assignment.

    EXAMPLE:
    {
        "id": "task-1",
        "title": "Problem Set 3",
        "courseId": 101,
        "dueDate": "2025-01-09",
        "priority": "high",
        "effort": "3 hours",
        "status": "todo"
    }
    """
    id: str
    title: str
    course_id: Optional[RecordId] = None
    due_date: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$")
    priority: TaskPriority
    effort: Optional[str] = Field(None, description="e.g. 5 hours")
    status: TaskStatus
    description: Optional[str] = None


# =============================================================================
# CATEGORIES
# =============================================================================

class RecordCategory(str, Enum):
    """Collections that make up a plan request, in request order"""
    COURSES = "courses"
    EXAMS = "exams"
    TASKS = "tasks"
    LECTURES = "lectures"
    QUIZZES = "quizzes"

    @property
    def id_field(self) -> str:
        """Wire name of the identifying field for records in this category"""
        return _ID_FIELDS[self]

    @property
    def model(self):
        return _MODELS[self]

    @property
    def from_records_api(self) -> bool:
        """Tasks come from the task provider, everything else from the records API"""
        return self is not RecordCategory.TASKS


_ID_FIELDS = {
    RecordCategory.COURSES: "courseId",
    RecordCategory.EXAMS: "examId",
    RecordCategory.TASKS: "id",
    RecordCategory.LECTURES: "lectureId",
    RecordCategory.QUIZZES: "quizId",
}

_MODELS = {
    RecordCategory.COURSES: Course,
    RecordCategory.EXAMS: Exam,
    RecordCategory.TASKS: Task,
    RecordCategory.LECTURES: Lecture,
    RecordCategory.QUIZZES: Quiz,
}

ACADEMIC_CATEGORIES = tuple(c for c in RecordCategory if c.from_records_api)

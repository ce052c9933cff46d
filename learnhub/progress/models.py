"""Database models for lesson progress tracking.

One row per (user, lesson), partitioned by (user_id, course_id) so that the
progress of a whole course is a single partition read. Auxiliary lists (quiz
attempts, bookmarks, notes, player interactions) are stored as JSON text
columns; their item shapes are the pydantic models below.
"""

from datetime import datetime
from enum import Enum
from typing import Any, TypeVar
from uuid import UUID, uuid4

import orjson
from pydantic import BaseModel, Field, TypeAdapter

from learnhub.catalog.models import AnswerValue
from learnhub.utils import ensure_utc_aware, utc_now


class LessonProgressStatus(str, Enum):
    """Lesson progress status."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class InteractionType(str, Enum):
    """Player interaction kinds."""

    PLAY = "play"
    PAUSE = "pause"
    SEEK = "seek"
    SPEED_CHANGE = "speed_change"
    QUALITY_CHANGE = "quality_change"
    FULLSCREEN = "fullscreen"


# ==============================================================================
# Embedded Records
# ==============================================================================


class SubmittedAnswer(BaseModel):
    """Learner answer to one quiz question."""

    question_id: str = Field(..., min_length=1)
    answer: AnswerValue


class GradedAnswer(BaseModel):
    """Submitted answer with its grading outcome."""

    question_id: str
    answer: AnswerValue | None = None
    is_correct: bool = False
    points: int = 0


class QuizAttempt(BaseModel):
    """One graded quiz submission."""

    attempt_number: int = Field(..., ge=1)
    answers: list[GradedAnswer] = Field(default_factory=list)
    score: int = 0
    percentage: int = 0
    passed: bool = False
    time_spent_seconds: int = 0
    started_at: datetime | None = None
    completed_at: datetime


class Bookmark(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    timestamp_seconds: int = Field(..., ge=0)
    note: str = ""
    created_at: datetime = Field(default_factory=utc_now)


class Note(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    content: str
    timestamp_seconds: int | None = None
    is_private: bool = True
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime | None = None


class Interaction(BaseModel):
    type: InteractionType
    timestamp_seconds: float | None = None
    value: str | None = None
    created_at: datetime = Field(default_factory=utc_now)


RecordT = TypeVar("RecordT", bound=BaseModel)


def dump_records(records: list[BaseModel]) -> str:
    """Serialize embedded records for a TEXT column."""
    return orjson.dumps([r.model_dump(mode="json") for r in records]).decode()


def load_records(raw: str | None, model: type[RecordT]) -> list[RecordT]:
    """Parse a TEXT column written by ``dump_records``."""
    if not raw:
        return []
    return TypeAdapter(list[model]).validate_python(orjson.loads(raw))


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

LESSON_PROGRESS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.lesson_progress (
    user_id UUID,
    course_id UUID,
    lesson_id UUID,
    status TEXT,
    watch_time_seconds INT,
    total_watch_time_seconds INT,
    completion_percentage INT,
    started_at TIMESTAMP,
    completed_at TIMESTAMP,
    last_accessed_at TIMESTAMP,
    updated_at TIMESTAMP,
    quiz_attempts TEXT,
    highest_score INT,
    best_attempt_number INT,
    passed BOOLEAN,
    bookmarks TEXT,
    notes TEXT,
    interactions TEXT,
    PRIMARY KEY ((user_id, course_id), lesson_id)
)
"""

PROGRESS_TABLES_CQL = [
    LESSON_PROGRESS_TABLE_CQL,
]

# Column order of ``LessonProgress.to_row_values``
LESSON_PROGRESS_COLUMNS = (
    "user_id",
    "course_id",
    "lesson_id",
    "status",
    "watch_time_seconds",
    "total_watch_time_seconds",
    "completion_percentage",
    "started_at",
    "completed_at",
    "last_accessed_at",
    "updated_at",
    "quiz_attempts",
    "highest_score",
    "best_attempt_number",
    "passed",
    "bookmarks",
    "notes",
    "interactions",
)


# ==============================================================================
# Entity Classes
# ==============================================================================


class LessonProgress:
    """Lesson progress entity for a specific user.

    ``watch_time_seconds`` is the furthest playback position reported (a
    high-water mark) and drives the completion percentage of video lessons.
    ``total_watch_time_seconds`` accumulates time actually spent and may exceed
    the lesson duration when parts are rewatched.

    Attributes:
        user_id: User UUID
        course_id: Course UUID (partition key)
        lesson_id: Lesson UUID
        status: not_started, in_progress or completed
        watch_time_seconds: Furthest position reached
        total_watch_time_seconds: Accumulated watch time
        completion_percentage: 0-100
        started_at: First activity timestamp
        completed_at: First completion timestamp (None unless completed)
        last_accessed_at: Last activity timestamp
        quiz_attempts: Graded attempts, oldest first
        highest_score: Best quiz score so far
        best_attempt_number: Attempt that produced highest_score
        passed: Whether a quiz attempt reached the passing score
        bookmarks: Video bookmarks
        notes: Learner notes
        interactions: Most recent player interactions
    """

    def __init__(
        self,
        user_id: UUID,
        course_id: UUID,
        lesson_id: UUID,
        status: str = LessonProgressStatus.NOT_STARTED.value,
        watch_time_seconds: int = 0,
        total_watch_time_seconds: int = 0,
        completion_percentage: int = 0,
        started_at: datetime | None = None,
        completed_at: datetime | None = None,
        last_accessed_at: datetime | None = None,
        updated_at: datetime | None = None,
        quiz_attempts: list[QuizAttempt] | None = None,
        highest_score: int = 0,
        best_attempt_number: int | None = None,
        passed: bool = False,
        bookmarks: list[Bookmark] | None = None,
        notes: list[Note] | None = None,
        interactions: list[Interaction] | None = None,
    ):
        self.user_id = user_id
        self.course_id = course_id
        self.lesson_id = lesson_id
        self.status = status
        self.watch_time_seconds = watch_time_seconds
        self.total_watch_time_seconds = total_watch_time_seconds
        self.completion_percentage = completion_percentage
        self.started_at = ensure_utc_aware(started_at)
        self.completed_at = ensure_utc_aware(completed_at)
        self.last_accessed_at = ensure_utc_aware(last_accessed_at) or utc_now()
        self.updated_at = ensure_utc_aware(updated_at)
        self.quiz_attempts = list(quiz_attempts or [])
        self.highest_score = highest_score
        self.best_attempt_number = best_attempt_number
        self.passed = passed
        self.bookmarks = list(bookmarks or [])
        self.notes = list(notes or [])
        self.interactions = list(interactions or [])

    @property
    def is_completed(self) -> bool:
        """Check if lesson is completed."""
        return self.status == LessonProgressStatus.COMPLETED.value

    @classmethod
    def from_row(cls, row: Any) -> "LessonProgress":
        """Create LessonProgress instance from Cassandra row."""
        return cls(
            user_id=row.user_id,
            course_id=row.course_id,
            lesson_id=row.lesson_id,
            status=row.status or LessonProgressStatus.NOT_STARTED.value,
            watch_time_seconds=row.watch_time_seconds or 0,
            total_watch_time_seconds=row.total_watch_time_seconds or 0,
            completion_percentage=row.completion_percentage or 0,
            started_at=row.started_at,
            completed_at=row.completed_at,
            last_accessed_at=row.last_accessed_at,
            updated_at=row.updated_at,
            quiz_attempts=load_records(row.quiz_attempts, QuizAttempt),
            highest_score=row.highest_score or 0,
            best_attempt_number=row.best_attempt_number,
            passed=bool(row.passed),
            bookmarks=load_records(row.bookmarks, Bookmark),
            notes=load_records(row.notes, Note),
            interactions=load_records(row.interactions, Interaction),
        )

    def to_row_values(self) -> list[Any]:
        """Values in ``lesson_progress`` column order."""
        return [
            self.user_id,
            self.course_id,
            self.lesson_id,
            self.status,
            self.watch_time_seconds,
            self.total_watch_time_seconds,
            self.completion_percentage,
            self.started_at,
            self.completed_at,
            self.last_accessed_at,
            self.updated_at,
            dump_records(self.quiz_attempts),
            self.highest_score,
            self.best_attempt_number,
            self.passed,
            dump_records(self.bookmarks),
            dump_records(self.notes),
            dump_records(self.interactions),
        ]

    def __repr__(self) -> str:
        return (
            f"<LessonProgress user={self.user_id} lesson={self.lesson_id} "
            f"{self.status} {self.completion_percentage}%>"
        )

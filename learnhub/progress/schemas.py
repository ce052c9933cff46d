"""Pydantic schemas for lesson progress tracking.

Request and response models for:
- Watch-time reports (throttled player beacons)
- Quiz submissions
- Manual completion
- Bookmarks, notes and player interactions
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .models import (
    Bookmark,
    InteractionType,
    LessonProgress,
    LessonProgressStatus,
    Note,
    QuizAttempt,
    SubmittedAnswer,
)


# ==============================================================================
# Request Schemas
# ==============================================================================


class RecordWatchTimeRequest(BaseModel):
    """Watch-time beacon sent by the player.

    ``position_seconds`` is the furthest position reached so far; repeated or
    out-of-order beacons are harmless. ``watched_seconds`` is the time watched
    since the previous beacon.
    """

    position_seconds: float = Field(..., ge=0, description="Furthest position")
    watched_seconds: float | None = Field(
        default=None, ge=0, description="Time watched since the last report"
    )


class QuizSubmissionRequest(BaseModel):
    """Answers to a quiz lesson."""

    answers: list[SubmittedAnswer] = Field(default_factory=list)
    time_spent_seconds: int = Field(default=0, ge=0)
    started_at: datetime | None = None


class CreateBookmarkRequest(BaseModel):
    timestamp_seconds: int = Field(..., ge=0)
    note: str = Field(default="", max_length=500)


class CreateNoteRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)
    timestamp_seconds: int | None = Field(default=None, ge=0)
    is_private: bool = True


class UpdateNoteRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)


class RecordInteractionRequest(BaseModel):
    type: InteractionType
    timestamp_seconds: float | None = Field(default=None, ge=0)
    value: str | None = Field(default=None, max_length=100)


# ==============================================================================
# Response Schemas
# ==============================================================================


class QuizAttemptResponse(BaseModel):
    """Graded attempt summary (the answer key is never returned)."""

    model_config = ConfigDict(from_attributes=True)

    attempt_number: int
    score: int
    percentage: int
    passed: bool
    time_spent_seconds: int
    started_at: datetime | None = None
    completed_at: datetime
    correct_answers: int
    total_questions: int

    @classmethod
    def from_attempt(cls, attempt: QuizAttempt) -> "QuizAttemptResponse":
        return cls(
            attempt_number=attempt.attempt_number,
            score=attempt.score,
            percentage=attempt.percentage,
            passed=attempt.passed,
            time_spent_seconds=attempt.time_spent_seconds,
            started_at=attempt.started_at,
            completed_at=attempt.completed_at,
            correct_answers=sum(1 for a in attempt.answers if a.is_correct),
            total_questions=len(attempt.answers),
        )


class LessonProgressResponse(BaseModel):
    """Lesson progress response."""

    model_config = ConfigDict(from_attributes=True)

    lesson_id: UUID
    course_id: UUID
    status: LessonProgressStatus
    completion_percentage: int = Field(description="0-100 percentage")
    watch_time_seconds: int = Field(description="Resume position")
    total_watch_time_seconds: int = 0
    started_at: datetime | None = None
    completed_at: datetime | None = None
    last_accessed_at: datetime | None = None
    highest_score: int = 0
    best_attempt_number: int | None = None
    passed: bool = False
    quiz_attempts: list[QuizAttemptResponse] = Field(default_factory=list)
    bookmarks: list[Bookmark] = Field(default_factory=list)
    notes: list[Note] = Field(default_factory=list)

    @classmethod
    def from_entity(cls, entity: LessonProgress) -> "LessonProgressResponse":
        """Create response from entity."""
        return cls(
            lesson_id=entity.lesson_id,
            course_id=entity.course_id,
            status=LessonProgressStatus(entity.status),
            completion_percentage=entity.completion_percentage,
            watch_time_seconds=entity.watch_time_seconds,
            total_watch_time_seconds=entity.total_watch_time_seconds,
            started_at=entity.started_at,
            completed_at=entity.completed_at,
            last_accessed_at=entity.last_accessed_at,
            highest_score=entity.highest_score,
            best_attempt_number=entity.best_attempt_number,
            passed=entity.passed,
            quiz_attempts=[
                QuizAttemptResponse.from_attempt(a) for a in entity.quiz_attempts
            ],
            bookmarks=entity.bookmarks,
            notes=entity.notes,
        )


class QuizSubmissionResponse(BaseModel):
    """Outcome of a quiz submission."""

    attempt: QuizAttemptResponse
    progress: LessonProgressResponse

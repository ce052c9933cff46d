"""Catalog definitions consumed by progress tracking.

The catalog is owned by the course authoring side; progress tracking only reads
it. Tables:
- courses: course level switches (certificates)
- lessons: lesson content type, duration, completion thresholds, quiz
- lessons_by_course: lookup ordered by position for course outlines

Quiz definitions are stored as a JSON document in ``lessons.quiz`` and parsed
into pydantic models, which also gives validation of the answer key shape.
"""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

import orjson
from pydantic import BaseModel, ConfigDict, Field, model_validator

from learnhub.utils import ensure_utc_aware, utc_now


DEFAULT_REQUIRED_WATCH_PERCENT = 80
DEFAULT_PASSING_SCORE_PERCENT = 70
DEFAULT_QUESTION_POINTS = 1


class ContentType(str, Enum):
    """Lesson content type."""

    VIDEO = "video"
    TEXT = "text"
    QUIZ = "quiz"
    ASSIGNMENT = "assignment"
    LIVE = "live"


# Lesson types completed by an explicit "mark complete" action
MANUALLY_COMPLETABLE_TYPES = frozenset(
    {ContentType.TEXT.value, ContentType.ASSIGNMENT.value, ContentType.LIVE.value}
)


# ==============================================================================
# Quiz Definitions
# ==============================================================================


class AnswerKind(str, Enum):
    """Shape of an answer: one value or a set of values."""

    SINGLE = "single"
    MULTIPLE = "multiple"


AnswerScalar = bool | int | float | str


def _answer_key(value: AnswerScalar) -> tuple[bool, AnswerScalar]:
    # Keeps True from matching 1
    return (isinstance(value, bool), value)


class AnswerValue(BaseModel):
    """Tagged answer value.

    ``single`` holds exactly one value. ``multiple`` holds a set of values and
    compares without regard to order or repetition.
    """

    model_config = ConfigDict(frozen=True)

    kind: AnswerKind
    values: list[AnswerScalar] = Field(..., min_length=1)

    @model_validator(mode="after")
    def _check_single_arity(self) -> "AnswerValue":
        if self.kind == AnswerKind.SINGLE and len(self.values) != 1:
            msg = "single answers hold exactly one value"
            raise ValueError(msg)
        return self

    @classmethod
    def single(cls, value: AnswerScalar) -> "AnswerValue":
        return cls(kind=AnswerKind.SINGLE, values=[value])

    @classmethod
    def multiple(cls, values: list[AnswerScalar]) -> "AnswerValue":
        return cls(kind=AnswerKind.MULTIPLE, values=list(values))

    def matches(self, other: "AnswerValue") -> bool:
        """Structural equality; ``multiple`` answers compare as sets."""
        if self.kind != other.kind:
            return False
        if self.kind == AnswerKind.SINGLE:
            return _answer_key(self.values[0]) == _answer_key(other.values[0])
        return {_answer_key(v) for v in self.values} == {
            _answer_key(v) for v in other.values
        }


class QuizQuestion(BaseModel):
    """Single quiz question with its answer key."""

    id: str = Field(..., min_length=1)
    prompt: str = ""
    points: int | None = Field(default=None, ge=0)
    correct_answer: AnswerValue

    @property
    def effective_points(self) -> int:
        """Points awarded for a correct answer (unset counts as 1)."""
        return DEFAULT_QUESTION_POINTS if self.points is None else self.points


class QuizDefinition(BaseModel):
    """Quiz attached to a quiz lesson."""

    questions: list[QuizQuestion] = Field(default_factory=list)
    passing_score_percent: int = Field(
        default=DEFAULT_PASSING_SCORE_PERCENT, ge=0, le=100
    )
    max_attempts: int | None = Field(default=None, ge=1)

    @property
    def total_points(self) -> int:
        return sum(q.effective_points for q in self.questions)

    def question(self, question_id: str) -> QuizQuestion | None:
        for q in self.questions:
            if q.id == question_id:
                return q
        return None


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses (
    id UUID PRIMARY KEY,
    title TEXT,
    certificate_enabled BOOLEAN,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

LESSON_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.lessons (
    id UUID PRIMARY KEY,
    course_id UUID,
    title TEXT,
    content_type TEXT,
    position INT,
    is_published BOOLEAN,
    duration_seconds INT,
    required_watch_percent INT,
    quiz TEXT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

# Ordered lessons per course, read to build course outlines
LESSONS_BY_COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.lessons_by_course (
    course_id UUID,
    position INT,
    lesson_id UUID,
    is_published BOOLEAN,
    PRIMARY KEY (course_id, position, lesson_id)
) WITH CLUSTERING ORDER BY (position ASC, lesson_id ASC)
"""

CATALOG_TABLES_CQL = [
    COURSE_TABLE_CQL,
    LESSON_TABLE_CQL,
    LESSONS_BY_COURSE_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class CatalogCourse:
    """Course switches relevant to progress tracking."""

    def __init__(
        self,
        id: UUID | None = None,
        title: str = "",
        certificate_enabled: bool = False,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.title = title.strip()
        self.certificate_enabled = certificate_enabled
        self.created_at = ensure_utc_aware(created_at) or utc_now()
        self.updated_at = ensure_utc_aware(updated_at)

    @classmethod
    def from_row(cls, row: Any) -> "CatalogCourse":
        """Create CatalogCourse instance from Cassandra row."""
        return cls(
            id=row.id,
            title=row.title or "",
            certificate_enabled=bool(row.certificate_enabled),
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def __repr__(self) -> str:
        return f"<CatalogCourse {self.title}>"


class CatalogLesson:
    """Lesson definition as seen by progress tracking.

    Attributes:
        id: Lesson UUID
        course_id: Owning course UUID
        title: Lesson title
        content_type: video, text, quiz, assignment or live
        position: Order within the course
        is_published: Only published lessons count towards completion
        duration_seconds: Video length (video lessons)
        required_watch_percent: Watched percentage that completes a video
        quiz: Quiz definition (quiz lessons)
    """

    def __init__(
        self,
        course_id: UUID,
        id: UUID | None = None,
        title: str = "",
        content_type: str = ContentType.VIDEO.value,
        position: int = 0,
        is_published: bool = True,
        duration_seconds: int | None = None,
        required_watch_percent: int | None = None,
        quiz: QuizDefinition | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.course_id = course_id
        self.title = title.strip()
        self.content_type = content_type
        self.position = position
        self.is_published = is_published
        self.duration_seconds = duration_seconds
        self.required_watch_percent = (
            DEFAULT_REQUIRED_WATCH_PERCENT
            if required_watch_percent is None
            else required_watch_percent
        )
        self.quiz = quiz
        self.created_at = ensure_utc_aware(created_at) or utc_now()
        self.updated_at = ensure_utc_aware(updated_at)

    @property
    def is_video(self) -> bool:
        return self.content_type == ContentType.VIDEO.value

    @property
    def is_quiz(self) -> bool:
        return self.content_type == ContentType.QUIZ.value

    @property
    def is_manually_completable(self) -> bool:
        return self.content_type in MANUALLY_COMPLETABLE_TYPES

    @classmethod
    def from_row(
        cls,
        row: Any,
        default_required_watch_percent: int = DEFAULT_REQUIRED_WATCH_PERCENT,
        default_passing_score_percent: int = DEFAULT_PASSING_SCORE_PERCENT,
    ) -> "CatalogLesson":
        """Create CatalogLesson instance from Cassandra row.

        Thresholds missing from the row fall back to the given defaults.
        """
        quiz = None
        if row.quiz:
            data = orjson.loads(row.quiz)
            if data.get("passing_score_percent") is None:
                data["passing_score_percent"] = default_passing_score_percent
            quiz = QuizDefinition.model_validate(data)

        required_watch_percent = row.required_watch_percent
        if required_watch_percent is None:
            required_watch_percent = default_required_watch_percent

        return cls(
            id=row.id,
            course_id=row.course_id,
            title=row.title or "",
            content_type=row.content_type,
            position=row.position or 0,
            is_published=bool(row.is_published),
            duration_seconds=row.duration_seconds,
            required_watch_percent=required_watch_percent,
            quiz=quiz,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def quiz_json(self) -> str | None:
        """Serialize the quiz definition for the ``quiz`` column."""
        if self.quiz is None:
            return None
        return self.quiz.model_dump_json()

    def __repr__(self) -> str:
        return f"<CatalogLesson {self.title} ({self.content_type}) #{self.position}>"


class CourseOutline:
    """Published lessons of a course in catalog order."""

    def __init__(
        self,
        course_id: UUID,
        lesson_ids: list[UUID] | None = None,
        certificate_enabled: bool = False,
    ):
        self.course_id = course_id
        self.lesson_ids = list(lesson_ids or [])
        self.certificate_enabled = certificate_enabled

    @property
    def published_lesson_count(self) -> int:
        return len(self.lesson_ids)

    def next_lesson_after(self, lesson_id: UUID) -> UUID | None:
        """Lesson following ``lesson_id`` in course order, if any.

        Unknown lessons (e.g. unpublished) have no successor.
        """
        try:
            index = self.lesson_ids.index(lesson_id)
        except ValueError:
            return None
        if index + 1 < len(self.lesson_ids):
            return self.lesson_ids[index + 1]
        return None

    def __contains__(self, lesson_id: object) -> bool:
        return lesson_id in self.lesson_ids

    def __repr__(self) -> str:
        return f"<CourseOutline course={self.course_id} lessons={len(self.lesson_ids)}>"

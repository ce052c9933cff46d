"""Database models for course enrollments.

Cassandra tables:
- enrollments: partitioned by course_id ("who is enrolled in this course?")
- enrollments_by_user: lookup partitioned by user_id ("which courses?")

Architecture: dual-write to both tables. Enrollments are never deleted; the
status column models closure (dropped, suspended, completed).
"""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel

from learnhub.progress.models import dump_records, load_records
from learnhub.utils import ensure_utc_aware, utc_now


class EnrollmentStatus(str, Enum):
    """Course enrollment status."""

    ACTIVE = "active"
    COMPLETED = "completed"
    DROPPED = "dropped"
    SUSPENDED = "suspended"


# Statuses under which lesson completions still roll up
TRACKING_STATUSES = frozenset(
    {EnrollmentStatus.ACTIVE.value, EnrollmentStatus.COMPLETED.value}
)


class CompletedLesson(BaseModel):
    """Completion record kept on the enrollment (one per lesson)."""

    lesson_id: UUID
    completed_at: datetime
    watch_time_seconds: int = 0
    score: int | None = None


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

ENROLLMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments (
    course_id UUID,
    user_id UUID,
    status TEXT,
    enrolled_at TIMESTAMP,
    completed_at TIMESTAMP,
    last_accessed_at TIMESTAMP,
    updated_at TIMESTAMP,
    completed_lessons TEXT,
    current_lesson_id UUID,
    completion_percentage INT,
    certificate_issued BOOLEAN,
    certificate_id TEXT,
    PRIMARY KEY (course_id, user_id)
)
"""

ENROLLMENTS_BY_USER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments_by_user (
    user_id UUID,
    course_id UUID,
    enrolled_at TIMESTAMP,
    status TEXT,
    completion_percentage INT,
    last_accessed_at TIMESTAMP,
    PRIMARY KEY (user_id, course_id)
)
"""

ENROLLMENT_TABLES_CQL = [
    ENROLLMENTS_TABLE_CQL,
    ENROLLMENTS_BY_USER_TABLE_CQL,
]

# Column order of ``CourseEnrollment.to_row_values``
ENROLLMENT_COLUMNS = (
    "course_id",
    "user_id",
    "status",
    "enrolled_at",
    "completed_at",
    "last_accessed_at",
    "updated_at",
    "completed_lessons",
    "current_lesson_id",
    "completion_percentage",
    "certificate_issued",
    "certificate_id",
)


# ==============================================================================
# Entity Classes
# ==============================================================================


class CourseEnrollment:
    """Course enrollment entity.

    Attributes:
        course_id: Course UUID
        user_id: User UUID
        status: active, completed, dropped or suspended
        enrolled_at: Enrollment timestamp
        completed_at: Set once when the course is completed
        last_accessed_at: Last progress activity
        completed_lessons: One record per completed lesson
        current_lesson_id: Next lesson to take, in course order
        completion_percentage: Completed share of published lessons (0-100)
        certificate_issued: One-way flag
        certificate_id: Assigned with the certificate
    """

    def __init__(
        self,
        course_id: UUID,
        user_id: UUID,
        status: str = EnrollmentStatus.ACTIVE.value,
        enrolled_at: datetime | None = None,
        completed_at: datetime | None = None,
        last_accessed_at: datetime | None = None,
        updated_at: datetime | None = None,
        completed_lessons: list[CompletedLesson] | None = None,
        current_lesson_id: UUID | None = None,
        completion_percentage: int = 0,
        certificate_issued: bool = False,
        certificate_id: str | None = None,
    ):
        self.course_id = course_id
        self.user_id = user_id
        self.status = status
        self.enrolled_at = ensure_utc_aware(enrolled_at) or utc_now()
        self.completed_at = ensure_utc_aware(completed_at)
        self.last_accessed_at = ensure_utc_aware(last_accessed_at)
        self.updated_at = ensure_utc_aware(updated_at)
        self.completed_lessons = list(completed_lessons or [])
        self.current_lesson_id = current_lesson_id
        self.completion_percentage = completion_percentage
        self.certificate_issued = certificate_issued
        self.certificate_id = certificate_id

    @property
    def is_completed(self) -> bool:
        """Check if course is completed."""
        return self.status == EnrollmentStatus.COMPLETED.value

    @property
    def is_tracking(self) -> bool:
        """Whether lesson completions still roll up into this enrollment."""
        return self.status in TRACKING_STATUSES

    @property
    def total_study_time_seconds(self) -> int:
        """Watch time summed over completed lessons."""
        return sum(cl.watch_time_seconds for cl in self.completed_lessons)

    def has_completed_lesson(self, lesson_id: UUID) -> bool:
        return any(cl.lesson_id == lesson_id for cl in self.completed_lessons)

    @classmethod
    def from_row(cls, row: Any) -> "CourseEnrollment":
        """Create CourseEnrollment instance from Cassandra row."""
        return cls(
            course_id=row.course_id,
            user_id=row.user_id,
            status=row.status or EnrollmentStatus.ACTIVE.value,
            enrolled_at=row.enrolled_at,
            completed_at=row.completed_at,
            last_accessed_at=row.last_accessed_at,
            updated_at=row.updated_at,
            completed_lessons=load_records(row.completed_lessons, CompletedLesson),
            current_lesson_id=row.current_lesson_id,
            completion_percentage=row.completion_percentage or 0,
            certificate_issued=bool(row.certificate_issued),
            certificate_id=row.certificate_id,
        )

    def to_row_values(self) -> list[Any]:
        """Values in ``enrollments`` column order."""
        return [
            self.course_id,
            self.user_id,
            self.status,
            self.enrolled_at,
            self.completed_at,
            self.last_accessed_at,
            self.updated_at,
            dump_records(self.completed_lessons),
            self.current_lesson_id,
            self.completion_percentage,
            self.certificate_issued,
            self.certificate_id,
        ]

    def __repr__(self) -> str:
        return (
            f"<CourseEnrollment user={self.user_id} course={self.course_id} "
            f"{self.status} {self.completion_percentage}%>"
        )

"""Read-side roll-ups over lesson progress and enrollments.

Pure functions: they derive reporting values from records already loaded and
never mutate them. Every function accepts an empty input and returns a
zero-valued result.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from uuid import UUID

from learnhub.enrollments.models import CourseEnrollment, EnrollmentStatus
from learnhub.progress.models import LessonProgress
from learnhub.utils import ensure_utc_aware, percent_of


class Granularity(str, Enum):
    """Bucket size for learning activity."""

    HOUR = "hour"
    DAY = "day"
    MONTH = "month"


_BUCKET_FORMATS = {
    Granularity.HOUR: "%Y-%m-%dT%H:00",
    Granularity.DAY: "%Y-%m-%d",
    Granularity.MONTH: "%Y-%m",
}


@dataclass(frozen=True)
class LessonProgressRow:
    lesson_id: UUID
    status: str
    completion_percentage: int
    watch_time_seconds: int
    total_watch_time_seconds: int
    last_accessed_at: datetime | None
    completed_at: datetime | None


@dataclass(frozen=True)
class CourseProgressSummary:
    course_id: UUID
    total_lessons: int = 0
    completed_lessons: int = 0
    completion_percentage: int = 0
    total_watch_time_seconds: int = 0
    last_accessed_at: datetime | None = None
    lessons: list[LessonProgressRow] = field(default_factory=list)


@dataclass(frozen=True)
class ActivityBucket:
    period: str
    total_watch_time_seconds: int = 0
    lessons_accessed: int = 0
    lessons_completed: int = 0


@dataclass(frozen=True)
class EnrollmentBreakdown:
    total_enrollments: int = 0
    by_status: dict[str, int] = field(default_factory=dict)
    average_completion_percentage: float = 0.0
    certificates_issued: int = 0


@dataclass(frozen=True)
class LearningOverview:
    total_courses: int = 0
    active_courses: int = 0
    completed_courses: int = 0
    total_lessons_completed: int = 0
    total_watch_time_seconds: int = 0
    certificates_issued: int = 0
    last_accessed_at: datetime | None = None


def _latest(values: Iterable[datetime | None]) -> datetime | None:
    present = [ensure_utc_aware(v) for v in values if v is not None]
    return max(present) if present else None


def course_progress_summary(
    course_id: UUID,
    progress_records: list[LessonProgress],
    total_lessons: int,
    lesson_ids: list[UUID] | None = None,
) -> CourseProgressSummary:
    """Summarize one user's progress in a course.

    Args:
        course_id: Course UUID
        progress_records: The user's lesson progress in the course
        total_lessons: Published lesson count
        lesson_ids: When given, only progress on these lessons counts as
            completed (unpublished lessons are ignored)
    """
    counted = progress_records
    if lesson_ids is not None:
        published = set(lesson_ids)
        counted = [p for p in progress_records if p.lesson_id in published]
    completed = sum(1 for p in counted if p.is_completed)

    return CourseProgressSummary(
        course_id=course_id,
        total_lessons=total_lessons,
        completed_lessons=completed,
        completion_percentage=min(100, percent_of(completed, total_lessons)),
        total_watch_time_seconds=sum(
            p.total_watch_time_seconds for p in progress_records
        ),
        last_accessed_at=_latest(p.last_accessed_at for p in progress_records),
        lessons=[
            LessonProgressRow(
                lesson_id=p.lesson_id,
                status=p.status,
                completion_percentage=p.completion_percentage,
                watch_time_seconds=p.watch_time_seconds,
                total_watch_time_seconds=p.total_watch_time_seconds,
                last_accessed_at=p.last_accessed_at,
                completed_at=p.completed_at,
            )
            for p in progress_records
        ],
    )


def learning_activity(
    progress_records: list[LessonProgress],
    start: datetime,
    end: datetime,
    granularity: Granularity = Granularity.DAY,
) -> list[ActivityBucket]:
    """Bucket lesson activity by last access time within ``[start, end]``.

    Each bucket sums accumulated watch time and counts the lessons accessed
    and completed. Buckets are sorted by period; empty periods are omitted.
    """
    start = ensure_utc_aware(start)
    end = ensure_utc_aware(end)
    fmt = _BUCKET_FORMATS[granularity]

    buckets: dict[str, dict[str, int]] = {}
    for progress in progress_records:
        accessed = ensure_utc_aware(progress.last_accessed_at)
        if accessed is None or not start <= accessed <= end:
            continue
        bucket = buckets.setdefault(
            accessed.strftime(fmt),
            {"watch": 0, "accessed": 0, "completed": 0},
        )
        bucket["watch"] += progress.total_watch_time_seconds
        bucket["accessed"] += 1
        if progress.is_completed:
            bucket["completed"] += 1

    return [
        ActivityBucket(
            period=period,
            total_watch_time_seconds=values["watch"],
            lessons_accessed=values["accessed"],
            lessons_completed=values["completed"],
        )
        for period, values in sorted(buckets.items())
    ]


def enrollment_status_breakdown(
    enrollments: list[CourseEnrollment],
) -> EnrollmentBreakdown:
    """Count enrollments per status and average their completion."""
    by_status = {s.value: 0 for s in EnrollmentStatus}
    for enrollment in enrollments:
        by_status[enrollment.status] = by_status.get(enrollment.status, 0) + 1

    average = (
        round(
            sum(e.completion_percentage for e in enrollments) / len(enrollments), 2
        )
        if enrollments
        else 0.0
    )

    return EnrollmentBreakdown(
        total_enrollments=len(enrollments),
        by_status=by_status,
        average_completion_percentage=average,
        certificates_issued=sum(1 for e in enrollments if e.certificate_issued),
    )


def user_learning_overview(
    enrollments: list[CourseEnrollment],
    progress_records: list[LessonProgress],
) -> LearningOverview:
    """Totals across all courses of one user."""
    return LearningOverview(
        total_courses=len(enrollments),
        active_courses=sum(
            1 for e in enrollments if e.status == EnrollmentStatus.ACTIVE.value
        ),
        completed_courses=sum(1 for e in enrollments if e.is_completed),
        total_lessons_completed=sum(len(e.completed_lessons) for e in enrollments),
        total_watch_time_seconds=sum(
            p.total_watch_time_seconds for p in progress_records
        ),
        certificates_issued=sum(1 for e in enrollments if e.certificate_issued),
        last_accessed_at=_latest(
            [p.last_accessed_at for p in progress_records]
            + [e.last_accessed_at for e in enrollments]
        ),
    )

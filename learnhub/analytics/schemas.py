"""Pydantic schemas for learning analytics responses."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class LessonProgressRowResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    lesson_id: UUID
    status: str
    completion_percentage: int
    watch_time_seconds: int
    total_watch_time_seconds: int
    last_accessed_at: datetime | None = None
    completed_at: datetime | None = None


class CourseProgressSummaryResponse(BaseModel):
    """One user's progress in one course."""

    model_config = ConfigDict(from_attributes=True)

    course_id: UUID
    total_lessons: int
    completed_lessons: int
    completion_percentage: int
    total_watch_time_seconds: int
    last_accessed_at: datetime | None = None
    lessons: list[LessonProgressRowResponse] = Field(default_factory=list)


class ActivityBucketResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    period: str
    total_watch_time_seconds: int
    lessons_accessed: int
    lessons_completed: int


class LearningActivityResponse(BaseModel):
    start: datetime
    end: datetime
    granularity: str
    buckets: list[ActivityBucketResponse]


class LearningOverviewResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_courses: int
    active_courses: int
    completed_courses: int
    total_lessons_completed: int
    total_watch_time_seconds: int
    certificates_issued: int
    last_accessed_at: datetime | None = None


class EnrollmentBreakdownResponse(BaseModel):
    """Enrollment counts of a course (instructor view)."""

    model_config = ConfigDict(from_attributes=True)

    total_enrollments: int
    by_status: dict[str, int]
    average_completion_percentage: float
    certificates_issued: int

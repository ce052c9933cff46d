"""Pydantic schemas for course enrollments."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .aggregator import CertificateOutcome, CertificateResult, CompletionStats
from .models import CompletedLesson, CourseEnrollment, EnrollmentStatus


# ==============================================================================
# Request Schemas
# ==============================================================================


class EnrollRequest(BaseModel):
    """Request to enroll in a course."""

    course_id: UUID = Field(..., description="Course UUID")


class ChangeEnrollmentStatusRequest(BaseModel):
    """Explicit status change (suspend, reactivate)."""

    status: EnrollmentStatus


# ==============================================================================
# Response Schemas
# ==============================================================================


class EnrollmentResponse(BaseModel):
    """Enrollment response."""

    model_config = ConfigDict(from_attributes=True)

    course_id: UUID
    user_id: UUID
    status: EnrollmentStatus
    enrolled_at: datetime
    completed_at: datetime | None = None
    last_accessed_at: datetime | None = None
    completion_percentage: int = Field(description="0-100 percentage")
    completed_lessons: list[CompletedLesson] = Field(default_factory=list)
    current_lesson_id: UUID | None = None
    certificate_issued: bool = False
    certificate_id: str | None = None
    total_study_time_seconds: int = 0

    @classmethod
    def from_entity(cls, entity: CourseEnrollment) -> "EnrollmentResponse":
        """Create response from entity."""
        return cls(
            course_id=entity.course_id,
            user_id=entity.user_id,
            status=EnrollmentStatus(entity.status),
            enrolled_at=entity.enrolled_at,
            completed_at=entity.completed_at,
            last_accessed_at=entity.last_accessed_at,
            completion_percentage=entity.completion_percentage,
            completed_lessons=entity.completed_lessons,
            current_lesson_id=entity.current_lesson_id,
            certificate_issued=entity.certificate_issued,
            certificate_id=entity.certificate_id,
            total_study_time_seconds=entity.total_study_time_seconds,
        )


class EnrollmentListResponse(BaseModel):
    """List of enrollments."""

    items: list[EnrollmentResponse]
    total: int


class CompletionStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_lessons: int
    completed_lessons: int
    completion_percentage: int
    total_study_time_seconds: int
    enrolled_at: datetime
    last_accessed_at: datetime | None = None

    @classmethod
    def from_stats(cls, stats: CompletionStats) -> "CompletionStatsResponse":
        return cls.model_validate(stats)


class CertificateResponse(BaseModel):
    """Certificate request outcome.

    ``already_issued`` returns the existing id; ``not_eligible`` means the
    course is not completed or does not award certificates.
    """

    outcome: CertificateOutcome
    certificate_id: str | None = None
    enrollment: EnrollmentResponse

    @classmethod
    def from_result(
        cls, enrollment: CourseEnrollment, result: CertificateResult
    ) -> "CertificateResponse":
        return cls(
            outcome=result.outcome,
            certificate_id=result.certificate_id,
            enrollment=EnrollmentResponse.from_entity(enrollment),
        )

"""Enrollment roll-up and status transitions.

Pure functions over ``CourseEnrollment``. The completion percentage is an
explicit recompute called after every completion event rather than a side
effect of saving. Status transitions are one-way for automatic changes:

    active -> completed    (100% of published lessons completed)
    active -> dropped      (learner action)
    active -> suspended    (instructor/admin action)
    dropped|suspended -> active   (administrative reactivation only)
"""

import hashlib
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID

import structlog

from learnhub.catalog.models import CourseOutline
from learnhub.core.exceptions import InvalidOperationError
from learnhub.utils import percent_of, utc_now

from .models import CompletedLesson, CourseEnrollment, EnrollmentStatus


logger = structlog.get_logger(__name__)


class CertificateOutcome(str, Enum):
    ISSUED = "issued"
    ALREADY_ISSUED = "already_issued"
    NOT_ELIGIBLE = "not_eligible"


@dataclass(frozen=True)
class CertificateResult:
    outcome: CertificateOutcome
    certificate_id: str | None = None

    @property
    def issued(self) -> bool:
        return self.outcome == CertificateOutcome.ISSUED


@dataclass(frozen=True)
class CompletionStats:
    total_lessons: int
    completed_lessons: int
    completion_percentage: int
    total_study_time_seconds: int
    enrolled_at: datetime
    last_accessed_at: datetime | None


# ==============================================================================
# Completion
# ==============================================================================


def recompute_completion(
    enrollment: CourseEnrollment,
    published_lesson_count: int,
    now: datetime | None = None,
) -> bool:
    """Recompute the completion percentage from the completed lessons.

    Leaves the percentage untouched when the course has no published lessons.

    Returns:
        True if this call moved the enrollment from active to completed
    """
    if published_lesson_count <= 0:
        return False

    enrollment.completion_percentage = min(
        100, percent_of(len(enrollment.completed_lessons), published_lesson_count)
    )

    if (
        enrollment.completion_percentage >= 100
        and enrollment.status == EnrollmentStatus.ACTIVE.value
    ):
        enrollment.status = EnrollmentStatus.COMPLETED.value
        enrollment.completed_at = now or utc_now()
        logger.info(
            "enrollment_completed",
            user_id=str(enrollment.user_id),
            course_id=str(enrollment.course_id),
        )
        return True

    return False


def mark_lesson_completed(
    enrollment: CourseEnrollment,
    outline: CourseOutline,
    lesson_id: UUID,
    watch_time_seconds: int = 0,
    score: int | None = None,
    now: datetime | None = None,
) -> bool:
    """Record a lesson completion on the enrollment.

    Idempotent: a lesson already recorded leaves the enrollment unchanged.
    Lessons outside the published outline are ignored.

    Returns:
        True if the enrollment changed
    """
    if lesson_id not in outline:
        logger.warning(
            "enrollment_unpublished_lesson_ignored",
            course_id=str(enrollment.course_id),
            lesson_id=str(lesson_id),
        )
        return False
    if enrollment.has_completed_lesson(lesson_id):
        return False

    now = now or utc_now()
    enrollment.completed_lessons.append(
        CompletedLesson(
            lesson_id=lesson_id,
            completed_at=now,
            watch_time_seconds=watch_time_seconds,
            score=score,
        )
    )
    enrollment.current_lesson_id = outline.next_lesson_after(lesson_id)
    enrollment.last_accessed_at = now
    enrollment.updated_at = now

    recompute_completion(enrollment, outline.published_lesson_count, now=now)
    return True


# ==============================================================================
# Certificates
# ==============================================================================


def generate_certificate_id(enrollment: CourseEnrollment, now: datetime) -> str:
    """``CERT-<epoch ms>-<digest of the enrollment identity>``."""
    identity = f"{enrollment.user_id}:{enrollment.course_id}".encode()
    digest = hashlib.sha256(identity).hexdigest()[:16].upper()
    return f"CERT-{int(now.timestamp() * 1000)}-{digest}"


def issue_certificate(
    enrollment: CourseEnrollment,
    certificate_enabled: bool,
    now: datetime | None = None,
) -> CertificateResult:
    """Issue the course certificate once the enrollment is completed.

    Calling again after issuance returns the existing id with the
    ``already_issued`` outcome and changes nothing.
    """
    if enrollment.certificate_issued:
        return CertificateResult(
            CertificateOutcome.ALREADY_ISSUED, enrollment.certificate_id
        )

    if not certificate_enabled or not enrollment.is_completed:
        return CertificateResult(CertificateOutcome.NOT_ELIGIBLE)

    now = now or utc_now()
    enrollment.certificate_id = generate_certificate_id(enrollment, now)
    enrollment.certificate_issued = True
    enrollment.updated_at = now

    logger.info(
        "certificate_issued",
        user_id=str(enrollment.user_id),
        course_id=str(enrollment.course_id),
        certificate_id=enrollment.certificate_id,
    )
    return CertificateResult(CertificateOutcome.ISSUED, enrollment.certificate_id)


# ==============================================================================
# Explicit Status Changes
# ==============================================================================

_CLOSING_TRANSITIONS = {
    (EnrollmentStatus.ACTIVE, EnrollmentStatus.DROPPED),
    (EnrollmentStatus.ACTIVE, EnrollmentStatus.SUSPENDED),
}

_REACTIVATIONS = {
    (EnrollmentStatus.DROPPED, EnrollmentStatus.ACTIVE),
    (EnrollmentStatus.SUSPENDED, EnrollmentStatus.ACTIVE),
}


def change_status(
    enrollment: CourseEnrollment,
    target: EnrollmentStatus,
    allow_reactivation: bool = False,
    now: datetime | None = None,
) -> bool:
    """Apply an explicit status change.

    Returns:
        True if the status changed, False when already in ``target``

    Raises:
        InvalidOperationError: The transition is not allowed
    """
    current = EnrollmentStatus(enrollment.status)
    if current == target:
        return False

    allowed = (current, target) in _CLOSING_TRANSITIONS or (
        allow_reactivation and (current, target) in _REACTIVATIONS
    )
    if not allowed:
        msg = f"Cannot change enrollment from {current.value} to {target.value}"
        raise InvalidOperationError(msg)

    enrollment.status = target.value
    enrollment.updated_at = now or utc_now()

    logger.info(
        "enrollment_status_changed",
        user_id=str(enrollment.user_id),
        course_id=str(enrollment.course_id),
        from_status=current.value,
        to_status=target.value,
    )
    return True


def completion_stats(
    enrollment: CourseEnrollment,
    published_lesson_count: int,
) -> CompletionStats:
    return CompletionStats(
        total_lessons=published_lesson_count,
        completed_lessons=len(enrollment.completed_lessons),
        completion_percentage=enrollment.completion_percentage,
        total_study_time_seconds=enrollment.total_study_time_seconds,
        enrolled_at=enrollment.enrolled_at,
        last_accessed_at=enrollment.last_accessed_at,
    )

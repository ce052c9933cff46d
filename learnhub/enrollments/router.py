"""Course enrollment API endpoints.

Provides routes for:
- Enrollment (create-or-fetch)
- Enrollment queries and completion stats
- Dropping a course, certificates
- Instructor/admin status changes
"""

from uuid import UUID

from fastapi import APIRouter, HTTPException, status

from learnhub.auth.dependencies import CurrentUser, InstructorUser
from learnhub.auth.permissions import is_admin
from learnhub.core.exceptions import LearnHubError

from .dependencies import EnrollmentServiceDep, handle_enrollment_error
from .models import EnrollmentStatus
from .schemas import (
    CertificateResponse,
    ChangeEnrollmentStatusRequest,
    CompletionStatsResponse,
    EnrollmentListResponse,
    EnrollmentResponse,
    EnrollRequest,
)


router = APIRouter(prefix="/v1/enrollments", tags=["enrollments"])


@router.post(
    "",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enroll in course",
)
async def enroll_in_course(
    data: EnrollRequest,
    enrollment_service: EnrollmentServiceDep,
    user: CurrentUser,
) -> EnrollmentResponse:
    """Enroll the current user in a course.

    Enrolling twice returns the existing enrollment unchanged.
    """
    try:
        enrollment = await enrollment_service.enroll(user.id, data.course_id)
        return EnrollmentResponse.from_entity(enrollment)
    except LearnHubError as e:
        raise handle_enrollment_error(e) from e


@router.get(
    "/my",
    response_model=EnrollmentListResponse,
    summary="Get my enrollments",
)
async def get_my_enrollments(
    enrollment_service: EnrollmentServiceDep,
    user: CurrentUser,
) -> EnrollmentListResponse:
    """Get all course enrollments for current user."""
    enrollments = await enrollment_service.get_user_enrollments(user.id)
    return EnrollmentListResponse(
        items=[EnrollmentResponse.from_entity(e) for e in enrollments],
        total=len(enrollments),
    )


@router.get(
    "/{course_id}",
    response_model=EnrollmentResponse,
    summary="Get enrollment for course",
)
async def get_enrollment(
    course_id: UUID,
    enrollment_service: EnrollmentServiceDep,
    user: CurrentUser,
) -> EnrollmentResponse:
    """Get enrollment status for a specific course."""
    try:
        enrollment = await enrollment_service.require_enrollment(user.id, course_id)
        return EnrollmentResponse.from_entity(enrollment)
    except LearnHubError as e:
        raise handle_enrollment_error(e) from e


@router.get(
    "/{course_id}/stats",
    response_model=CompletionStatsResponse,
    summary="Get completion stats",
)
async def get_completion_stats(
    course_id: UUID,
    enrollment_service: EnrollmentServiceDep,
    user: CurrentUser,
) -> CompletionStatsResponse:
    try:
        stats = await enrollment_service.get_completion_stats(user.id, course_id)
        return CompletionStatsResponse.from_stats(stats)
    except LearnHubError as e:
        raise handle_enrollment_error(e) from e


@router.post(
    "/{course_id}/drop",
    response_model=EnrollmentResponse,
    summary="Drop course",
)
async def drop_course(
    course_id: UUID,
    enrollment_service: EnrollmentServiceDep,
    user: CurrentUser,
) -> EnrollmentResponse:
    """Drop an active enrollment. Completed enrollments cannot be dropped."""
    try:
        enrollment = await enrollment_service.change_status(
            user.id, course_id, EnrollmentStatus.DROPPED
        )
        return EnrollmentResponse.from_entity(enrollment)
    except LearnHubError as e:
        raise handle_enrollment_error(e) from e


@router.post(
    "/{course_id}/certificate",
    response_model=CertificateResponse,
    summary="Request certificate",
)
async def request_certificate(
    course_id: UUID,
    enrollment_service: EnrollmentServiceDep,
    user: CurrentUser,
) -> CertificateResponse:
    """Issue the course certificate.

    Repeated requests return the already issued certificate.
    """
    try:
        enrollment, result = await enrollment_service.issue_certificate(
            user.id, course_id
        )
    except LearnHubError as e:
        raise handle_enrollment_error(e) from e
    return CertificateResponse.from_result(enrollment, result)


# ==============================================================================
# Instructor / Admin Endpoints
# ==============================================================================


@router.patch(
    "/courses/{course_id}/users/{user_id}/status",
    response_model=EnrollmentResponse,
    summary="Change enrollment status",
)
async def change_enrollment_status(
    course_id: UUID,
    user_id: UUID,
    data: ChangeEnrollmentStatusRequest,
    enrollment_service: EnrollmentServiceDep,
    user: InstructorUser,
) -> EnrollmentResponse:
    """Suspend an enrollment, or reactivate a dropped/suspended one.

    Instructors can suspend. Reactivation is reserved for admins.
    """
    reactivating = data.status == EnrollmentStatus.ACTIVE
    if reactivating and not is_admin(user.role):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only admins can reactivate enrollments",
        )

    try:
        enrollment = await enrollment_service.change_status(
            user_id,
            course_id,
            data.status,
            allow_reactivation=reactivating,
        )
        return EnrollmentResponse.from_entity(enrollment)
    except LearnHubError as e:
        raise handle_enrollment_error(e) from e

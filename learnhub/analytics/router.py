"""Learning analytics API endpoints.

Provides routes for:
- Course progress summary of the current user
- Learning activity over a date range
- Cross-course overview
- Enrollment breakdown per course (instructors)
"""

from datetime import datetime, timedelta
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from learnhub.auth.dependencies import CurrentUser, InstructorUser
from learnhub.core.exceptions import LearnHubError, status_code_for
from learnhub.utils import ensure_utc_aware, utc_now

from .dependencies import AnalyticsServiceDep
from .rollup import Granularity
from .schemas import (
    ActivityBucketResponse,
    CourseProgressSummaryResponse,
    EnrollmentBreakdownResponse,
    LearningActivityResponse,
    LearningOverviewResponse,
)


router = APIRouter(prefix="/v1/analytics", tags=["analytics"])


@router.get(
    "/me/courses/{course_id}",
    response_model=CourseProgressSummaryResponse,
    summary="Get my course progress summary",
)
async def get_course_summary(
    course_id: UUID,
    analytics_service: AnalyticsServiceDep,
    user: CurrentUser,
) -> CourseProgressSummaryResponse:
    try:
        summary = await analytics_service.course_summary(user.id, course_id)
    except LearnHubError as e:
        raise HTTPException(status_code=status_code_for(e), detail=e.message) from e
    return CourseProgressSummaryResponse.model_validate(summary)


@router.get(
    "/me/activity",
    response_model=LearningActivityResponse,
    summary="Get my learning activity",
)
async def get_learning_activity(
    analytics_service: AnalyticsServiceDep,
    user: CurrentUser,
    start: datetime | None = Query(default=None, description="Range start"),
    end: datetime | None = Query(default=None, description="Range end"),
    granularity: Granularity = Query(default=Granularity.DAY),
) -> LearningActivityResponse:
    """Watch time and lesson counts bucketed by period.

    Defaults to the last ``analytics_default_window_days`` days.
    """
    end = ensure_utc_aware(end) or utc_now()
    start = ensure_utc_aware(start) or end - timedelta(
        days=analytics_service.default_window_days
    )
    if start > end:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="start must not be after end",
        )

    buckets = await analytics_service.learning_activity(
        user.id, start=start, end=end, granularity=granularity
    )
    return LearningActivityResponse(
        start=start,
        end=end,
        granularity=granularity.value,
        buckets=[ActivityBucketResponse.model_validate(b) for b in buckets],
    )


@router.get(
    "/me/overview",
    response_model=LearningOverviewResponse,
    summary="Get my learning overview",
)
async def get_overview(
    analytics_service: AnalyticsServiceDep,
    user: CurrentUser,
) -> LearningOverviewResponse:
    overview = await analytics_service.user_overview(user.id)
    return LearningOverviewResponse.model_validate(overview)


@router.get(
    "/courses/{course_id}/enrollments",
    response_model=EnrollmentBreakdownResponse,
    summary="Get course enrollment breakdown",
)
async def get_course_enrollment_stats(
    course_id: UUID,
    analytics_service: AnalyticsServiceDep,
    user: InstructorUser,
) -> EnrollmentBreakdownResponse:
    try:
        breakdown = await analytics_service.course_enrollment_stats(course_id)
    except LearnHubError as e:
        raise HTTPException(status_code=status_code_for(e), detail=e.message) from e
    return EnrollmentBreakdownResponse.model_validate(breakdown)

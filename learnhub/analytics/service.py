"""Learning analytics service.

Loads progress and enrollment records and hands them to ``rollup``. Nothing
here writes to storage.
"""

from datetime import datetime, timedelta
from uuid import UUID

import structlog

from learnhub.catalog.service import CatalogService
from learnhub.enrollments.service import EnrollmentService
from learnhub.progress.models import LessonProgress
from learnhub.progress.service import ProgressService
from learnhub.utils import utc_now

from . import rollup
from .rollup import (
    ActivityBucket,
    CourseProgressSummary,
    EnrollmentBreakdown,
    Granularity,
    LearningOverview,
)


logger = structlog.get_logger(__name__)


class AnalyticsService:
    """Read-only reporting over progress and enrollments."""

    def __init__(
        self,
        catalog: CatalogService,
        enrollments: EnrollmentService,
        progress: ProgressService,
        default_window_days: int = 30,
    ):
        self.catalog = catalog
        self.enrollments = enrollments
        self.progress = progress
        self.default_window_days = default_window_days

    async def _user_progress(self, user_id: UUID) -> list[LessonProgress]:
        records: list[LessonProgress] = []
        for enrollment in await self.enrollments.get_user_enrollments(user_id):
            records.extend(
                await self.progress.get_course_progress_records(
                    user_id, enrollment.course_id
                )
            )
        return records

    async def course_summary(
        self, user_id: UUID, course_id: UUID
    ) -> CourseProgressSummary:
        """Progress summary of one user in one course.

        Raises:
            CourseNotFoundError: If the course does not exist
        """
        outline = await self.catalog.get_course_outline(course_id)
        records = await self.progress.get_course_progress_records(user_id, course_id)
        return rollup.course_progress_summary(
            course_id,
            records,
            outline.published_lesson_count,
            lesson_ids=outline.lesson_ids,
        )

    async def learning_activity(
        self,
        user_id: UUID,
        start: datetime | None = None,
        end: datetime | None = None,
        granularity: Granularity = Granularity.DAY,
    ) -> list[ActivityBucket]:
        """Activity buckets for a user; defaults to the configured window."""
        end = end or utc_now()
        start = start or end - timedelta(days=self.default_window_days)
        records = await self._user_progress(user_id)
        buckets = rollup.learning_activity(records, start, end, granularity)
        logger.debug(
            "learning_activity_computed",
            user_id=str(user_id),
            records=len(records),
            buckets=len(buckets),
        )
        return buckets

    async def user_overview(self, user_id: UUID) -> LearningOverview:
        enrollments = await self.enrollments.get_user_enrollments(user_id)
        records = await self._user_progress(user_id)
        return rollup.user_learning_overview(enrollments, records)

    async def course_enrollment_stats(self, course_id: UUID) -> EnrollmentBreakdown:
        """Status breakdown of every enrollment in a course (instructor view)."""
        await self.catalog.get_course(course_id)
        enrollments = await self.enrollments.get_course_enrollments(course_id)
        return rollup.enrollment_status_breakdown(enrollments)

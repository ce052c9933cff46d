"""Tests for analytics roll-ups."""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from learnhub.analytics.rollup import (
    Granularity,
    course_progress_summary,
    enrollment_status_breakdown,
    learning_activity,
    user_learning_overview,
)
from learnhub.enrollments.models import (
    CompletedLesson,
    CourseEnrollment,
    EnrollmentStatus,
)
from learnhub.progress.models import LessonProgress, LessonProgressStatus


DAY_ONE = datetime(2026, 3, 1, 9, 30, tzinfo=UTC)


def _progress(
    course_id,
    accessed: datetime,
    total_watch: int = 0,
    completed: bool = False,
) -> LessonProgress:
    return LessonProgress(
        user_id=uuid4(),
        course_id=course_id,
        lesson_id=uuid4(),
        status=(
            LessonProgressStatus.COMPLETED.value
            if completed
            else LessonProgressStatus.IN_PROGRESS.value
        ),
        total_watch_time_seconds=total_watch,
        completion_percentage=100 if completed else 30,
        last_accessed_at=accessed,
    )


class TestEmptyInputs:
    """Every roll-up returns zero values for empty inputs."""

    def test_course_summary(self) -> None:
        course_id = uuid4()
        summary = course_progress_summary(course_id, [], total_lessons=0)

        assert summary.course_id == course_id
        assert summary.completed_lessons == 0
        assert summary.completion_percentage == 0
        assert summary.total_watch_time_seconds == 0
        assert summary.last_accessed_at is None
        assert summary.lessons == []

    def test_activity(self) -> None:
        assert learning_activity([], DAY_ONE, DAY_ONE + timedelta(days=1)) == []

    def test_breakdown(self) -> None:
        breakdown = enrollment_status_breakdown([])

        assert breakdown.total_enrollments == 0
        assert breakdown.average_completion_percentage == 0.0
        assert breakdown.by_status == {s.value: 0 for s in EnrollmentStatus}

    def test_overview(self) -> None:
        overview = user_learning_overview([], [])

        assert overview.total_courses == 0
        assert overview.total_watch_time_seconds == 0
        assert overview.last_accessed_at is None


class TestCourseProgressSummary:
    def test_summary(self) -> None:
        course_id = uuid4()
        records = [
            _progress(course_id, DAY_ONE, total_watch=100, completed=True),
            _progress(course_id, DAY_ONE + timedelta(hours=2), total_watch=50),
        ]

        summary = course_progress_summary(course_id, records, total_lessons=3)

        assert summary.completed_lessons == 1
        assert summary.completion_percentage == 33
        assert summary.total_watch_time_seconds == 150
        assert summary.last_accessed_at == DAY_ONE + timedelta(hours=2)
        assert len(summary.lessons) == 2

    def test_unpublished_lessons_not_counted(self) -> None:
        course_id = uuid4()
        published = _progress(course_id, DAY_ONE, completed=True)
        unpublished = _progress(course_id, DAY_ONE, completed=True)

        summary = course_progress_summary(
            course_id,
            [published, unpublished],
            total_lessons=1,
            lesson_ids=[published.lesson_id],
        )

        assert summary.completed_lessons == 1
        assert summary.completion_percentage == 100


class TestLearningActivity:
    def test_daily_buckets_sorted(self) -> None:
        course_id = uuid4()
        records = [
            _progress(course_id, DAY_ONE + timedelta(days=1), total_watch=30),
            _progress(course_id, DAY_ONE, total_watch=100, completed=True),
            _progress(course_id, DAY_ONE + timedelta(hours=3), total_watch=20),
        ]

        buckets = learning_activity(
            records, DAY_ONE - timedelta(hours=1), DAY_ONE + timedelta(days=2)
        )

        assert [b.period for b in buckets] == ["2026-03-01", "2026-03-02"]
        assert buckets[0].total_watch_time_seconds == 120
        assert buckets[0].lessons_accessed == 2
        assert buckets[0].lessons_completed == 1
        assert buckets[1].lessons_completed == 0

    def test_range_filter(self) -> None:
        course_id = uuid4()
        records = [
            _progress(course_id, DAY_ONE - timedelta(days=10)),
            _progress(course_id, DAY_ONE),
        ]

        buckets = learning_activity(records, DAY_ONE, DAY_ONE)

        assert len(buckets) == 1
        assert buckets[0].lessons_accessed == 1

    @pytest.mark.parametrize(
        ("granularity", "period"),
        [
            (Granularity.HOUR, "2026-03-01T09:00"),
            (Granularity.MONTH, "2026-03"),
        ],
    )
    def test_granularity(self, granularity, period) -> None:
        records = [_progress(uuid4(), DAY_ONE)]

        buckets = learning_activity(
            records,
            DAY_ONE - timedelta(days=1),
            DAY_ONE + timedelta(days=1),
            granularity,
        )

        assert buckets[0].period == period


class TestEnrollmentBreakdown:
    def test_counts_and_average(self) -> None:
        course_id = uuid4()
        enrollments = [
            CourseEnrollment(course_id=course_id, user_id=uuid4(), completion_percentage=50),
            CourseEnrollment(
                course_id=course_id,
                user_id=uuid4(),
                status=EnrollmentStatus.COMPLETED.value,
                completion_percentage=100,
                certificate_issued=True,
                certificate_id="CERT-1-ABC",
            ),
            CourseEnrollment(
                course_id=course_id,
                user_id=uuid4(),
                status=EnrollmentStatus.DROPPED.value,
                completion_percentage=25,
            ),
        ]

        breakdown = enrollment_status_breakdown(enrollments)

        assert breakdown.total_enrollments == 3
        assert breakdown.by_status["active"] == 1
        assert breakdown.by_status["completed"] == 1
        assert breakdown.by_status["dropped"] == 1
        assert breakdown.by_status["suspended"] == 0
        assert breakdown.average_completion_percentage == pytest.approx(58.33)
        assert breakdown.certificates_issued == 1


class TestUserLearningOverview:
    def test_overview(self) -> None:
        course_id = uuid4()
        enrollment = CourseEnrollment(
            course_id=course_id,
            user_id=uuid4(),
            completed_lessons=[
                CompletedLesson(lesson_id=uuid4(), completed_at=DAY_ONE),
                CompletedLesson(lesson_id=uuid4(), completed_at=DAY_ONE),
            ],
            last_accessed_at=DAY_ONE,
        )
        finished = CourseEnrollment(
            course_id=uuid4(),
            user_id=enrollment.user_id,
            status=EnrollmentStatus.COMPLETED.value,
        )
        records = [
            _progress(course_id, DAY_ONE + timedelta(hours=1), total_watch=90),
        ]

        overview = user_learning_overview([enrollment, finished], records)

        assert overview.total_courses == 2
        assert overview.active_courses == 1
        assert overview.completed_courses == 1
        assert overview.total_lessons_completed == 2
        assert overview.total_watch_time_seconds == 90
        assert overview.last_accessed_at == DAY_ONE + timedelta(hours=1)

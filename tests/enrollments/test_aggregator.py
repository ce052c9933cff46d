"""Tests for enrollment roll-up, certificates and status changes."""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from learnhub.catalog.models import CourseOutline
from learnhub.core.exceptions import InvalidOperationError
from learnhub.enrollments import aggregator
from learnhub.enrollments.aggregator import CertificateOutcome
from learnhub.enrollments.models import CourseEnrollment, EnrollmentStatus


NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def outline() -> CourseOutline:
    return CourseOutline(
        course_id=uuid4(),
        lesson_ids=[uuid4() for _ in range(4)],
        certificate_enabled=True,
    )


@pytest.fixture
def enrollment(outline: CourseOutline) -> CourseEnrollment:
    return CourseEnrollment(
        course_id=outline.course_id,
        user_id=uuid4(),
        enrolled_at=NOW - timedelta(days=7),
    )


def _complete_all(enrollment: CourseEnrollment, outline: CourseOutline) -> None:
    for lesson_id in outline.lesson_ids:
        aggregator.mark_lesson_completed(enrollment, outline, lesson_id, now=NOW)


class TestMarkLessonCompleted:
    """Tests for mark_lesson_completed."""

    def test_three_of_four_then_last(self, enrollment, outline) -> None:
        for lesson_id in outline.lesson_ids[:3]:
            aggregator.mark_lesson_completed(enrollment, outline, lesson_id, now=NOW)

        assert enrollment.completion_percentage == 75
        assert enrollment.status == EnrollmentStatus.ACTIVE.value
        assert enrollment.current_lesson_id == outline.lesson_ids[3]
        assert enrollment.completed_at is None

        aggregator.mark_lesson_completed(
            enrollment, outline, outline.lesson_ids[3], now=NOW
        )

        assert enrollment.completion_percentage == 100
        assert enrollment.status == EnrollmentStatus.COMPLETED.value
        assert enrollment.completed_at == NOW
        assert enrollment.current_lesson_id is None

    def test_idempotent(self, enrollment, outline) -> None:
        lesson_id = outline.lesson_ids[0]
        assert aggregator.mark_lesson_completed(
            enrollment, outline, lesson_id, watch_time_seconds=120, now=NOW
        )

        later = NOW + timedelta(hours=1)
        changed = aggregator.mark_lesson_completed(
            enrollment, outline, lesson_id, watch_time_seconds=999, now=later
        )

        assert changed is False
        assert len(enrollment.completed_lessons) == 1
        assert enrollment.completed_lessons[0].completed_at == NOW
        assert enrollment.total_study_time_seconds == 120
        assert enrollment.last_accessed_at == NOW
        assert enrollment.completion_percentage == 25

    def test_unpublished_lesson_ignored(self, enrollment) -> None:
        outline = CourseOutline(
            course_id=enrollment.course_id, lesson_ids=[uuid4(), uuid4()]
        )
        aggregator.mark_lesson_completed(
            enrollment, outline, outline.lesson_ids[0], now=NOW
        )

        changed = aggregator.mark_lesson_completed(enrollment, outline, uuid4(), now=NOW)

        assert changed is False
        assert len(enrollment.completed_lessons) == 1
        assert enrollment.completion_percentage == 50
        assert enrollment.status == EnrollmentStatus.ACTIVE.value

    def test_records_score_and_watch_time(self, enrollment, outline) -> None:
        aggregator.mark_lesson_completed(
            enrollment,
            outline,
            outline.lesson_ids[1],
            watch_time_seconds=300,
            score=8,
            now=NOW,
        )

        record = enrollment.completed_lessons[0]
        assert record.lesson_id == outline.lesson_ids[1]
        assert record.watch_time_seconds == 300
        assert record.score == 8
        assert enrollment.current_lesson_id == outline.lesson_ids[2]

    def test_completed_at_not_moved(self, enrollment, outline) -> None:
        _complete_all(enrollment, outline)
        extra = uuid4()
        outline.lesson_ids.append(extra)

        aggregator.mark_lesson_completed(
            enrollment, outline, extra, now=NOW + timedelta(days=1)
        )

        assert enrollment.completed_at == NOW
        assert enrollment.status == EnrollmentStatus.COMPLETED.value


class TestRecomputeCompletion:
    """Tests for recompute_completion."""

    def test_no_published_lessons_leaves_percentage(self, enrollment) -> None:
        enrollment.completion_percentage = 40

        assert aggregator.recompute_completion(enrollment, 0) is False
        assert enrollment.completion_percentage == 40

    def test_rounds_half_up(self, enrollment, outline) -> None:
        aggregator.mark_lesson_completed(
            enrollment, outline, outline.lesson_ids[0], now=NOW
        )

        aggregator.recompute_completion(enrollment, 8)

        # 1/8 = 12.5%
        assert enrollment.completion_percentage == 13

    def test_capped_at_100(self, enrollment, outline) -> None:
        _complete_all(enrollment, outline)

        aggregator.recompute_completion(enrollment, 2)

        assert enrollment.completion_percentage == 100

    def test_dropped_enrollment_not_completed(self, enrollment, outline) -> None:
        enrollment.status = EnrollmentStatus.DROPPED.value
        _complete_all(enrollment, outline)

        assert enrollment.completion_percentage == 100
        assert enrollment.status == EnrollmentStatus.DROPPED.value
        assert enrollment.completed_at is None


class TestIssueCertificate:
    """Tests for issue_certificate."""

    def test_not_eligible_before_completion(self, enrollment) -> None:
        result = aggregator.issue_certificate(enrollment, certificate_enabled=True)

        assert result.outcome == CertificateOutcome.NOT_ELIGIBLE
        assert result.certificate_id is None
        assert enrollment.certificate_issued is False

    def test_not_eligible_when_disabled(self, enrollment, outline) -> None:
        _complete_all(enrollment, outline)

        result = aggregator.issue_certificate(enrollment, certificate_enabled=False)

        assert result.outcome == CertificateOutcome.NOT_ELIGIBLE
        assert enrollment.certificate_id is None

    def test_issue_once(self, enrollment, outline) -> None:
        _complete_all(enrollment, outline)

        first = aggregator.issue_certificate(enrollment, True, now=NOW)
        second = aggregator.issue_certificate(
            enrollment, True, now=NOW + timedelta(days=1)
        )

        assert first.issued
        assert first.certificate_id.startswith("CERT-")
        assert second.outcome == CertificateOutcome.ALREADY_ISSUED
        assert second.certificate_id == first.certificate_id
        assert enrollment.certificate_id == first.certificate_id
        assert enrollment.certificate_issued is True

    def test_certificate_id_format(self, enrollment) -> None:
        certificate_id = aggregator.generate_certificate_id(enrollment, NOW)

        prefix, millis, digest = certificate_id.split("-")
        assert prefix == "CERT"
        assert int(millis) == int(NOW.timestamp() * 1000)
        assert len(digest) == 16


class TestChangeStatus:
    """Tests for explicit status changes."""

    @pytest.mark.parametrize(
        "target", [EnrollmentStatus.DROPPED, EnrollmentStatus.SUSPENDED]
    )
    def test_active_can_close(self, enrollment, target) -> None:
        assert aggregator.change_status(enrollment, target, now=NOW) is True
        assert enrollment.status == target.value
        assert enrollment.updated_at == NOW

    def test_same_status_is_noop(self, enrollment) -> None:
        assert aggregator.change_status(enrollment, EnrollmentStatus.ACTIVE) is False

    def test_completed_cannot_be_dropped(self, enrollment, outline) -> None:
        _complete_all(enrollment, outline)

        with pytest.raises(InvalidOperationError):
            aggregator.change_status(enrollment, EnrollmentStatus.DROPPED)

        assert enrollment.status == EnrollmentStatus.COMPLETED.value

    def test_cannot_complete_explicitly(self, enrollment) -> None:
        with pytest.raises(InvalidOperationError):
            aggregator.change_status(enrollment, EnrollmentStatus.COMPLETED)

    def test_reactivation_requires_flag(self, enrollment) -> None:
        enrollment.status = EnrollmentStatus.DROPPED.value

        with pytest.raises(InvalidOperationError):
            aggregator.change_status(enrollment, EnrollmentStatus.ACTIVE)

        assert aggregator.change_status(
            enrollment, EnrollmentStatus.ACTIVE, allow_reactivation=True
        )
        assert enrollment.status == EnrollmentStatus.ACTIVE.value

    def test_dropped_cannot_be_suspended(self, enrollment) -> None:
        enrollment.status = EnrollmentStatus.DROPPED.value

        with pytest.raises(InvalidOperationError):
            aggregator.change_status(enrollment, EnrollmentStatus.SUSPENDED)


class TestCompletionStats:
    def test_stats(self, enrollment, outline) -> None:
        aggregator.mark_lesson_completed(
            enrollment, outline, outline.lesson_ids[0], watch_time_seconds=60, now=NOW
        )
        aggregator.mark_lesson_completed(
            enrollment, outline, outline.lesson_ids[1], watch_time_seconds=40, now=NOW
        )

        stats = aggregator.completion_stats(enrollment, outline.published_lesson_count)

        assert stats.total_lessons == 4
        assert stats.completed_lessons == 2
        assert stats.completion_percentage == 50
        assert stats.total_study_time_seconds == 100
        assert stats.last_accessed_at == NOW

"""Tests for EnrollmentService."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock
from uuid import UUID, uuid4

import pytest
from cassandra.cluster import Session

from learnhub.catalog.models import CatalogCourse, CourseOutline
from learnhub.catalog.service import CatalogService
from learnhub.core.exceptions import (
    CourseNotFoundError,
    EnrollmentNotFoundError,
    InvalidOperationError,
)
from learnhub.enrollments.aggregator import CertificateOutcome
from learnhub.enrollments.models import (
    ENROLLMENT_COLUMNS,
    CompletedLesson,
    CourseEnrollment,
    EnrollmentStatus,
)
from learnhub.enrollments.service import EnrollmentService
from learnhub.utils import utc_now


def _row(enrollment: CourseEnrollment) -> SimpleNamespace:
    return SimpleNamespace(**dict(zip(ENROLLMENT_COLUMNS, enrollment.to_row_values())))


def _result(row=None, was_applied: bool = True) -> Mock:
    result = Mock()
    result.one = Mock(return_value=row)
    result.was_applied = was_applied
    return result


@pytest.fixture
def mock_session():
    """Mock Cassandra session with one distinct statement per prepare call."""
    session = Mock(spec=Session)
    session.prepare = Mock(side_effect=lambda cql: Mock())
    # cassandra-asyncio-driver
    session.aexecute = AsyncMock(return_value=_result())
    return session


@pytest.fixture
def user_id() -> UUID:
    return uuid4()


@pytest.fixture
def outline() -> CourseOutline:
    return CourseOutline(
        course_id=uuid4(),
        lesson_ids=[uuid4(), uuid4()],
        certificate_enabled=True,
    )


@pytest.fixture
def mock_catalog(outline):
    catalog = Mock(spec=CatalogService)
    catalog.get_course_outline = AsyncMock(return_value=outline)
    catalog.get_course = AsyncMock(
        return_value=CatalogCourse(id=outline.course_id, certificate_enabled=True)
    )
    return catalog


@pytest.fixture
def enrollment_service(mock_session, mock_catalog):
    return EnrollmentService(
        session=mock_session, keyspace="test_keyspace", catalog=mock_catalog
    )


class TestEnroll:
    """Tests for create-or-fetch enrollment."""

    @pytest.mark.asyncio
    async def test_new_enrollment_dual_written(
        self, enrollment_service, mock_session, user_id, outline
    ):
        mock_session.aexecute.side_effect = [
            _result(None),
            _result(was_applied=True),
            _result(),
        ]

        enrollment = await enrollment_service.enroll(user_id, outline.course_id)

        assert enrollment.status == EnrollmentStatus.ACTIVE.value
        assert enrollment.completion_percentage == 0
        assert enrollment.current_lesson_id == outline.lesson_ids[0]
        statements = [c.args[0] for c in mock_session.aexecute.await_args_list]
        assert statements[1] is enrollment_service._insert_enrollment
        assert statements[2] is enrollment_service._upsert_enrollment_by_user

    @pytest.mark.asyncio
    async def test_enroll_twice_returns_existing(
        self, enrollment_service, mock_session, mock_catalog, user_id, outline
    ):
        existing = CourseEnrollment(
            course_id=outline.course_id, user_id=user_id, completion_percentage=50
        )
        mock_session.aexecute.side_effect = [_result(_row(existing))]

        enrollment = await enrollment_service.enroll(user_id, outline.course_id)

        assert enrollment.completion_percentage == 50
        mock_catalog.get_course_outline.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_concurrent_enroll_returns_winner(
        self, enrollment_service, mock_session, user_id, outline
    ):
        winner = CourseEnrollment(course_id=outline.course_id, user_id=user_id)
        mock_session.aexecute.side_effect = [
            _result(None),
            _result(was_applied=False),
            _result(_row(winner)),
        ]

        enrollment = await enrollment_service.enroll(user_id, outline.course_id)

        assert enrollment.enrolled_at == winner.enrolled_at
        # The lookup table is only written by the winner
        assert mock_session.aexecute.await_count == 3

    @pytest.mark.asyncio
    async def test_unknown_course(
        self, enrollment_service, mock_session, mock_catalog, user_id
    ):
        mock_session.aexecute.side_effect = [_result(None)]
        mock_catalog.get_course_outline.side_effect = CourseNotFoundError

        with pytest.raises(CourseNotFoundError):
            await enrollment_service.enroll(user_id, uuid4())


class TestRecordLessonCompletion:
    """Tests for the completion roll-up."""

    @pytest.mark.asyncio
    async def test_completion_saved(
        self, enrollment_service, mock_session, user_id, outline
    ):
        stored = CourseEnrollment(course_id=outline.course_id, user_id=user_id)
        mock_session.aexecute.side_effect = [_result(_row(stored)), _result(), _result()]

        enrollment = await enrollment_service.record_lesson_completion(
            user_id, outline.course_id, outline.lesson_ids[0], watch_time_seconds=60
        )

        assert enrollment.completion_percentage == 50
        assert enrollment.total_study_time_seconds == 60
        statements = [c.args[0] for c in mock_session.aexecute.await_args_list]
        assert statements[1] is enrollment_service._upsert_enrollment
        assert statements[2] is enrollment_service._upsert_enrollment_by_user

    @pytest.mark.asyncio
    async def test_duplicate_completion_not_saved(
        self, enrollment_service, mock_session, user_id, outline
    ):
        lesson_id = outline.lesson_ids[0]
        stored = CourseEnrollment(
            course_id=outline.course_id,
            user_id=user_id,
            completed_lessons=[
                CompletedLesson(lesson_id=lesson_id, completed_at=utc_now())
            ],
            completion_percentage=50,
        )
        mock_session.aexecute.side_effect = [_result(_row(stored))]

        enrollment = await enrollment_service.record_lesson_completion(
            user_id, outline.course_id, lesson_id
        )

        assert len(enrollment.completed_lessons) == 1
        assert mock_session.aexecute.await_count == 1

    @pytest.mark.asyncio
    async def test_suspended_enrollment_ignored(
        self, enrollment_service, mock_session, mock_catalog, user_id, outline
    ):
        stored = CourseEnrollment(
            course_id=outline.course_id,
            user_id=user_id,
            status=EnrollmentStatus.SUSPENDED.value,
        )
        mock_session.aexecute.side_effect = [_result(_row(stored))]

        enrollment = await enrollment_service.record_lesson_completion(
            user_id, outline.course_id, outline.lesson_ids[0]
        )

        assert enrollment.completed_lessons == []
        mock_catalog.get_course_outline.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_not_enrolled_returns_none(
        self, enrollment_service, mock_session, user_id
    ):
        mock_session.aexecute.side_effect = [_result(None)]

        assert (
            await enrollment_service.record_lesson_completion(user_id, uuid4(), uuid4())
            is None
        )


class TestStatusAndCertificates:
    @pytest.mark.asyncio
    async def test_drop_missing_enrollment(
        self, enrollment_service, mock_session, user_id
    ):
        mock_session.aexecute.side_effect = [_result(None)]

        with pytest.raises(EnrollmentNotFoundError):
            await enrollment_service.change_status(
                user_id, uuid4(), EnrollmentStatus.DROPPED
            )

    @pytest.mark.asyncio
    async def test_drop_completed_rejected(
        self, enrollment_service, mock_session, user_id, outline
    ):
        stored = CourseEnrollment(
            course_id=outline.course_id,
            user_id=user_id,
            status=EnrollmentStatus.COMPLETED.value,
        )
        mock_session.aexecute.side_effect = [_result(_row(stored))]

        with pytest.raises(InvalidOperationError):
            await enrollment_service.change_status(
                user_id, outline.course_id, EnrollmentStatus.DROPPED
            )

    @pytest.mark.asyncio
    async def test_certificate_issued_and_saved(
        self, enrollment_service, mock_session, user_id, outline
    ):
        stored = CourseEnrollment(
            course_id=outline.course_id,
            user_id=user_id,
            status=EnrollmentStatus.COMPLETED.value,
            completion_percentage=100,
        )
        mock_session.aexecute.side_effect = [_result(_row(stored)), _result(), _result()]

        enrollment, result = await enrollment_service.issue_certificate(
            user_id, outline.course_id
        )

        assert result.outcome == CertificateOutcome.ISSUED
        assert enrollment.certificate_id == result.certificate_id
        assert mock_session.aexecute.await_count == 3

    @pytest.mark.asyncio
    async def test_certificate_not_eligible_not_saved(
        self, enrollment_service, mock_session, user_id, outline
    ):
        stored = CourseEnrollment(course_id=outline.course_id, user_id=user_id)
        mock_session.aexecute.side_effect = [_result(_row(stored))]

        _, result = await enrollment_service.issue_certificate(
            user_id, outline.course_id
        )

        assert result.outcome == CertificateOutcome.NOT_ELIGIBLE
        assert mock_session.aexecute.await_count == 1

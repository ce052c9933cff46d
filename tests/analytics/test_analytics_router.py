"""Tests for analytics endpoints."""

from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest

from learnhub.analytics.rollup import (
    ActivityBucket,
    CourseProgressSummary,
    EnrollmentBreakdown,
    Granularity,
)
from learnhub.analytics.service import AnalyticsService
from learnhub.auth.permissions import UserRole
from learnhub.core.exceptions import CourseNotFoundError


@pytest.fixture
def analytics_service(app):
    service = Mock(spec=AnalyticsService)
    service.default_window_days = 30
    service.learning_activity = AsyncMock(
        return_value=[ActivityBucket(period="2026-03-01", lessons_accessed=2)]
    )
    service.course_summary = AsyncMock()
    service.course_enrollment_stats = AsyncMock(return_value=EnrollmentBreakdown())
    app.state.analytics_service = service
    return service


def test_course_summary(client, auth_headers, analytics_service) -> None:
    course_id = uuid4()
    analytics_service.course_summary.return_value = CourseProgressSummary(
        course_id=course_id, total_lessons=4, completed_lessons=1, completion_percentage=25
    )

    response = client.get(f"/v1/analytics/me/courses/{course_id}", headers=auth_headers())

    assert response.status_code == 200
    assert response.json()["completion_percentage"] == 25


def test_course_summary_unknown_course(client, auth_headers, analytics_service):
    analytics_service.course_summary.side_effect = CourseNotFoundError

    response = client.get(f"/v1/analytics/me/courses/{uuid4()}", headers=auth_headers())

    assert response.status_code == 404


def test_activity(client, auth_headers, analytics_service) -> None:
    response = client.get(
        "/v1/analytics/me/activity",
        params={
            "start": "2026-03-01T00:00:00Z",
            "end": "2026-03-31T00:00:00Z",
            "granularity": "month",
        },
        headers=auth_headers(),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["granularity"] == "month"
    assert data["buckets"][0]["lessons_accessed"] == 2
    kwargs = analytics_service.learning_activity.await_args.kwargs
    assert kwargs["granularity"] == Granularity.MONTH


def test_activity_inverted_range(client, auth_headers, analytics_service) -> None:
    response = client.get(
        "/v1/analytics/me/activity",
        params={"start": "2026-03-31T00:00:00Z", "end": "2026-03-01T00:00:00Z"},
        headers=auth_headers(),
    )

    assert response.status_code == 422
    analytics_service.learning_activity.assert_not_awaited()


def test_enrollment_stats_requires_instructor(
    client, auth_headers, analytics_service
) -> None:
    url = f"/v1/analytics/courses/{uuid4()}/enrollments"

    assert client.get(url, headers=auth_headers()).status_code == 403

    response = client.get(url, headers=auth_headers(role=UserRole.INSTRUCTOR))
    assert response.status_code == 200
    assert response.json()["total_enrollments"] == 0

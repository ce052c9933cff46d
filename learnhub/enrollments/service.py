"""Course enrollment service layer.

Business logic for:
- Enrollment creation (create-or-fetch under the (user, course) uniqueness)
- Lesson completion roll-up into the enrollment
- Explicit status changes and certificate issuance
"""

from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from learnhub.catalog.service import CatalogService
from learnhub.core.exceptions import ConflictError, EnrollmentNotFoundError
from learnhub.utils import utc_now

from . import aggregator
from .aggregator import CertificateResult, CompletionStats
from .models import ENROLLMENT_COLUMNS, CourseEnrollment, EnrollmentStatus


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)


class EnrollmentService:
    """Service for course enrollments."""

    def __init__(self, session: "Session", keyspace: str, catalog: CatalogService):
        """Initialize with Cassandra session and catalog lookups."""
        self.session = session
        self.keyspace = keyspace
        self.catalog = catalog
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        columns = f"({', '.join(ENROLLMENT_COLUMNS)})"
        placeholders = ", ".join("?" * len(ENROLLMENT_COLUMNS))

        self._get_enrollment = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.enrollments
            WHERE course_id = ? AND user_id = ?
        """)

        self._get_course_enrollments = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.enrollments WHERE course_id = ?
        """)

        # Lightweight transaction: the (course_id, user_id) key is the
        # uniqueness constraint for concurrent first enrollments
        self._insert_enrollment = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.enrollments {columns}
            VALUES ({placeholders})
            IF NOT EXISTS
        """)

        self._upsert_enrollment = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.enrollments {columns}
            VALUES ({placeholders})
        """)

        self._get_user_enrollments = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.enrollments_by_user WHERE user_id = ?
        """)

        self._upsert_enrollment_by_user = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.enrollments_by_user
            (user_id, course_id, enrolled_at, status, completion_percentage,
             last_accessed_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """)

    # ==========================================================================
    # Persistence
    # ==========================================================================

    async def _insert_if_absent(self, enrollment: CourseEnrollment) -> None:
        """Insert a new enrollment.

        Raises:
            ConflictError: A row for (course_id, user_id) already exists
        """
        result = await self.session.aexecute(
            self._insert_enrollment, enrollment.to_row_values()
        )
        if not result.was_applied:
            raise ConflictError
        await self._write_lookup(enrollment)

    async def _save(self, enrollment: CourseEnrollment) -> None:
        """Update enrollment in both tables (dual-write)."""
        await self.session.aexecute(
            self._upsert_enrollment, enrollment.to_row_values()
        )
        await self._write_lookup(enrollment)

    async def _write_lookup(self, enrollment: CourseEnrollment) -> None:
        await self.session.aexecute(
            self._upsert_enrollment_by_user,
            [
                enrollment.user_id,
                enrollment.course_id,
                enrollment.enrolled_at,
                enrollment.status,
                enrollment.completion_percentage,
                enrollment.last_accessed_at,
            ],
        )

    # ==========================================================================
    # Queries
    # ==========================================================================

    async def get_enrollment(
        self, user_id: UUID, course_id: UUID
    ) -> CourseEnrollment | None:
        """Get enrollment by user and course."""
        result = await self.session.aexecute(self._get_enrollment, [course_id, user_id])
        row = result.one()
        return CourseEnrollment.from_row(row) if row else None

    async def require_enrollment(
        self, user_id: UUID, course_id: UUID
    ) -> CourseEnrollment:
        """Get enrollment or raise EnrollmentNotFoundError."""
        enrollment = await self.get_enrollment(user_id, course_id)
        if enrollment is None:
            raise EnrollmentNotFoundError
        return enrollment

    async def get_user_enrollments(self, user_id: UUID) -> list[CourseEnrollment]:
        """Get all enrollments of a user (full rows, via the lookup table)."""
        rows = await self.session.aexecute(self._get_user_enrollments, [user_id])
        enrollments = []
        for row in rows:
            enrollment = await self.get_enrollment(user_id, row.course_id)
            if enrollment:
                enrollments.append(enrollment)
        enrollments.sort(key=lambda e: e.enrolled_at, reverse=True)
        return enrollments

    async def get_course_enrollments(
        self,
        course_id: UUID,
        status: EnrollmentStatus | None = None,
    ) -> list[CourseEnrollment]:
        """Get all enrollments of a course, optionally filtered by status."""
        rows = await self.session.aexecute(self._get_course_enrollments, [course_id])
        enrollments = [CourseEnrollment.from_row(row) for row in rows]
        if status is not None:
            enrollments = [e for e in enrollments if e.status == status.value]
        return enrollments

    async def get_completion_stats(
        self, user_id: UUID, course_id: UUID
    ) -> CompletionStats:
        enrollment = await self.require_enrollment(user_id, course_id)
        outline = await self.catalog.get_course_outline(course_id)
        return aggregator.completion_stats(enrollment, outline.published_lesson_count)

    # ==========================================================================
    # Commands
    # ==========================================================================

    async def enroll(self, user_id: UUID, course_id: UUID) -> CourseEnrollment:
        """Enroll user in a course, or return the existing enrollment.

        Concurrent first enrollments race on the lightweight transaction; the
        loser reads and returns the winner's row.

        Raises:
            CourseNotFoundError: If the course does not exist
        """
        existing = await self.get_enrollment(user_id, course_id)
        if existing:
            return existing

        outline = await self.catalog.get_course_outline(course_id)
        now = utc_now()
        enrollment = CourseEnrollment(
            course_id=course_id,
            user_id=user_id,
            status=EnrollmentStatus.ACTIVE.value,
            enrolled_at=now,
            last_accessed_at=now,
            updated_at=now,
            current_lesson_id=outline.lesson_ids[0] if outline.lesson_ids else None,
        )

        try:
            await self._insert_if_absent(enrollment)
        except ConflictError:
            logger.info(
                "enrollment_create_conflict",
                user_id=str(user_id),
                course_id=str(course_id),
            )
            return await self.require_enrollment(user_id, course_id)

        logger.info(
            "user_enrolled",
            user_id=str(user_id),
            course_id=str(course_id),
        )
        return enrollment

    async def record_lesson_completion(
        self,
        user_id: UUID,
        course_id: UUID,
        lesson_id: UUID,
        watch_time_seconds: int = 0,
        score: int | None = None,
    ) -> CourseEnrollment | None:
        """Roll a completed lesson up into the enrollment.

        Safe to call repeatedly for the same lesson. Enrollments that are
        dropped or suspended are left alone.

        Returns:
            The enrollment, or None if the user is not enrolled
        """
        enrollment = await self.get_enrollment(user_id, course_id)
        if enrollment is None or not enrollment.is_tracking:
            return enrollment

        outline = await self.catalog.get_course_outline(course_id)
        changed = aggregator.mark_lesson_completed(
            enrollment,
            outline,
            lesson_id,
            watch_time_seconds=watch_time_seconds,
            score=score,
        )
        if changed:
            await self._save(enrollment)
            logger.info(
                "enrollment_lesson_completed",
                user_id=str(user_id),
                course_id=str(course_id),
                lesson_id=str(lesson_id),
                completion_percentage=enrollment.completion_percentage,
            )
        return enrollment

    async def change_status(
        self,
        user_id: UUID,
        course_id: UUID,
        target: EnrollmentStatus,
        allow_reactivation: bool = False,
    ) -> CourseEnrollment:
        """Apply an explicit status change (drop, suspend, reactivate)."""
        enrollment = await self.require_enrollment(user_id, course_id)
        if aggregator.change_status(
            enrollment, target, allow_reactivation=allow_reactivation
        ):
            await self._save(enrollment)
        return enrollment

    async def issue_certificate(
        self, user_id: UUID, course_id: UUID
    ) -> tuple[CourseEnrollment, CertificateResult]:
        """Issue the course certificate if the enrollment is eligible."""
        enrollment = await self.require_enrollment(user_id, course_id)
        course = await self.catalog.get_course(course_id)
        result = aggregator.issue_certificate(enrollment, course.certificate_enabled)
        if result.issued:
            await self._save(enrollment)
        return enrollment, result

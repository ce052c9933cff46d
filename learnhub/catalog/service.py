"""Read access to the course catalog.

Progress tracking treats the catalog as read-only. ``save_course`` and
``save_lesson`` exist for seeding and administrative tooling.
"""

from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from learnhub.core.exceptions import CourseNotFoundError, LessonNotFoundError
from learnhub.utils import utc_now

from .models import (
    DEFAULT_PASSING_SCORE_PERCENT,
    DEFAULT_REQUIRED_WATCH_PERCENT,
    CatalogCourse,
    CatalogLesson,
    CourseOutline,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)


class CatalogService:
    """Catalog lookups backed by Cassandra."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        default_required_watch_percent: int = DEFAULT_REQUIRED_WATCH_PERCENT,
        default_passing_score_percent: int = DEFAULT_PASSING_SCORE_PERCENT,
    ):
        """Initialize with Cassandra session and completion thresholds."""
        self.session = session
        self.keyspace = keyspace
        self.default_required_watch_percent = default_required_watch_percent
        self.default_passing_score_percent = default_passing_score_percent
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        self._get_course = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.courses WHERE id = ?
        """)

        self._upsert_course = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.courses
            (id, title, certificate_enabled, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?)
        """)

        self._get_lesson = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.lessons WHERE id = ?
        """)

        self._upsert_lesson = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.lessons
            (id, course_id, title, content_type, position, is_published,
             duration_seconds, required_watch_percent, quiz, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._get_course_lessons = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.lessons_by_course WHERE course_id = ?
        """)

        self._upsert_course_lesson = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.lessons_by_course
            (course_id, position, lesson_id, is_published)
            VALUES (?, ?, ?, ?)
        """)

        self._delete_course_lesson = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.lessons_by_course
            WHERE course_id = ? AND position = ? AND lesson_id = ?
        """)

    # ==========================================================================
    # Lookups
    # ==========================================================================

    async def get_course(self, course_id: UUID) -> CatalogCourse:
        """Get a course or raise CourseNotFoundError."""
        result = await self.session.aexecute(self._get_course, [course_id])
        row = result.one()
        if not row:
            raise CourseNotFoundError
        return CatalogCourse.from_row(row)

    async def get_lesson(self, lesson_id: UUID) -> CatalogLesson:
        """Get a lesson or raise LessonNotFoundError."""
        result = await self.session.aexecute(self._get_lesson, [lesson_id])
        row = result.one()
        if not row:
            raise LessonNotFoundError
        return CatalogLesson.from_row(
            row,
            default_required_watch_percent=self.default_required_watch_percent,
            default_passing_score_percent=self.default_passing_score_percent,
        )

    async def get_course_outline(self, course_id: UUID) -> CourseOutline:
        """Published lessons of a course in position order.

        Raises:
            CourseNotFoundError: If the course does not exist
        """
        course = await self.get_course(course_id)
        rows = await self.session.aexecute(self._get_course_lessons, [course_id])
        lesson_ids = [row.lesson_id for row in rows if row.is_published]
        return CourseOutline(
            course_id=course_id,
            lesson_ids=lesson_ids,
            certificate_enabled=course.certificate_enabled,
        )

    # ==========================================================================
    # Seeding / administration
    # ==========================================================================

    async def save_course(self, course: CatalogCourse) -> CatalogCourse:
        """Insert or replace a course."""
        course.updated_at = utc_now()
        await self.session.aexecute(
            self._upsert_course,
            [
                course.id,
                course.title,
                course.certificate_enabled,
                course.created_at,
                course.updated_at,
            ],
        )
        logger.info("catalog_course_saved", course_id=str(course.id))
        return course

    async def save_lesson(self, lesson: CatalogLesson) -> CatalogLesson:
        """Insert or replace a lesson and keep the course ordering in sync."""
        result = await self.session.aexecute(self._get_lesson, [lesson.id])
        previous = result.one()
        if previous and (
            previous.position != lesson.position
            or previous.course_id != lesson.course_id
        ):
            await self.session.aexecute(
                self._delete_course_lesson,
                [previous.course_id, previous.position, lesson.id],
            )

        lesson.updated_at = utc_now()
        await self.session.aexecute(
            self._upsert_lesson,
            [
                lesson.id,
                lesson.course_id,
                lesson.title,
                lesson.content_type,
                lesson.position,
                lesson.is_published,
                lesson.duration_seconds,
                lesson.required_watch_percent,
                lesson.quiz_json(),
                lesson.created_at,
                lesson.updated_at,
            ],
        )
        await self.session.aexecute(
            self._upsert_course_lesson,
            [lesson.course_id, lesson.position, lesson.id, lesson.is_published],
        )

        logger.info(
            "catalog_lesson_saved",
            lesson_id=str(lesson.id),
            course_id=str(lesson.course_id),
            content_type=lesson.content_type,
        )
        return lesson

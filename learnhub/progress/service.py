"""Lesson progress service layer.

Business logic for:
- Lazy creation of lesson progress (create-or-fetch under the
  (user, lesson) uniqueness)
- Watch time, quiz attempts and manual completion through ``tracker``
- Forwarding completion events to the enrollment roll-up
- Bookmarks, notes and player interactions
"""

from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING, TypeVar
from uuid import UUID

import structlog

from learnhub.catalog.models import CatalogLesson
from learnhub.catalog.service import CatalogService
from learnhub.core.exceptions import (
    ConflictError,
    LessonNotFoundError,
    NotEnrolledError,
)
from learnhub.enrollments.models import CourseEnrollment
from learnhub.enrollments.service import EnrollmentService
from learnhub.utils import utc_now

from . import tracker
from .models import (
    LESSON_PROGRESS_COLUMNS,
    Bookmark,
    Interaction,
    InteractionType,
    LessonProgress,
    Note,
    QuizAttempt,
    SubmittedAnswer,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class ProgressService:
    """Service for lesson progress tracking."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        catalog: CatalogService,
        enrollments: EnrollmentService,
        max_interactions: int = tracker.MAX_INTERACTIONS,
    ):
        """Initialize with Cassandra session and collaborating services."""
        self.session = session
        self.keyspace = keyspace
        self.catalog = catalog
        self.enrollments = enrollments
        self.max_interactions = max_interactions
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        columns = f"({', '.join(LESSON_PROGRESS_COLUMNS)})"
        placeholders = ", ".join("?" * len(LESSON_PROGRESS_COLUMNS))

        self._get_lesson_progress = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.lesson_progress
            WHERE user_id = ? AND course_id = ? AND lesson_id = ?
        """)

        self._get_course_lesson_progress = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.lesson_progress
            WHERE user_id = ? AND course_id = ?
        """)

        # Lightweight transaction guards concurrent first access
        self._insert_lesson_progress = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.lesson_progress {columns}
            VALUES ({placeholders})
            IF NOT EXISTS
        """)

        self._upsert_lesson_progress = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.lesson_progress {columns}
            VALUES ({placeholders})
        """)

    # ==========================================================================
    # Persistence
    # ==========================================================================

    async def _insert_if_absent(self, progress: LessonProgress) -> None:
        """Insert new progress.

        Raises:
            ConflictError: A row for (user, course, lesson) already exists
        """
        result = await self.session.aexecute(
            self._insert_lesson_progress, progress.to_row_values()
        )
        if not result.was_applied:
            raise ConflictError

    async def _save(self, progress: LessonProgress) -> None:
        await self.session.aexecute(
            self._upsert_lesson_progress, progress.to_row_values()
        )

    async def get_lesson_progress(
        self,
        user_id: UUID,
        course_id: UUID,
        lesson_id: UUID,
    ) -> LessonProgress | None:
        """Get stored progress for a lesson, without creating it."""
        result = await self.session.aexecute(
            self._get_lesson_progress,
            [user_id, course_id, lesson_id],
        )
        row = result.one()
        return LessonProgress.from_row(row) if row else None

    async def get_course_progress_records(
        self,
        user_id: UUID,
        course_id: UUID,
    ) -> list[LessonProgress]:
        """Get all stored lesson progress of a user in a course."""
        rows = await self.session.aexecute(
            self._get_course_lesson_progress,
            [user_id, course_id],
        )
        return [LessonProgress.from_row(row) for row in rows]

    async def get_or_create_progress(
        self,
        user_id: UUID,
        lesson: CatalogLesson,
    ) -> LessonProgress:
        """Return the user's progress for a lesson, creating it on first access.

        Two first accesses racing each other both try the conditional insert;
        the loser reads back the winner's row.
        """
        existing = await self.get_lesson_progress(user_id, lesson.course_id, lesson.id)
        if existing:
            return existing

        now = utc_now()
        progress = LessonProgress(
            user_id=user_id,
            course_id=lesson.course_id,
            lesson_id=lesson.id,
            last_accessed_at=now,
            updated_at=now,
        )

        try:
            await self._insert_if_absent(progress)
        except ConflictError:
            logger.info(
                "lesson_progress_create_conflict",
                user_id=str(user_id),
                lesson_id=str(lesson.id),
            )
            stored = await self.get_lesson_progress(
                user_id, lesson.course_id, lesson.id
            )
            if stored is None:
                raise
            return stored

        logger.info(
            "lesson_progress_created",
            user_id=str(user_id),
            lesson_id=str(lesson.id),
        )
        return progress

    # ==========================================================================
    # Access
    # ==========================================================================

    async def _open(
        self, user_id: UUID, lesson_id: UUID
    ) -> tuple[CatalogLesson, CourseEnrollment, LessonProgress]:
        """Load the lesson, the caller's enrollment and progress on it.

        Raises:
            LessonNotFoundError: If the lesson does not exist or is unpublished
            NotEnrolledError: If the user has no active or completed enrollment
        """
        lesson = await self.catalog.get_lesson(lesson_id)
        if not lesson.is_published:
            raise LessonNotFoundError
        enrollment = await self.enrollments.get_enrollment(user_id, lesson.course_id)
        if enrollment is None or not enrollment.is_tracking:
            raise NotEnrolledError
        progress = await self.get_or_create_progress(user_id, lesson)
        return lesson, enrollment, progress

    async def _apply(
        self,
        user_id: UUID,
        lesson_id: UUID,
        change: Callable[[CatalogLesson, LessonProgress], T],
    ) -> tuple[LessonProgress, T]:
        """Apply a tracker change, persist it and roll up the completion.

        A completed lesson the enrollment has not recorded yet is forwarded
        on every call, so a roll-up that failed earlier is retried.
        """
        lesson, enrollment, progress = await self._open(user_id, lesson_id)

        outcome = change(lesson, progress)
        await self._save(progress)

        if progress.is_completed and not enrollment.has_completed_lesson(lesson.id):
            await self.enrollments.record_lesson_completion(
                user_id=user_id,
                course_id=lesson.course_id,
                lesson_id=lesson.id,
                watch_time_seconds=progress.total_watch_time_seconds,
                score=progress.highest_score if lesson.is_quiz else None,
            )
        return progress, outcome

    async def get_progress(self, user_id: UUID, lesson_id: UUID) -> LessonProgress:
        """Get the caller's progress on a lesson (created on first access)."""
        _, _, progress = await self._open(user_id, lesson_id)
        return progress

    # ==========================================================================
    # Recording
    # ==========================================================================

    async def record_watch_time(
        self,
        user_id: UUID,
        lesson_id: UUID,
        position_seconds: float,
        watched_seconds: float | None = None,
    ) -> LessonProgress:
        """Record a watch-time beacon (sent every few seconds by the player)."""
        progress, _ = await self._apply(
            user_id,
            lesson_id,
            lambda lesson, p: tracker.record_watch_time(
                p, lesson, position_seconds, watched_seconds
            ),
        )
        return progress

    async def record_quiz_attempt(
        self,
        user_id: UUID,
        lesson_id: UUID,
        answers: list[SubmittedAnswer],
        time_spent_seconds: int = 0,
        started_at: datetime | None = None,
    ) -> tuple[LessonProgress, QuizAttempt]:
        """Grade and store a quiz submission."""
        return await self._apply(
            user_id,
            lesson_id,
            lambda lesson, p: tracker.record_quiz_attempt(
                p, lesson, answers, time_spent_seconds, started_at=started_at
            ),
        )

    async def mark_lesson_complete(
        self, user_id: UUID, lesson_id: UUID
    ) -> LessonProgress:
        """Manually complete a text, assignment or live lesson."""
        progress, _ = await self._apply(
            user_id,
            lesson_id,
            lambda lesson, p: tracker.mark_lesson_complete(p, lesson),
        )
        return progress

    # ==========================================================================
    # Bookmarks, Notes, Interactions
    # ==========================================================================

    async def add_bookmark(
        self,
        user_id: UUID,
        lesson_id: UUID,
        timestamp_seconds: int,
        note: str = "",
    ) -> Bookmark:
        _, bookmark = await self._apply(
            user_id,
            lesson_id,
            lambda _, p: tracker.add_bookmark(p, timestamp_seconds, note),
        )
        return bookmark

    async def remove_bookmark(
        self, user_id: UUID, lesson_id: UUID, bookmark_id: UUID
    ) -> None:
        await self._apply(
            user_id,
            lesson_id,
            lambda _, p: tracker.remove_bookmark(p, bookmark_id),
        )

    async def add_note(
        self,
        user_id: UUID,
        lesson_id: UUID,
        content: str,
        timestamp_seconds: int | None = None,
        is_private: bool = True,
    ) -> Note:
        _, note = await self._apply(
            user_id,
            lesson_id,
            lambda _, p: tracker.add_note(p, content, timestamp_seconds, is_private),
        )
        return note

    async def update_note(
        self,
        user_id: UUID,
        lesson_id: UUID,
        note_id: UUID,
        content: str,
    ) -> Note:
        _, note = await self._apply(
            user_id,
            lesson_id,
            lambda _, p: tracker.update_note(p, note_id, content),
        )
        return note

    async def record_interaction(
        self,
        user_id: UUID,
        lesson_id: UUID,
        interaction_type: InteractionType,
        timestamp_seconds: float | None = None,
        value: str | None = None,
    ) -> Interaction:
        _, interaction = await self._apply(
            user_id,
            lesson_id,
            lambda _, p: tracker.record_interaction(
                p,
                interaction_type,
                timestamp_seconds,
                value,
                limit=self.max_interactions,
            ),
        )
        return interaction

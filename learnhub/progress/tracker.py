"""Lesson progress state transitions.

Pure functions over ``LessonProgress``: they mutate the entity passed in and
never touch storage. Recording operations are monotonic so duplicate or late
client reports are harmless:

- watch time is a high-water mark, completion never goes down
- ``completed_at`` is written once
- quiz attempts are append-only and a pass is final
"""

from datetime import datetime
from uuid import UUID

import structlog

from learnhub.catalog.models import CatalogLesson, QuizDefinition
from learnhub.core.exceptions import (
    InvalidOperationError,
    NotFoundError,
    ValidationError,
)
from learnhub.utils import percent_of, utc_now

from .models import (
    Bookmark,
    GradedAnswer,
    Interaction,
    InteractionType,
    LessonProgress,
    LessonProgressStatus,
    Note,
    QuizAttempt,
    SubmittedAnswer,
)


logger = structlog.get_logger(__name__)

MAX_INTERACTIONS = 100

# A failed quiz never reports the lesson as fully done
_FAILED_QUIZ_MAX_PERCENT = 99


def _touch(progress: LessonProgress, now: datetime) -> None:
    progress.last_accessed_at = now
    progress.updated_at = now


def _start(progress: LessonProgress, now: datetime) -> None:
    if progress.started_at is None:
        progress.started_at = now
    if progress.status == LessonProgressStatus.NOT_STARTED.value:
        progress.status = LessonProgressStatus.IN_PROGRESS.value


def _complete(progress: LessonProgress, now: datetime) -> None:
    if progress.started_at is None:
        progress.started_at = now
    progress.status = LessonProgressStatus.COMPLETED.value
    if progress.completed_at is None:
        progress.completed_at = now


# ==============================================================================
# Watch Time
# ==============================================================================


def record_watch_time(
    progress: LessonProgress,
    lesson: CatalogLesson,
    position_seconds: float,
    watched_seconds: float | None = None,
    now: datetime | None = None,
) -> LessonProgress:
    """Record a watch-time report.

    Args:
        progress: Lesson progress to update
        lesson: Catalog lesson
        position_seconds: Furthest playback position reported by the client
        watched_seconds: Time watched since the previous report. When omitted,
            the advance of the high-water mark is used.
        now: Clock override

    Returns:
        The updated progress

    Raises:
        ValidationError: On negative values
    """
    if position_seconds < 0 or (watched_seconds is not None and watched_seconds < 0):
        msg = "Watch time values must not be negative"
        raise ValidationError(msg)

    now = now or utc_now()
    previous_mark = progress.watch_time_seconds

    progress.watch_time_seconds = max(previous_mark, int(position_seconds))
    delta = (
        progress.watch_time_seconds - previous_mark
        if watched_seconds is None
        else int(watched_seconds)
    )
    # The accumulator can never trail the furthest position reached
    progress.total_watch_time_seconds = max(
        progress.total_watch_time_seconds + delta,
        progress.watch_time_seconds,
    )
    _touch(progress, now)

    if not lesson.is_video:
        return progress

    if not lesson.duration_seconds:
        logger.warning("lesson_duration_missing", lesson_id=str(lesson.id))
        return progress

    percentage = min(100, percent_of(progress.watch_time_seconds, lesson.duration_seconds))
    progress.completion_percentage = max(progress.completion_percentage, percentage)

    if (
        progress.completion_percentage >= lesson.required_watch_percent
        and not progress.is_completed
    ):
        _complete(progress, now)
        logger.info(
            "lesson_auto_completed",
            user_id=str(progress.user_id),
            lesson_id=str(progress.lesson_id),
            completion_percentage=progress.completion_percentage,
        )
    elif progress.completion_percentage > 0:
        _start(progress, now)

    return progress


# ==============================================================================
# Quizzes
# ==============================================================================


def grade_answers(
    quiz: QuizDefinition,
    submitted_answers: list[SubmittedAnswer],
) -> list[GradedAnswer]:
    """Grade submitted answers against the quiz answer key.

    Every question of the quiz gets one graded entry; unanswered questions score
    zero.

    Raises:
        ValidationError: On answers to unknown questions or duplicated answers
    """
    by_question: dict[str, SubmittedAnswer] = {}
    for submitted in submitted_answers:
        if submitted.question_id in by_question:
            msg = f"Question {submitted.question_id} answered more than once"
            raise ValidationError(msg)
        if quiz.question(submitted.question_id) is None:
            msg = f"Unknown question {submitted.question_id}"
            raise ValidationError(msg)
        by_question[submitted.question_id] = submitted

    graded = []
    for question in quiz.questions:
        submitted = by_question.get(question.id)
        is_correct = submitted is not None and question.correct_answer.matches(
            submitted.answer
        )
        graded.append(
            GradedAnswer(
                question_id=question.id,
                answer=submitted.answer if submitted else None,
                is_correct=is_correct,
                points=question.effective_points if is_correct else 0,
            )
        )
    return graded


def record_quiz_attempt(
    progress: LessonProgress,
    lesson: CatalogLesson,
    submitted_answers: list[SubmittedAnswer],
    time_spent_seconds: int = 0,
    started_at: datetime | None = None,
    now: datetime | None = None,
) -> QuizAttempt:
    """Grade a quiz submission and append it as a new attempt.

    Returns:
        The recorded attempt

    Raises:
        InvalidOperationError: Lesson is not a quiz, or attempts are exhausted
        ValidationError: Malformed answers or a quiz without points
    """
    if not lesson.is_quiz or lesson.quiz is None:
        msg = f"Quiz attempts do not apply to {lesson.content_type} lessons"
        raise InvalidOperationError(msg)

    quiz = lesson.quiz
    if quiz.total_points <= 0:
        msg = "Quiz has no scorable questions"
        raise ValidationError(msg)
    if time_spent_seconds < 0:
        msg = "time_spent_seconds must not be negative"
        raise ValidationError(msg)
    if quiz.max_attempts is not None and len(progress.quiz_attempts) >= quiz.max_attempts:
        msg = f"Maximum of {quiz.max_attempts} quiz attempts reached"
        raise InvalidOperationError(msg)

    now = now or utc_now()
    graded = grade_answers(quiz, submitted_answers)
    score = sum(answer.points for answer in graded)
    percentage = percent_of(score, quiz.total_points)

    attempt = QuizAttempt(
        attempt_number=len(progress.quiz_attempts) + 1,
        answers=graded,
        score=score,
        percentage=percentage,
        passed=percentage >= quiz.passing_score_percent,
        time_spent_seconds=time_spent_seconds,
        started_at=started_at,
        completed_at=now,
    )
    progress.quiz_attempts.append(attempt)

    if progress.best_attempt_number is None or score > progress.highest_score:
        progress.highest_score = score
        progress.best_attempt_number = attempt.attempt_number

    progress.passed = progress.passed or attempt.passed
    _touch(progress, now)

    if attempt.passed:
        _complete(progress, now)
        progress.completion_percentage = 100
    elif not progress.is_completed:
        _start(progress, now)
        progress.completion_percentage = max(
            progress.completion_percentage,
            min(percentage, _FAILED_QUIZ_MAX_PERCENT),
        )

    logger.info(
        "quiz_attempt_recorded",
        user_id=str(progress.user_id),
        lesson_id=str(progress.lesson_id),
        attempt_number=attempt.attempt_number,
        score=score,
        percentage=percentage,
        passed=attempt.passed,
    )
    return attempt


# ==============================================================================
# Manual Completion
# ==============================================================================


def mark_lesson_complete(
    progress: LessonProgress,
    lesson: CatalogLesson,
    now: datetime | None = None,
) -> LessonProgress:
    """Complete a text, assignment or live lesson on the learner's request.

    Video lessons complete through watch time and quizzes through a passing
    attempt, so both are rejected here.
    """
    if not lesson.is_manually_completable:
        msg = f"{lesson.content_type} lessons cannot be completed manually"
        raise InvalidOperationError(msg)

    now = now or utc_now()
    _touch(progress, now)
    if not progress.is_completed:
        _complete(progress, now)
        progress.completion_percentage = 100
        logger.info(
            "lesson_marked_complete",
            user_id=str(progress.user_id),
            lesson_id=str(progress.lesson_id),
        )
    return progress


# ==============================================================================
# Bookmarks, Notes, Interactions
# ==============================================================================


def add_bookmark(
    progress: LessonProgress,
    timestamp_seconds: int,
    note: str = "",
    now: datetime | None = None,
) -> Bookmark:
    now = now or utc_now()
    if timestamp_seconds < 0:
        msg = "Bookmark timestamp must not be negative"
        raise ValidationError(msg)
    bookmark = Bookmark(timestamp_seconds=timestamp_seconds, note=note, created_at=now)
    progress.bookmarks.append(bookmark)
    _touch(progress, now)
    return bookmark


def remove_bookmark(
    progress: LessonProgress,
    bookmark_id: UUID,
    now: datetime | None = None,
) -> None:
    remaining = [b for b in progress.bookmarks if b.id != bookmark_id]
    if len(remaining) == len(progress.bookmarks):
        msg = "Bookmark not found"
        raise NotFoundError(msg)
    progress.bookmarks = remaining
    _touch(progress, now or utc_now())


def add_note(
    progress: LessonProgress,
    content: str,
    timestamp_seconds: int | None = None,
    is_private: bool = True,
    now: datetime | None = None,
) -> Note:
    if not content.strip():
        msg = "Note content is required"
        raise ValidationError(msg)
    now = now or utc_now()
    note = Note(
        content=content,
        timestamp_seconds=timestamp_seconds,
        is_private=is_private,
        created_at=now,
    )
    progress.notes.append(note)
    _touch(progress, now)
    return note


def update_note(
    progress: LessonProgress,
    note_id: UUID,
    content: str,
    now: datetime | None = None,
) -> Note:
    if not content.strip():
        msg = "Note content is required"
        raise ValidationError(msg)
    for index, note in enumerate(progress.notes):
        if note.id == note_id:
            now = now or utc_now()
            updated = note.model_copy(update={"content": content, "updated_at": now})
            progress.notes[index] = updated
            _touch(progress, now)
            return updated
    msg = "Note not found"
    raise NotFoundError(msg)


def record_interaction(
    progress: LessonProgress,
    interaction_type: InteractionType,
    timestamp_seconds: float | None = None,
    value: str | None = None,
    limit: int = MAX_INTERACTIONS,
    now: datetime | None = None,
) -> Interaction:
    """Append a player interaction, keeping only the most recent ``limit``."""
    now = now or utc_now()
    interaction = Interaction(
        type=interaction_type,
        timestamp_seconds=timestamp_seconds,
        value=value,
        created_at=now,
    )
    progress.interactions.append(interaction)
    if len(progress.interactions) > limit:
        progress.interactions = progress.interactions[-limit:]
    _touch(progress, now)
    return interaction

"""Lesson progress API endpoints.

Provides routes for:
- Watch-time beacons (throttled from the player)
- Quiz submissions
- Manual lesson completion
- Bookmarks, notes and player interactions
"""

from uuid import UUID

from fastapi import APIRouter, status

from learnhub.auth.dependencies import CurrentUser
from learnhub.core.exceptions import LearnHubError

from .dependencies import ProgressServiceDep, handle_progress_error
from .models import Bookmark, Interaction, Note
from .schemas import (
    CreateBookmarkRequest,
    CreateNoteRequest,
    LessonProgressResponse,
    QuizAttemptResponse,
    QuizSubmissionRequest,
    QuizSubmissionResponse,
    RecordInteractionRequest,
    RecordWatchTimeRequest,
    UpdateNoteRequest,
)


router = APIRouter(prefix="/v1/progress", tags=["progress"])


# ==============================================================================
# Progress Query Endpoints
# ==============================================================================


@router.get(
    "/lessons/{lesson_id}",
    response_model=LessonProgressResponse,
    summary="Get lesson progress",
)
async def get_lesson_progress(
    lesson_id: UUID,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> LessonProgressResponse:
    """Get the caller's progress on a lesson.

    Used on lesson load to determine the resume position. The progress record
    is created on first access.
    """
    try:
        progress = await progress_service.get_progress(user.id, lesson_id)
        return LessonProgressResponse.from_entity(progress)
    except LearnHubError as e:
        raise handle_progress_error(e) from e


# ==============================================================================
# Recording Endpoints
# ==============================================================================


@router.put(
    "/lessons/{lesson_id}/watch-time",
    response_model=LessonProgressResponse,
    summary="Record watch time",
)
async def record_watch_time(
    lesson_id: UUID,
    data: RecordWatchTimeRequest,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> LessonProgressResponse:
    """Record a watch-time beacon.

    Called from the player every few seconds during playback. Video lessons
    complete once the required share of the video has been watched.
    """
    try:
        progress = await progress_service.record_watch_time(
            user_id=user.id,
            lesson_id=lesson_id,
            position_seconds=data.position_seconds,
            watched_seconds=data.watched_seconds,
        )
        return LessonProgressResponse.from_entity(progress)
    except LearnHubError as e:
        raise handle_progress_error(e) from e


@router.post(
    "/lessons/{lesson_id}/quiz-attempts",
    response_model=QuizSubmissionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit quiz answers",
)
async def submit_quiz(
    lesson_id: UUID,
    data: QuizSubmissionRequest,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> QuizSubmissionResponse:
    """Grade a quiz submission and store it as a new attempt."""
    try:
        progress, attempt = await progress_service.record_quiz_attempt(
            user_id=user.id,
            lesson_id=lesson_id,
            answers=data.answers,
            time_spent_seconds=data.time_spent_seconds,
            started_at=data.started_at,
        )
    except LearnHubError as e:
        raise handle_progress_error(e) from e

    return QuizSubmissionResponse(
        attempt=QuizAttemptResponse.from_attempt(attempt),
        progress=LessonProgressResponse.from_entity(progress),
    )


@router.post(
    "/lessons/{lesson_id}/complete",
    response_model=LessonProgressResponse,
    summary="Mark lesson as complete",
)
async def mark_lesson_complete(
    lesson_id: UUID,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> LessonProgressResponse:
    """Manually mark a text, assignment or live lesson as complete."""
    try:
        progress = await progress_service.mark_lesson_complete(user.id, lesson_id)
        return LessonProgressResponse.from_entity(progress)
    except LearnHubError as e:
        raise handle_progress_error(e) from e


# ==============================================================================
# Bookmark and Note Endpoints
# ==============================================================================


@router.post(
    "/lessons/{lesson_id}/bookmarks",
    response_model=Bookmark,
    status_code=status.HTTP_201_CREATED,
    summary="Add bookmark",
)
async def add_bookmark(
    lesson_id: UUID,
    data: CreateBookmarkRequest,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> Bookmark:
    try:
        return await progress_service.add_bookmark(
            user.id, lesson_id, data.timestamp_seconds, data.note
        )
    except LearnHubError as e:
        raise handle_progress_error(e) from e


@router.delete(
    "/lessons/{lesson_id}/bookmarks/{bookmark_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove bookmark",
)
async def remove_bookmark(
    lesson_id: UUID,
    bookmark_id: UUID,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> None:
    try:
        await progress_service.remove_bookmark(user.id, lesson_id, bookmark_id)
    except LearnHubError as e:
        raise handle_progress_error(e) from e


@router.post(
    "/lessons/{lesson_id}/notes",
    response_model=Note,
    status_code=status.HTTP_201_CREATED,
    summary="Add note",
)
async def add_note(
    lesson_id: UUID,
    data: CreateNoteRequest,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> Note:
    try:
        return await progress_service.add_note(
            user.id,
            lesson_id,
            data.content,
            timestamp_seconds=data.timestamp_seconds,
            is_private=data.is_private,
        )
    except LearnHubError as e:
        raise handle_progress_error(e) from e


@router.patch(
    "/lessons/{lesson_id}/notes/{note_id}",
    response_model=Note,
    summary="Update note",
)
async def update_note(
    lesson_id: UUID,
    note_id: UUID,
    data: UpdateNoteRequest,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> Note:
    try:
        return await progress_service.update_note(
            user.id, lesson_id, note_id, data.content
        )
    except LearnHubError as e:
        raise handle_progress_error(e) from e


@router.post(
    "/lessons/{lesson_id}/interactions",
    response_model=Interaction,
    status_code=status.HTTP_201_CREATED,
    summary="Record player interaction",
)
async def record_interaction(
    lesson_id: UUID,
    data: RecordInteractionRequest,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> Interaction:
    try:
        return await progress_service.record_interaction(
            user.id,
            lesson_id,
            data.type,
            timestamp_seconds=data.timestamp_seconds,
            value=data.value,
        )
    except LearnHubError as e:
        raise handle_progress_error(e) from e

"""Lesson progress tracking module.

Provides:
- Watch time tracking with high-water mark resume position
- Quiz grading with attempt history
- Lesson completion (automatic and manual)
- Bookmarks, notes and player interactions
"""

from .models import (
    PROGRESS_TABLES_CQL,
    Bookmark,
    InteractionType,
    LessonProgress,
    LessonProgressStatus,
    Note,
    QuizAttempt,
    SubmittedAnswer,
)


__all__ = [
    "PROGRESS_TABLES_CQL",
    "Bookmark",
    "InteractionType",
    "LessonProgress",
    "LessonProgressStatus",
    "Note",
    "QuizAttempt",
    "SubmittedAnswer",
]

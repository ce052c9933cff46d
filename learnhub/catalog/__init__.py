"""Course catalog (read-only for progress tracking).

Provides:
- Lesson, course and quiz definitions
- Course outlines (published lessons in order)
"""

from .models import (
    CATALOG_TABLES_CQL,
    AnswerKind,
    AnswerValue,
    CatalogCourse,
    CatalogLesson,
    ContentType,
    CourseOutline,
    QuizDefinition,
    QuizQuestion,
)


__all__ = [
    "CATALOG_TABLES_CQL",
    "AnswerKind",
    "AnswerValue",
    "CatalogCourse",
    "CatalogLesson",
    "ContentType",
    "CourseOutline",
    "QuizDefinition",
    "QuizQuestion",
]

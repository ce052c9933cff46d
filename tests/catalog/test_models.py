"""Tests for catalog models."""

from types import SimpleNamespace
from uuid import uuid4

import orjson
import pytest
from pydantic import ValidationError

from learnhub.catalog.models import (
    AnswerKind,
    AnswerValue,
    CatalogLesson,
    CourseOutline,
    QuizDefinition,
    QuizQuestion,
)


def _lesson_row(**overrides) -> SimpleNamespace:
    values = {
        "id": uuid4(),
        "course_id": uuid4(),
        "title": "Lesson",
        "content_type": "video",
        "position": 1,
        "is_published": True,
        "duration_seconds": 300,
        "required_watch_percent": None,
        "quiz": None,
        "created_at": None,
        "updated_at": None,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


class TestAnswerValue:
    def test_single_matches_same_value(self) -> None:
        assert AnswerValue.single("b").matches(AnswerValue.single("b"))
        assert not AnswerValue.single("b").matches(AnswerValue.single("c"))

    def test_multiple_ignores_order_and_repetition(self) -> None:
        expected = AnswerValue.multiple(["a", "c"])

        assert expected.matches(AnswerValue.multiple(["c", "a"]))
        assert expected.matches(AnswerValue.multiple(["a", "c", "a"]))
        assert not expected.matches(AnswerValue.multiple(["a"]))

    def test_kinds_never_match(self) -> None:
        assert not AnswerValue.single("a").matches(AnswerValue.multiple(["a"]))

    def test_bool_is_not_int(self) -> None:
        assert not AnswerValue.single(True).matches(AnswerValue.single(1))
        assert not AnswerValue.multiple([0]).matches(AnswerValue.multiple([False]))

    def test_single_requires_one_value(self) -> None:
        with pytest.raises(ValidationError):
            AnswerValue(kind=AnswerKind.SINGLE, values=["a", "b"])

    def test_empty_values_rejected(self) -> None:
        with pytest.raises(ValidationError):
            AnswerValue(kind=AnswerKind.MULTIPLE, values=[])


class TestQuizDefinition:
    def test_total_points_defaults_unset_to_one(self) -> None:
        quiz = QuizDefinition(
            questions=[
                QuizQuestion(id="a", points=3, correct_answer=AnswerValue.single(1)),
                QuizQuestion(id="b", correct_answer=AnswerValue.single(2)),
            ]
        )

        assert quiz.total_points == 4
        assert quiz.passing_score_percent == 70

    def test_question_lookup(self) -> None:
        question = QuizQuestion(id="a", correct_answer=AnswerValue.single(1))
        quiz = QuizDefinition(questions=[question])

        assert quiz.question("a") is question
        assert quiz.question("missing") is None


class TestCatalogLessonFromRow:
    def test_defaults_applied(self) -> None:
        quiz = {"questions": [], "passing_score_percent": None}
        lesson = CatalogLesson.from_row(
            _lesson_row(content_type="quiz", quiz=orjson.dumps(quiz).decode()),
            default_required_watch_percent=90,
            default_passing_score_percent=60,
        )

        assert lesson.required_watch_percent == 90
        assert lesson.quiz.passing_score_percent == 60
        assert lesson.is_quiz

    def test_row_values_win(self) -> None:
        lesson = CatalogLesson.from_row(
            _lesson_row(required_watch_percent=50),
            default_required_watch_percent=90,
        )

        assert lesson.required_watch_percent == 50
        assert lesson.quiz is None
        assert lesson.is_video

    def test_quiz_json_round_trip(self) -> None:
        quiz = QuizDefinition(
            questions=[
                QuizQuestion(
                    id="q", points=2, correct_answer=AnswerValue.multiple(["x", "y"])
                )
            ],
            passing_score_percent=80,
        )
        lesson = CatalogLesson(course_id=uuid4(), content_type="quiz", quiz=quiz)

        restored = CatalogLesson.from_row(
            _lesson_row(content_type="quiz", quiz=lesson.quiz_json())
        )

        assert restored.quiz == quiz


class TestCourseOutline:
    def test_next_lesson_after(self) -> None:
        lessons = [uuid4(), uuid4(), uuid4()]
        outline = CourseOutline(course_id=uuid4(), lesson_ids=lessons)

        assert outline.next_lesson_after(lessons[0]) == lessons[1]
        assert outline.next_lesson_after(lessons[2]) is None
        assert outline.next_lesson_after(uuid4()) is None
        assert outline.published_lesson_count == 3
        assert lessons[1] in outline

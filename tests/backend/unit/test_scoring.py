import pytest

from quizroom.backend.errors import QuestionNotFound
from quizroom.backend.models import IndexAnswer, LiteralAnswer, Question
from quizroom.backend.scoring import question_at, score_answer


def _question(correct) -> Question:
    return Question(
        id="q1",
        text="Which colour?",
        options=("red", "green", "blue"),
        correct_answer=correct,
        time_limit_seconds=30,
    )


def test_index_answer_accepts_matching_index() -> None:
    result = score_answer(_question(IndexAnswer(1)), 1)

    assert result.is_correct is True
    assert result.points == 1


def test_index_answer_resolves_option_text() -> None:
    question = _question(IndexAnswer(1))

    assert score_answer(question, "green").is_correct is True
    assert score_answer(question, "blue").is_correct is False


def test_index_answer_treats_unknown_option_as_wrong() -> None:
    result = score_answer(_question(IndexAnswer(1)), "purple")

    assert result.is_correct is False
    assert result.points == 0


def test_index_answer_never_reads_bool_as_index() -> None:
    assert score_answer(_question(IndexAnswer(1)), True).is_correct is False


def test_literal_answer_requires_exact_text() -> None:
    question = _question(LiteralAnswer("blue"))

    assert score_answer(question, "blue").points == 1
    assert score_answer(question, "Blue").points == 0
    assert score_answer(question, 2).points == 0


def test_question_at_rejects_missing_index() -> None:
    questions = [_question(IndexAnswer(0))]

    assert question_at(questions, 0) is questions[0]
    with pytest.raises(QuestionNotFound):
        question_at(questions, 1)
    with pytest.raises(QuestionNotFound):
        question_at(questions, -1)

"""Scoring rule for submitted answers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from .errors import QuestionNotFound
from .models import IndexAnswer, LiteralAnswer, Question, SubmittedValue

POINTS_PER_CORRECT_ANSWER = 1


@dataclass(frozen=True)
class ScoreResult:
    is_correct: bool
    points: int


def question_at(questions: Sequence[Question], question_index: int) -> Question:
    """Return the question at ``question_index`` or raise QuestionNotFound."""
    if isinstance(question_index, bool) or not 0 <= question_index < len(questions):
        raise QuestionNotFound(f"question {question_index} does not exist")
    return questions[question_index]


def is_correct_answer(question: Question, submitted_value: SubmittedValue) -> bool:
    correct = question.correct_answer
    if isinstance(correct, IndexAnswer):
        if isinstance(submitted_value, bool):
            return False
        if isinstance(submitted_value, int):
            return submitted_value == correct.index
        if isinstance(submitted_value, str):
            # an option text that is not offered is wrong, not an error
            try:
                return question.options.index(submitted_value) == correct.index
            except ValueError:
                return False
        return False
    if isinstance(correct, LiteralAnswer):
        return isinstance(submitted_value, str) and submitted_value == correct.text
    return False


def score_answer(question: Question, submitted_value: SubmittedValue) -> ScoreResult:
    """Flat scoring: one point for a correct answer, none otherwise.

    Time spent is recorded by the caller for analytics and never affects the
    points.
    """
    is_correct = is_correct_answer(question, submitted_value)
    return ScoreResult(is_correct=is_correct, points=POINTS_PER_CORRECT_ANSWER if is_correct else 0)

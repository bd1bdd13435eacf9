import pytest

from quizroom.backend.errors import InvalidQuizConfig
from quizroom.backend.quiz_config import QuizConfigService
from quizroom.backend.state import QUIZ_CONFIG_KEY


@pytest.fixture()
def quiz_config(store, locks, clock) -> QuizConfigService:
    return QuizConfigService(store=store, locks=locks, clock=clock)


def test_get_config_defaults_when_nothing_saved(quiz_config) -> None:
    config = quiz_config.get_config()

    assert config.selected_questions == ()
    assert config.last_updated is None
    assert config.min_questions == 7
    assert config.is_valid is False


def test_save_config_keeps_short_selection_but_marks_it_invalid(quiz_config, store, clock) -> None:
    config = quiz_config.save_config(["q1", "q2"])

    assert config.is_valid is False
    assert config.last_updated == clock.now
    assert store.read(QUIZ_CONFIG_KEY) == [
        {"selectedQuestions": ["q1", "q2"], "lastUpdated": clock.now, "minQuestions": 7, "isValid": False}
    ]


def test_save_config_with_enough_questions_is_valid_and_persists(quiz_config, clock) -> None:
    quiz_config.save_config([f"q{number}" for number in range(7)])
    clock.advance(500)

    reloaded = quiz_config.get_config()

    assert reloaded.is_valid is True
    assert len(reloaded.selected_questions) == 7
    assert reloaded.last_updated == clock.now - 500


@pytest.mark.parametrize("selection", ["q1", None, [True], [{"id": "q1"}]])
def test_save_config_rejects_anything_but_a_list_of_ids(quiz_config, selection) -> None:
    with pytest.raises(InvalidQuizConfig):
        quiz_config.save_config(selection)


def test_reset_config_restores_default(quiz_config) -> None:
    quiz_config.save_config([f"q{number}" for number in range(9)])

    reset = quiz_config.reset_config()

    assert reset.selected_questions == ()
    assert reset.last_updated is None
    assert quiz_config.get_config() == reset

"""Admin selection of questions for the standalone quiz."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Callable, Sequence

from .errors import InvalidQuizConfig
from .models import QuizConfig
from .state import QUIZ_CONFIG_KEY, quiz_config_from_record, quiz_config_to_record, utc_now_ms
from .store import LockRegistry, Store

logger = logging.getLogger(__name__)

QUIZ_CONFIG_LOCK = "quiz-config"


@dataclass
class QuizConfigService:
    store: Store
    locks: LockRegistry = field(default_factory=LockRegistry)
    clock: Callable[[], int] = utc_now_ms

    def get_config(self) -> QuizConfig:
        records = self.store.read(QUIZ_CONFIG_KEY)
        if not records:
            return QuizConfig()
        return quiz_config_from_record(records[0])

    def save_config(self, selected_questions: Sequence[str | int]) -> QuizConfig:
        """Store the selection. A short selection is kept too, it is just not valid yet."""
        if isinstance(selected_questions, (str, bytes)) or not isinstance(selected_questions, (list, tuple)):
            raise InvalidQuizConfig("selectedQuestions must be a list")
        if any(isinstance(item, bool) or not isinstance(item, (str, int)) for item in selected_questions):
            raise InvalidQuizConfig("selectedQuestions may only hold question ids")

        config = QuizConfig(selected_questions=tuple(selected_questions), last_updated=self.clock())
        with self.locks.lock(QUIZ_CONFIG_LOCK):
            self.store.write(QUIZ_CONFIG_KEY, [quiz_config_to_record(config)])
        logger.info("quiz config saved with %d questions (valid=%s)", len(config.selected_questions), config.is_valid)
        return config

    def reset_config(self) -> QuizConfig:
        config = QuizConfig()
        with self.locks.lock(QUIZ_CONFIG_LOCK):
            self.store.write(QUIZ_CONFIG_KEY, [quiz_config_to_record(config)])
        logger.info("quiz config reset")
        return config

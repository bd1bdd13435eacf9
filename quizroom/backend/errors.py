"""Typed failures raised by the quiz lifecycles.

Every failure belongs to one kind (not found, conflict, invalid transition,
forbidden, validation). The API layer maps kinds to HTTP status codes; the
core never retries or swallows them.
"""

from __future__ import annotations


class QuizError(Exception):
    code = "quiz_error"
    status_code = 500

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.code)
        self.message = message or self.code


class NotFoundError(QuizError):
    code = "not_found"
    status_code = 404


class ConflictError(QuizError):
    code = "conflict"
    status_code = 409


class InvalidTransition(QuizError):
    code = "invalid_transition"
    status_code = 409


class ForbiddenError(QuizError):
    code = "forbidden"
    status_code = 403


class ValidationFailure(QuizError):
    code = "validation_failed"
    status_code = 400


class RoomNotFound(NotFoundError):
    code = "room_not_found"


class ParticipantNotFound(NotFoundError):
    code = "participant_not_found"


class QuestionNotFound(NotFoundError):
    code = "question_not_found"


class SessionNotFound(NotFoundError):
    code = "session_not_found"


class HistoryEntryNotFound(NotFoundError):
    code = "history_entry_not_found"


class DuplicateRoomName(ConflictError):
    code = "duplicate_room_name"


class DuplicateAnswer(ConflictError):
    code = "duplicate_answer"


class AnswerExpired(ConflictError):
    code = "answer_expired"


class Forbidden(ForbiddenError):
    code = "host_token_mismatch"


class InvalidGroupName(ValidationFailure):
    code = "invalid_group_name"


class InvalidRoomName(ValidationFailure):
    code = "invalid_room_name"


class InvalidQuestion(ValidationFailure):
    code = "invalid_question"


class InvalidScore(ValidationFailure):
    code = "invalid_score"


class NoParticipants(ValidationFailure):
    code = "no_participants"


class NoQuestions(ValidationFailure):
    code = "no_questions"


class InvalidQuizConfig(ValidationFailure):
    code = "invalid_quiz_config"

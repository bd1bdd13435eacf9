"""State builders and record codecs for persisted collections.

Collections are stored as ordered lists of plain JSON records with camelCase
keys. The functions here are the only place that knows that shape.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable, Mapping
import uuid

from .errors import InvalidQuestion
from .models import (
    Answer,
    CorrectAnswer,
    HistoryEntry,
    IndexAnswer,
    LiteralAnswer,
    Participant,
    Player,
    Question,
    QuizConfig,
    ROOM_WAITING,
    Room,
    RoomResult,
    RoomStanding,
    Session,
)

ROOMS_KEY = "rooms"
SESSIONS_KEY = "sessions"
PLAYERS_KEY = "players"
HISTORY_KEY = "ranking-history"
QUIZ_CONFIG_KEY = "quiz-config"

DEFAULT_TIME_LIMIT_SECONDS = 60


def utc_now_ms() -> int:
    return int(datetime.now(timezone.utc).timestamp() * 1000)


def new_id() -> str:
    return str(uuid.uuid4())


def build_initial_room(room_id: str, name: str, password: str, host_token_hash: str, created_at: int) -> Room:
    """Return a room in the waiting state with no questions and no participants."""
    return Room(
        id=room_id,
        name=name,
        password=password,
        host_token_hash=host_token_hash,
        created_at=created_at,
    )


def correct_answer_from_raw(raw: Any) -> CorrectAnswer:
    # bool is an int subclass; never read it as an index
    if isinstance(raw, bool):
        raise InvalidQuestion("correctAnswer must be an option index or an option text")
    if isinstance(raw, int):
        return IndexAnswer(index=raw)
    if isinstance(raw, str):
        return LiteralAnswer(text=raw)
    raise InvalidQuestion("correctAnswer must be an option index or an option text")


def correct_answer_to_raw(answer: CorrectAnswer) -> int | str:
    if isinstance(answer, IndexAnswer):
        return answer.index
    return answer.text


def question_from_record(record: Mapping[str, Any]) -> Question:
    """Build a validated Question from a record or an API payload."""
    options = record.get("options")
    if not isinstance(options, (list, tuple)) or len(options) < 2:
        raise InvalidQuestion("a question needs at least two options")
    if not all(isinstance(option, str) for option in options):
        raise InvalidQuestion("question options must be strings")

    correct = correct_answer_from_raw(record.get("correctAnswer"))
    if isinstance(correct, IndexAnswer) and not 0 <= correct.index < len(options):
        raise InvalidQuestion(f"correctAnswer index {correct.index} is outside the options")

    time_limit = record.get("timeLimitSeconds", DEFAULT_TIME_LIMIT_SECONDS)
    if isinstance(time_limit, bool) or not isinstance(time_limit, int) or time_limit <= 0:
        raise InvalidQuestion("timeLimitSeconds must be a positive integer")

    raw_id = record.get("id")
    return Question(
        id=str(raw_id) if raw_id is not None else new_id(),
        text=str(record.get("text", "")),
        options=tuple(options),
        correct_answer=correct,
        time_limit_seconds=time_limit,
    )


def _stored_question_from_record(record: Mapping[str, Any]) -> Question:
    # stored questions were validated when the game started; reads never reject them
    raw_answer = record.get("correctAnswer")
    if isinstance(raw_answer, int) and not isinstance(raw_answer, bool):
        correct: CorrectAnswer = IndexAnswer(index=raw_answer)
    else:
        correct = LiteralAnswer(text="" if raw_answer is None else str(raw_answer))
    time_limit = record.get("timeLimitSeconds", DEFAULT_TIME_LIMIT_SECONDS)
    return Question(
        id=str(record.get("id", "")),
        text=str(record.get("text", "")),
        options=tuple(str(option) for option in record.get("options") or ()),
        correct_answer=correct,
        time_limit_seconds=time_limit if isinstance(time_limit, int) else DEFAULT_TIME_LIMIT_SECONDS,
    )


def question_to_record(question: Question) -> dict[str, Any]:
    return {
        "id": question.id,
        "text": question.text,
        "options": list(question.options),
        "correctAnswer": correct_answer_to_raw(question.correct_answer),
        "timeLimitSeconds": question.time_limit_seconds,
    }


def _answer_to_record(answer: Answer) -> dict[str, Any]:
    return {
        "questionIndex": answer.question_index,
        "submittedValue": answer.submitted_value,
        "isCorrect": answer.is_correct,
        "points": answer.points,
        "timeSpentSeconds": answer.time_spent_seconds,
        "answeredAt": answer.answered_at,
    }


def _answer_from_record(record: Mapping[str, Any]) -> Answer:
    return Answer(
        question_index=int(record["questionIndex"]),
        submitted_value=record["submittedValue"],
        is_correct=bool(record["isCorrect"]),
        points=int(record["points"]),
        time_spent_seconds=float(record.get("timeSpentSeconds", 0)),
        answered_at=int(record["answeredAt"]),
    )


def participant_to_record(participant: Participant) -> dict[str, Any]:
    return {
        "id": participant.id,
        "groupName": participant.group_name,
        "score": participant.score,
        "answers": [_answer_to_record(answer) for answer in participant.answers],
        "joinedAt": participant.joined_at,
        "isActive": participant.is_active,
    }


def _participant_from_record(record: Mapping[str, Any]) -> Participant:
    return Participant(
        id=record["id"],
        group_name=record["groupName"],
        joined_at=int(record["joinedAt"]),
        score=int(record.get("score", 0)),
        answers=[_answer_from_record(answer) for answer in record.get("answers", [])],
        is_active=bool(record.get("isActive", True)),
    )


def room_result_to_record(result: RoomResult) -> dict[str, Any]:
    return {
        "participantId": result.participant_id,
        "groupName": result.group_name,
        "score": result.score,
        "totalAnswers": result.total_answers,
        "correctAnswers": result.correct_answers,
        "position": result.position,
    }


def _room_result_from_record(record: Mapping[str, Any]) -> RoomResult:
    return RoomResult(
        participant_id=record["participantId"],
        group_name=record["groupName"],
        score=int(record["score"]),
        total_answers=int(record["totalAnswers"]),
        correct_answers=int(record["correctAnswers"]),
        position=int(record["position"]),
    )


def standing_to_record(standing: RoomStanding) -> dict[str, Any]:
    return {
        "participantId": standing.participant_id,
        "groupName": standing.group_name,
        "score": standing.score,
        "totalAnswers": standing.total_answers,
        "correctAnswers": standing.correct_answers,
        "lastAnswerAt": standing.last_answer_at,
        "position": standing.position,
    }


def room_to_record(room: Room) -> dict[str, Any]:
    return {
        "id": room.id,
        "name": room.name,
        "password": room.password,
        "hostTokenHash": room.host_token_hash,
        "status": room.status,
        "participants": [participant_to_record(p) for p in room.participants],
        "questions": [question_to_record(q) for q in room.questions],
        "currentQuestionIndex": room.current_question_index,
        "questionStartedAt": room.question_started_at,
        "createdAt": room.created_at,
        "startedAt": room.started_at,
        "finishedAt": room.finished_at,
        "gameResults": (
            [room_result_to_record(r) for r in room.game_results] if room.game_results is not None else None
        ),
    }


def room_from_record(record: Mapping[str, Any]) -> Room:
    raw_results = record.get("gameResults")
    return Room(
        id=record["id"],
        name=record["name"],
        password=record.get("password", ""),
        host_token_hash=record.get("hostTokenHash", ""),
        created_at=int(record["createdAt"]),
        status=record.get("status", ROOM_WAITING),
        participants=[_participant_from_record(p) for p in record.get("participants", [])],
        questions=[_stored_question_from_record(q) for q in record.get("questions", [])],
        current_question_index=int(record.get("currentQuestionIndex", -1)),
        question_started_at=record.get("questionStartedAt"),
        started_at=record.get("startedAt"),
        finished_at=record.get("finishedAt"),
        game_results=[_room_result_from_record(r) for r in raw_results] if raw_results is not None else None,
    )


def public_room_view(room: Room) -> dict[str, Any]:
    """Room record without the password and host token hash."""
    view = room_to_record(room)
    view.pop("password")
    view.pop("hostTokenHash")
    view["totalQuestions"] = len(room.questions)
    view["participantCount"] = len(room.participants)
    return view


def room_listing_view(room: Room) -> dict[str, Any]:
    return {
        "id": room.id,
        "name": room.name,
        "status": room.status,
        "participantCount": len(room.participants),
        "createdAt": room.created_at,
    }


def session_to_record(session: Session) -> dict[str, Any]:
    return {
        "id": session.id,
        "groupName": session.group_name,
        "currentScore": session.current_score,
        "isActive": session.is_active,
        "startedAt": session.started_at,
    }


def session_from_record(record: Mapping[str, Any]) -> Session:
    return Session(
        id=record["id"],
        group_name=record["groupName"],
        current_score=int(record.get("currentScore", 0)),
        is_active=bool(record.get("isActive", False)),
        started_at=int(record["startedAt"]),
    )


def player_to_record(player: Player) -> dict[str, Any]:
    return {
        "id": player.id,
        "group": player.group,
        "score": player.score,
        "position": player.position,
        "timestamp": player.timestamp,
        "sessionId": player.session_id,
    }


def player_from_record(record: Mapping[str, Any]) -> Player:
    return Player(
        id=record["id"],
        group=record["group"],
        score=int(record.get("score", 0)),
        position=int(record.get("position", 0)),
        timestamp=int(record["timestamp"]),
        session_id=record.get("sessionId", ""),
    )


def build_history_entry(players: Iterable[Player], sessions: Iterable[Session], now: int) -> HistoryEntry:
    """Snapshot the leaderboard and sessions as they are right now."""
    players = list(players)
    sessions = list(sessions)
    start_dates = [session.started_at for session in sessions if session.started_at]
    return HistoryEntry(
        id=new_id(),
        start_date=min(start_dates) if start_dates else now,
        end_date=now,
        players=[
            {
                "group": player.group,
                "score": player.score,
                "position": player.position,
                "timestamp": player.timestamp,
            }
            for player in players
        ],
        sessions=[
            {
                "groupName": session.group_name,
                "currentScore": session.current_score,
                "startedAt": session.started_at,
            }
            for session in sessions
        ],
        total_players=len(players),
        total_sessions=len(sessions),
        archived_at=now,
    )


def history_entry_to_record(entry: HistoryEntry) -> dict[str, Any]:
    return {
        "id": entry.id,
        "startDate": entry.start_date,
        "endDate": entry.end_date,
        "players": [dict(player) for player in entry.players],
        "sessions": [dict(session) for session in entry.sessions],
        "totalPlayers": entry.total_players,
        "totalSessions": entry.total_sessions,
        "archivedAt": entry.archived_at,
    }


def history_entry_from_record(record: Mapping[str, Any]) -> HistoryEntry:
    return HistoryEntry(
        id=record["id"],
        start_date=int(record["startDate"]),
        end_date=int(record["endDate"]),
        players=[dict(player) for player in record.get("players", [])],
        sessions=[dict(session) for session in record.get("sessions", [])],
        total_players=int(record.get("totalPlayers", 0)),
        total_sessions=int(record.get("totalSessions", 0)),
        archived_at=int(record["archivedAt"]),
    )


def quiz_config_to_record(config: QuizConfig) -> dict[str, Any]:
    return {
        "selectedQuestions": list(config.selected_questions),
        "lastUpdated": config.last_updated,
        "minQuestions": config.min_questions,
        "isValid": config.is_valid,
    }


def quiz_config_from_record(record: Mapping[str, Any]) -> QuizConfig:
    last_updated = record.get("lastUpdated")
    return QuizConfig(
        selected_questions=tuple(record.get("selectedQuestions") or ()),
        last_updated=int(last_updated) if last_updated is not None else None,
        min_questions=int(record.get("minQuestions", QuizConfig.min_questions)),
    )

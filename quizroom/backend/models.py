"""Domain models for rooms, sessions and the leaderboard."""

from __future__ import annotations

from dataclasses import dataclass, field

ROOM_WAITING = "waiting"
ROOM_PLAYING = "playing"
ROOM_FINISHED = "finished"


@dataclass(frozen=True)
class IndexAnswer:
    index: int


@dataclass(frozen=True)
class LiteralAnswer:
    text: str


CorrectAnswer = IndexAnswer | LiteralAnswer
SubmittedValue = int | str


@dataclass(frozen=True)
class Question:
    id: str
    text: str
    options: tuple[str, ...]
    correct_answer: CorrectAnswer
    time_limit_seconds: int


@dataclass(frozen=True)
class Answer:
    question_index: int
    submitted_value: SubmittedValue
    is_correct: bool
    points: int
    time_spent_seconds: float
    answered_at: int


@dataclass
class Participant:
    id: str
    group_name: str
    joined_at: int
    score: int = 0
    answers: list[Answer] = field(default_factory=list)
    is_active: bool = True

    def answer_for(self, question_index: int) -> Answer | None:
        for answer in self.answers:
            if answer.question_index == question_index:
                return answer
        return None

    @property
    def correct_answers(self) -> int:
        return sum(1 for answer in self.answers if answer.is_correct)

    @property
    def last_answer_at(self) -> int:
        """Latest answer time, or the join time before any answer."""
        if not self.answers:
            return self.joined_at
        return max(answer.answered_at for answer in self.answers)


@dataclass(frozen=True)
class RoomResult:
    participant_id: str
    group_name: str
    score: int
    total_answers: int
    correct_answers: int
    position: int


@dataclass(frozen=True)
class RoomStanding:
    participant_id: str
    group_name: str
    score: int
    total_answers: int
    correct_answers: int
    last_answer_at: int
    position: int


@dataclass
class Room:
    id: str
    name: str
    password: str
    host_token_hash: str
    created_at: int
    status: str = ROOM_WAITING
    participants: list[Participant] = field(default_factory=list)
    questions: list[Question] = field(default_factory=list)
    current_question_index: int = -1
    question_started_at: int | None = None
    started_at: int | None = None
    finished_at: int | None = None
    game_results: list[RoomResult] | None = None

    def participant_by_id(self, participant_id: str) -> Participant | None:
        for participant in self.participants:
            if participant.id == participant_id:
                return participant
        return None

    def participant_by_group(self, group_name: str) -> Participant | None:
        for participant in self.participants:
            if participant.group_name == group_name:
                return participant
        return None


@dataclass(frozen=True)
class CreatedRoom:
    room_id: str
    name: str
    created_at: int
    host_token: str


@dataclass(frozen=True)
class JoinResult:
    participant: Participant
    room: Room


@dataclass(frozen=True)
class AnswerResult:
    is_correct: bool
    points: int
    current_score: int


@dataclass(frozen=True)
class RoomRanking:
    room: Room
    standings: list[RoomStanding]


@dataclass(frozen=True)
class Session:
    id: str
    group_name: str
    current_score: int
    is_active: bool
    started_at: int


@dataclass(frozen=True)
class Player:
    id: str
    group: str
    score: int
    position: int
    timestamp: int
    session_id: str


@dataclass(frozen=True)
class HistoryEntry:
    id: str
    start_date: int
    end_date: int
    players: list[dict]
    sessions: list[dict]
    total_players: int
    total_sessions: int
    archived_at: int


@dataclass(frozen=True)
class QuizConfig:
    """The admin's pick of questions for the standalone quiz."""

    selected_questions: tuple[str | int, ...] = ()
    last_updated: int | None = None
    min_questions: int = 7

    @property
    def is_valid(self) -> bool:
        return len(self.selected_questions) >= self.min_questions

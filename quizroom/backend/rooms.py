"""Room lifecycle: create, join, start, answer, advance, finish, delete.

Rooms move ``waiting -> playing -> finished`` and never leave ``finished``.
Each room is its own aggregate: every mutation reads the room, changes it
and writes it back while holding that room's lock, so checks such as the
duplicate-answer guard happen in the same critical section as the write.
The rooms collection lock is only held to merge one room record into the
persisted list and is always taken after a room lock.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
import logging
from typing import Any, Callable, Iterator, Mapping, Sequence

from .errors import (
    AnswerExpired,
    DuplicateAnswer,
    DuplicateRoomName,
    Forbidden,
    InvalidGroupName,
    InvalidRoomName,
    InvalidTransition,
    NoParticipants,
    NoQuestions,
    ParticipantNotFound,
    RoomNotFound,
)
from .models import (
    ROOM_FINISHED,
    ROOM_PLAYING,
    ROOM_WAITING,
    Answer,
    AnswerResult,
    CreatedRoom,
    JoinResult,
    Participant,
    Question,
    Room,
    RoomRanking,
    SubmittedValue,
)
from .ranking import compute_game_results, rank_participants
from .scoring import question_at, score_answer
from .security import generate_token, hash_token, verify_token
from .state import (
    ROOMS_KEY,
    build_initial_room,
    new_id,
    question_from_record,
    room_from_record,
    room_to_record,
    utc_now_ms,
)
from .store import LockRegistry, Store

logger = logging.getLogger(__name__)

ROOMS_COLLECTION_LOCK = "rooms"


def _room_lock(room_id: str) -> str:
    return f"room:{room_id}"


@dataclass
class RoomLifecycle:
    store: Store
    server_salt: str
    locks: LockRegistry = field(default_factory=LockRegistry)
    clock: Callable[[], int] = utc_now_ms
    enforce_time_limits: bool = False

    # reads

    def get_room(self, room_id: str) -> Room:
        for record in self.store.read(ROOMS_KEY):
            if record["id"] == room_id:
                return room_from_record(record)
        raise RoomNotFound(f"room {room_id} not found")

    def list_rooms(self) -> list[Room]:
        """Rooms that are not finished, newest first."""
        rooms = [room_from_record(record) for record in self.store.read(ROOMS_KEY)]
        active = [room for room in rooms if room.status != ROOM_FINISHED]
        return sorted(active, key=lambda room: room.created_at, reverse=True)

    def list_all_rooms(self) -> list[Room]:
        """Every room, finished ones included, newest first."""
        rooms = [room_from_record(record) for record in self.store.read(ROOMS_KEY)]
        return sorted(rooms, key=lambda room: room.created_at, reverse=True)

    def get_ranking(self, room_id: str) -> RoomRanking:
        room = self.get_room(room_id)
        return RoomRanking(room=room, standings=rank_participants(room.participants))

    # mutations

    def create_room(self, name: str, password: str) -> CreatedRoom:
        clean_name = (name or "").strip()
        if not clean_name:
            raise InvalidRoomName("room name is required")
        if not (password or "").strip():
            raise InvalidRoomName("room password is required")

        host_token = generate_token()
        room = build_initial_room(
            room_id=new_id(),
            name=clean_name,
            password=password,
            host_token_hash=hash_token(host_token, self.server_salt),
            created_at=self.clock(),
        )
        with self.locks.lock(ROOMS_COLLECTION_LOCK):
            records = self.store.read(ROOMS_KEY)
            for record in records:
                if record["name"] == clean_name and record.get("status") != ROOM_FINISHED:
                    logger.warning("rejected duplicate room name %r", clean_name)
                    raise DuplicateRoomName(f"an active room named {clean_name!r} already exists")
            records.append(room_to_record(room))
            self.store.write(ROOMS_KEY, records)

        logger.info("room %s created (%s)", room.id, room.name)
        return CreatedRoom(room_id=room.id, name=room.name, created_at=room.created_at, host_token=host_token)

    def join_room(self, room_id: str, group_name: str) -> JoinResult:
        clean_group = (group_name or "").strip()
        if not clean_group:
            raise InvalidGroupName("group name is required")

        with self._room_transaction(room_id) as room:
            existing = room.participant_by_group(clean_group)
            if existing is not None:
                return JoinResult(participant=existing, room=room)
            participant = Participant(id=new_id(), group_name=clean_group, joined_at=self.clock())
            room.participants.append(participant)

        logger.info("group %s joined room %s", clean_group, room_id)
        return JoinResult(participant=participant, room=room)

    def start_game(self, room_id: str, questions: Sequence[Question | Mapping[str, Any]]) -> Room:
        parsed = [q if isinstance(q, Question) else question_from_record(q) for q in questions or []]

        with self._room_transaction(room_id) as room:
            if room.status != ROOM_WAITING:
                raise InvalidTransition(f"room {room_id} is {room.status}, a game can only start while waiting")
            if not room.participants:
                raise NoParticipants("a game needs at least one participant")
            if not parsed:
                raise NoQuestions("a game needs at least one question")

            now = self.clock()
            room.status = ROOM_PLAYING
            room.questions = parsed
            room.current_question_index = 0
            room.started_at = now
            room.question_started_at = now

        logger.info("room %s started with %d questions", room_id, len(parsed))
        return room

    def submit_answer(
        self,
        room_id: str,
        participant_id: str,
        question_index: int,
        value: SubmittedValue,
        time_spent: float | None = None,
    ) -> AnswerResult:
        with self._room_transaction(room_id) as room:
            if room.status != ROOM_PLAYING:
                raise InvalidTransition(f"room {room_id} is {room.status}, answers are only taken while playing")
            participant = room.participant_by_id(participant_id)
            if participant is None:
                raise ParticipantNotFound(f"participant {participant_id} not found in room {room_id}")
            question = question_at(room.questions, question_index)
            if participant.answer_for(question_index) is not None:
                logger.debug("duplicate answer from %s for question %d", participant_id, question_index)
                raise DuplicateAnswer(f"question {question_index} was already answered")

            now = self.clock()
            if self.enforce_time_limits:
                self._check_deadline(room, question, question_index, now)

            scored = score_answer(question, value)
            participant.answers.append(
                Answer(
                    question_index=question_index,
                    submitted_value=value,
                    is_correct=scored.is_correct,
                    points=scored.points,
                    time_spent_seconds=max(0.0, float(time_spent or 0)),
                    answered_at=now,
                )
            )
            participant.score += scored.points

        return AnswerResult(is_correct=scored.is_correct, points=scored.points, current_score=participant.score)

    def advance_question(self, room_id: str, host_token: str | None) -> Room:
        with self._room_transaction(room_id) as room:
            self._require_host(room, host_token)
            if room.status != ROOM_PLAYING:
                raise InvalidTransition(f"room {room_id} is {room.status}, only a running game can advance")

            next_index = room.current_question_index + 1
            now = self.clock()
            if next_index < len(room.questions):
                room.current_question_index = next_index
                room.question_started_at = now
            else:
                room.status = ROOM_FINISHED
                room.current_question_index = -1
                room.question_started_at = None
                room.finished_at = now
                room.game_results = compute_game_results(room.participants)

        if room.status == ROOM_FINISHED:
            logger.info("room %s finished", room_id)
        else:
            logger.info("room %s advanced to question %d", room_id, room.current_question_index + 1)
        return room

    def delete_room(self, room_id: str, host_token: str | None) -> None:
        with self.locks.lock(_room_lock(room_id)):
            room = self.get_room(room_id)
            self._require_host(room, host_token)
            with self.locks.lock(ROOMS_COLLECTION_LOCK):
                records = self.store.read(ROOMS_KEY)
                self.store.write(ROOMS_KEY, [record for record in records if record["id"] != room_id])
        logger.info("room %s deleted", room_id)

    # helpers

    @contextmanager
    def _room_transaction(self, room_id: str) -> Iterator[Room]:
        """Hold the room lock, yield the room and persist it if the block succeeds."""
        with self.locks.lock(_room_lock(room_id)):
            room = self.get_room(room_id)
            yield room
            self._save(room)

    def _save(self, room: Room) -> None:
        with self.locks.lock(ROOMS_COLLECTION_LOCK):
            records = self.store.read(ROOMS_KEY)
            for index, record in enumerate(records):
                if record["id"] == room.id:
                    records[index] = room_to_record(room)
                    break
            else:
                raise RoomNotFound(f"room {room.id} not found")
            self.store.write(ROOMS_KEY, records)

    def _require_host(self, room: Room, host_token: str | None) -> None:
        if not verify_token(host_token, room.host_token_hash, self.server_salt):
            logger.warning("rejected host operation on room %s", room.id)
            raise Forbidden("only the room host may do this")

    def _check_deadline(self, room: Room, question: Question, question_index: int, now: int) -> None:
        if question_index != room.current_question_index:
            raise AnswerExpired(f"question {question_index} is not open")
        opened_at = room.question_started_at if room.question_started_at is not None else room.started_at
        if opened_at is not None and now - opened_at > question.time_limit_seconds * 1000:
            raise AnswerExpired(f"the time limit for question {question_index} has passed")

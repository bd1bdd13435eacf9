"""Standalone practice sessions and the persistent leaderboard."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
import logging
import re
from typing import Callable

from .errors import InvalidGroupName, InvalidScore, SessionNotFound
from .models import Player, Session
from .ranking import rank_players
from .state import (
    PLAYERS_KEY,
    SESSIONS_KEY,
    new_id,
    player_from_record,
    player_to_record,
    session_from_record,
    session_to_record,
    utc_now_ms,
)
from .store import LockRegistry, Store

logger = logging.getLogger(__name__)

LEADERBOARD_LOCK = "leaderboard"
GROUP_NAME_PATTERN = re.compile(r"^[A-Z0-9\s]+$")


def normalize_group_name(group_name: str) -> str:
    """Trim and validate a group name: upper-case letters, digits and spaces only."""
    clean = (group_name or "").strip()
    if not clean or not GROUP_NAME_PATTERN.match(clean):
        raise InvalidGroupName("group name may only contain upper-case letters, digits and spaces")
    return clean


@dataclass
class SessionLifecycle:
    store: Store
    locks: LockRegistry = field(default_factory=LockRegistry)
    clock: Callable[[], int] = utc_now_ms

    def start_session(self, group_name: str) -> Session:
        clean_group = normalize_group_name(group_name)
        with self.locks.lock(LEADERBOARD_LOCK):
            sessions = self._read_sessions()
            sessions = [
                replace(session, is_active=False) if session.group_name == clean_group else session
                for session in sessions
            ]
            session = Session(
                id=new_id(),
                group_name=clean_group,
                current_score=0,
                is_active=True,
                started_at=self.clock(),
            )
            sessions.append(session)
            self._write_sessions(sessions)

        logger.info("session %s started for %s", session.id, clean_group)
        return session

    def update_score(self, session_id: str, score: int) -> Session:
        if isinstance(score, bool) or not isinstance(score, int) or score < 0:
            raise InvalidScore("score must be a non-negative integer")

        with self.locks.lock(LEADERBOARD_LOCK):
            sessions = self._read_sessions()
            index = self._index_of(sessions, session_id)
            updated = replace(sessions[index], current_score=score)
            sessions[index] = updated
            self._write_sessions(sessions)
        return updated

    def finish_session(self, session_id: str) -> Player:
        with self.locks.lock(LEADERBOARD_LOCK):
            sessions = self._read_sessions()
            index = self._index_of(sessions, session_id)
            finished = replace(sessions[index], is_active=False)
            sessions[index] = finished

            players = [
                player for player in self._read_players() if player.group != finished.group_name
            ]
            new_player = Player(
                id=new_id(),
                group=finished.group_name,
                score=finished.current_score,
                position=0,
                timestamp=self.clock(),
                session_id=finished.id,
            )
            players.append(new_player)
            ranked = rank_players(players)

            self._write_sessions(sessions)
            self.store.write(PLAYERS_KEY, [player_to_record(player) for player in ranked])

        saved = next(player for player in ranked if player.id == new_player.id)
        logger.info("session %s finished: %s scored %d (position %d)", session_id, saved.group, saved.score, saved.position)
        return saved

    def get_active_session(self, group_name: str) -> Session | None:
        clean_group = (group_name or "").strip()
        for session in self._read_sessions():
            if session.group_name == clean_group and session.is_active:
                return session
        return None

    def get_leaderboard(self) -> list[Player]:
        return rank_players(self._read_players())

    def _read_sessions(self) -> list[Session]:
        return [session_from_record(record) for record in self.store.read(SESSIONS_KEY)]

    def _write_sessions(self, sessions: list[Session]) -> None:
        self.store.write(SESSIONS_KEY, [session_to_record(session) for session in sessions])

    def _read_players(self) -> list[Player]:
        return [player_from_record(record) for record in self.store.read(PLAYERS_KEY)]

    @staticmethod
    def _index_of(sessions: list[Session], session_id: str) -> int:
        for index, session in enumerate(sessions):
            if session.id == session_id:
                return index
        raise SessionNotFound(f"session {session_id} not found")

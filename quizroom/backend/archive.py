"""Leaderboard archival: snapshot into history, then clear."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Callable

from .errors import HistoryEntryNotFound
from .models import HistoryEntry
from .sessions import LEADERBOARD_LOCK
from .state import (
    HISTORY_KEY,
    PLAYERS_KEY,
    SESSIONS_KEY,
    build_history_entry,
    history_entry_from_record,
    history_entry_to_record,
    player_from_record,
    session_from_record,
    utc_now_ms,
)
from .store import LockRegistry, Store

logger = logging.getLogger(__name__)


@dataclass
class ArchivalService:
    store: Store
    locks: LockRegistry = field(default_factory=LockRegistry)
    clock: Callable[[], int] = utc_now_ms

    def clear_leaderboard(self) -> HistoryEntry | None:
        """Archive the current leaderboard and empty the players collection."""
        return self._archive_and_clear(clear_sessions=False)

    def clear_all_data(self) -> HistoryEntry | None:
        """Archive the current leaderboard, then empty players and sessions."""
        return self._archive_and_clear(clear_sessions=True)

    def get_history(self) -> list[HistoryEntry]:
        entries = [history_entry_from_record(record) for record in self.store.read(HISTORY_KEY)]
        return sorted(entries, key=lambda entry: entry.archived_at, reverse=True)

    def delete_history_entry(self, entry_id: str) -> None:
        with self.locks.lock(LEADERBOARD_LOCK):
            records = self.store.read(HISTORY_KEY)
            remaining = [record for record in records if record["id"] != entry_id]
            if len(remaining) == len(records):
                raise HistoryEntryNotFound(f"history entry {entry_id} not found")
            self.store.write(HISTORY_KEY, remaining)
        logger.info("history entry %s deleted", entry_id)

    def _archive_and_clear(self, clear_sessions: bool) -> HistoryEntry | None:
        with self.locks.lock(LEADERBOARD_LOCK):
            players = [player_from_record(record) for record in self.store.read(PLAYERS_KEY)]
            sessions = [session_from_record(record) for record in self.store.read(SESSIONS_KEY)]

            entry: HistoryEntry | None = None
            if players or sessions:
                entry = build_history_entry(players, sessions, now=self.clock())
                history = self.store.read(HISTORY_KEY)
                history.append(history_entry_to_record(entry))
                # the snapshot must be stored before anything is cleared
                self.store.write(HISTORY_KEY, history)
                logger.info(
                    "archived %d players and %d sessions as %s", entry.total_players, entry.total_sessions, entry.id
                )

            self.store.write(PLAYERS_KEY, [])
            if clear_sessions:
                self.store.write(SESSIONS_KEY, [])

        logger.info("leaderboard cleared%s", " with sessions" if clear_sessions else "")
        return entry

"""Ranking helpers shared by the leaderboard and the rooms."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable, Generic, Iterable, TypeVar

from .models import Participant, Player, RoomResult, RoomStanding

T = TypeVar("T")


@dataclass(frozen=True)
class Ranked(Generic[T]):
    position: int
    item: T


def rank(
    records: Iterable[T],
    score_of: Callable[[T], int],
    tiebreak_of: Callable[[T], int],
) -> list[Ranked[T]]:
    """Order by score descending, then tie-break ascending, and assign positions.

    ``sorted`` is stable, so records with equal (score, tie-break) keep their
    input order. Positions are always ``index + 1``.
    """
    ordered = sorted(records, key=lambda record: (-score_of(record), tiebreak_of(record)))
    return [Ranked(position=index + 1, item=record) for index, record in enumerate(ordered)]


def rank_players(players: Iterable[Player]) -> list[Player]:
    """Leaderboard order; ties go to the group that finished first."""
    ranked = rank(players, score_of=lambda p: p.score, tiebreak_of=lambda p: p.timestamp)
    return [replace(entry.item, position=entry.position) for entry in ranked]


def _rank_participants(participants: Iterable[Participant]) -> list[Ranked[Participant]]:
    return rank(participants, score_of=lambda p: p.score, tiebreak_of=lambda p: p.last_answer_at)


def rank_participants(participants: Iterable[Participant]) -> list[RoomStanding]:
    """Live room standings; ties go to the team whose last answer came first."""
    return [
        RoomStanding(
            participant_id=entry.item.id,
            group_name=entry.item.group_name,
            score=entry.item.score,
            total_answers=len(entry.item.answers),
            correct_answers=entry.item.correct_answers,
            last_answer_at=entry.item.last_answer_at,
            position=entry.position,
        )
        for entry in _rank_participants(participants)
    ]


def compute_game_results(participants: Iterable[Participant]) -> list[RoomResult]:
    """Final results, ranked with the same rule as the live standings."""
    return [
        RoomResult(
            participant_id=entry.item.id,
            group_name=entry.item.group_name,
            score=entry.item.score,
            total_answers=len(entry.item.answers),
            correct_answers=entry.item.correct_answers,
            position=entry.position,
        )
        for entry in _rank_participants(participants)
    ]

"""Shared types for the padel rating engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class Team(str, Enum):
    """Side of a doubles match."""

    TEAM1 = "team1"
    TEAM2 = "team2"

    @property
    def opponent(self) -> Team:
        return Team.TEAM2 if self is Team.TEAM1 else Team.TEAM1


@dataclass(frozen=True)
class RatingSnapshot:
    """One entry of a player's append-only rating history."""

    timestamp: datetime
    rating: float
    kind: str = "match"
    match_id: str | None = None


@dataclass
class PlayerRecord:
    """Rating-relevant view of a player, owned by the persistence layer."""

    player_id: str
    rating: float
    rating_history: list[RatingSnapshot] = field(default_factory=list)
    name: str | None = None
    # Leading ``rating_history`` entries that are already stored.
    persisted_history: int = field(default=0, compare=False, repr=False)


@dataclass(frozen=True)
class TrialMatchResult:
    """Outcome of one assessment match played before a player is rated."""

    won: bool
    opponent_rating: float | None = None


@dataclass(frozen=True)
class DoublesMatch:
    """Completed 2v2 match payload consumed by the rating engine."""

    team1: tuple[PlayerRecord, ...]
    team2: tuple[PlayerRecord, ...]
    winner: Team
    match_id: str | None = None
    team1_score: int | None = None
    team2_score: int | None = None
    event_time: datetime | None = None

    def players(self, team: Team) -> tuple[PlayerRecord, ...]:
        if team is Team.TEAM1:
            return self.team1
        return self.team2


@dataclass(frozen=True)
class RatingUpdate:
    new_rating: float
    actual_change: float


@dataclass(frozen=True)
class PlayerRatingEvent:
    player_id: str
    team: Team
    match_id: str | None
    event_time: datetime
    won: bool
    opponent_average: float
    pre_rating: float
    raw_change: float
    post_rating: float
    actual_change: float

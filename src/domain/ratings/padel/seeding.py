"""Seed ratings for legacy players from their recorded win/loss history."""

from __future__ import annotations

from datetime import datetime

from domain.ratings.common import PlayerRecord, RatingSnapshot
from domain.ratings.errors import InvalidInputError

DEFAULT_SEED_RATING = 3.5

# (strictly-above threshold, adjustment) for strong records, checked in order.
_STRONG_RECORD_STEPS = ((0.7, 1.0), (0.5, 0.5))
# (strictly-below threshold, adjustment) for weak records, checked in order.
_WEAK_RECORD_STEPS = ((0.3, -1.0), (0.5, -0.5))


def seed_rating_from_record(
    wins: int,
    matches_played: int,
    *,
    base_rating: float = DEFAULT_SEED_RATING,
    min_rating: float = 0.0,
    max_rating: float = 7.0,
) -> float:
    if matches_played <= 0:
        raise InvalidInputError(f"matches_played must be > 0, got {matches_played}")
    if wins < 0 or wins > matches_played:
        raise InvalidInputError(
            f"wins must be between 0 and matches_played={matches_played}, got {wins}"
        )

    win_rate = wins / float(matches_played)
    adjustment = 0.0
    for threshold, step in _STRONG_RECORD_STEPS:
        if win_rate > threshold:
            adjustment = step
            break
    else:
        for threshold, step in _WEAK_RECORD_STEPS:
            if win_rate < threshold:
                adjustment = step
                break

    return max(min_rating, min(max_rating, base_rating + adjustment))


def seed_player(
    player_id: str,
    *,
    wins: int,
    matches_played: int,
    seeded_at: datetime,
    name: str | None = None,
    base_rating: float = DEFAULT_SEED_RATING,
    min_rating: float = 0.0,
    max_rating: float = 7.0,
) -> PlayerRecord:
    """Build a player record whose history starts with a ``seed`` snapshot."""
    rating = seed_rating_from_record(
        wins,
        matches_played,
        base_rating=base_rating,
        min_rating=min_rating,
        max_rating=max_rating,
    )
    return PlayerRecord(
        player_id=player_id,
        rating=rating,
        rating_history=[RatingSnapshot(timestamp=seeded_at, rating=rating, kind="seed")],
        name=name,
    )


__all__ = ["DEFAULT_SEED_RATING", "seed_player", "seed_rating_from_record"]

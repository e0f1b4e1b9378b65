"""Rating domain modules."""

from domain.ratings.common import (
    DoublesMatch,
    PlayerRatingEvent,
    PlayerRecord,
    RatingSnapshot,
    RatingUpdate,
    Team,
    TrialMatchResult,
)
from domain.ratings.errors import InvalidInputError
from domain.ratings.protocol import TrialMethod

__all__ = [
    "DoublesMatch",
    "InvalidInputError",
    "PlayerRatingEvent",
    "PlayerRecord",
    "RatingSnapshot",
    "RatingUpdate",
    "Team",
    "TrialMatchResult",
    "TrialMethod",
]

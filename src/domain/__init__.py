"""Rating-system domain modules."""

from domain.ratings import InvalidInputError, PlayerRecord, Team
from domain.ratings.padel import RatingEngine, RatingParameters

__all__ = ["InvalidInputError", "PlayerRecord", "RatingEngine", "RatingParameters", "Team"]

"""ORM models."""

from models.base import Base
from models.player import Player, PlayerDailyRatingChange, PlayerRatingHistory
from models.system import RatingSystem

__all__ = [
    "Base",
    "Player",
    "PlayerDailyRatingChange",
    "PlayerRatingHistory",
    "RatingSystem",
]

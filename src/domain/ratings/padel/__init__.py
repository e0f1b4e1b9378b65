"""Padel rating modules."""

from domain.ratings.padel.calculator import DailyChangeLedger, RatingEngine, RatingParameters
from domain.ratings.padel.config import (
    RatingSystemConfig,
    load_rating_system_config,
    load_rating_system_configs,
)
from domain.ratings.padel.levels import RatingLevel, describe_rating, rating_level
from domain.ratings.padel.ranking import player_rank, rank_players
from domain.ratings.padel.seeding import seed_player, seed_rating_from_record

__all__ = [
    "DailyChangeLedger",
    "RatingEngine",
    "RatingLevel",
    "RatingParameters",
    "RatingSystemConfig",
    "describe_rating",
    "load_rating_system_config",
    "load_rating_system_configs",
    "player_rank",
    "rank_players",
    "rating_level",
    "seed_player",
    "seed_rating_from_record",
]

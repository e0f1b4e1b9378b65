"""Human-readable skill bands for the 0-7 rating scale."""

from __future__ import annotations

from enum import IntEnum


class RatingLevel(IntEnum):
    COMPLETE_BEGINNER = 0
    BEGINNER = 1
    ADVANCED_BEGINNER = 2
    AVERAGE_RECREATIONAL = 3
    GOOD_RECREATIONAL = 4
    ADVANCED_RECREATIONAL = 5
    SEMI_PROFESSIONAL = 6
    PROFESSIONAL = 7

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS = {
    RatingLevel.COMPLETE_BEGINNER: "Complete Beginner",
    RatingLevel.BEGINNER: "Beginner",
    RatingLevel.ADVANCED_BEGINNER: "Advanced Beginner",
    RatingLevel.AVERAGE_RECREATIONAL: "Average Recreational",
    RatingLevel.GOOD_RECREATIONAL: "Good Recreational",
    RatingLevel.ADVANCED_RECREATIONAL: "Advanced Recreational",
    RatingLevel.SEMI_PROFESSIONAL: "Semi-Professional",
    RatingLevel.PROFESSIONAL: "Professional",
}


def rating_level(rating: float) -> RatingLevel:
    """Band whose upper bound is the first one at or above ``rating``."""
    for level in RatingLevel:
        if level is RatingLevel.PROFESSIONAL:
            break
        if rating <= level.value:
            return level
    return RatingLevel.PROFESSIONAL


def describe_rating(rating: float) -> str:
    return rating_level(rating).label


__all__ = ["RatingLevel", "describe_rating", "rating_level"]

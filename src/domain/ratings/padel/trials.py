"""Initial-rating strategies for players coming out of trial matches."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from domain.ratings.common import TrialMatchResult
from domain.ratings.errors import InvalidInputError
from domain.ratings.protocol import TrialMethod

if TYPE_CHECKING:
    from domain.ratings.padel.calculator import RatingParameters

# Opponent-relative adjustments, applied against the running trial rating.
WIN_VS_STRONGER = 0.5
WIN_VS_OTHER = 0.3
LOSS_VS_WEAKER = -0.3
LOSS_VS_OTHER = -0.2


def validate_trial_results(
    trial_results: Sequence[TrialMatchResult],
    *,
    expected_count: int,
) -> tuple[TrialMatchResult, ...]:
    results = tuple(trial_results)
    if len(results) != expected_count:
        raise InvalidInputError(
            f"Exactly {expected_count} trial matches are required for initial rating, "
            f"got {len(results)}"
        )
    return results


def flat_trial_rating(
    trial_results: Sequence[TrialMatchResult],
    params: RatingParameters,
) -> float:
    """Base rating plus a fixed bonus per win and a fixed penalty per loss."""
    rating = params.trial_base_rating
    for result in trial_results:
        if result.won:
            rating += params.trial_win_bonus
        else:
            rating -= params.trial_loss_penalty
    return _clamp_trial_rating(rating, params)


def opponent_relative_trial_rating(
    trial_results: Sequence[TrialMatchResult],
    params: RatingParameters,
) -> float:
    """Adjust the running rating by comparing it against each trial opponent."""
    missing = [
        index
        for index, result in enumerate(trial_results, start=1)
        if result.opponent_rating is None
    ]
    if missing:
        raise InvalidInputError(
            f"opponent_rating is required for every trial match; missing for trials {missing}"
        )

    rating = params.trial_base_rating
    for result in trial_results:
        rating_diff = float(result.opponent_rating) - rating  # type: ignore[arg-type]
        if result.won:
            rating += WIN_VS_STRONGER if rating_diff > 0 else WIN_VS_OTHER
        else:
            rating += LOSS_VS_WEAKER if rating_diff < 0 else LOSS_VS_OTHER
    return _clamp_trial_rating(rating, params)


def _clamp_trial_rating(rating: float, params: RatingParameters) -> float:
    return max(params.min_rating, min(params.trial_max_rating, rating))


TRIAL_STRATEGIES = {
    TrialMethod.FLAT: flat_trial_rating,
    TrialMethod.OPPONENT_RELATIVE: opponent_relative_trial_rating,
}


__all__ = [
    "TRIAL_STRATEGIES",
    "flat_trial_rating",
    "opponent_relative_trial_rating",
    "validate_trial_results",
]

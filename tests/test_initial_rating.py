"""Unit tests for initial ratings from trial matches."""

from __future__ import annotations

from datetime import datetime
from itertools import product

import pytest

from domain.ratings.common import TrialMatchResult
from domain.ratings.errors import InvalidInputError
from domain.ratings.padel.calculator import RatingEngine, RatingParameters
from domain.ratings.protocol import TrialMethod

REGISTERED_AT = datetime(2026, 3, 1, 18, 30, 0)


def _trials(*outcomes: bool) -> list[TrialMatchResult]:
    return [TrialMatchResult(won=won) for won in outcomes]


def test_three_trial_wins_hit_the_new_player_ceiling() -> None:
    engine = RatingEngine()
    assert engine.initialize_rating(_trials(True, True, True)) == pytest.approx(3.0)


def test_three_trial_losses_are_not_clamped() -> None:
    engine = RatingEngine()
    assert engine.initialize_rating(_trials(False, False, False)) == pytest.approx(0.75)


def test_mixed_trials_use_flat_adjustments() -> None:
    engine = RatingEngine()
    assert engine.initialize_rating(_trials(True, False, True)) == pytest.approx(2.25)
    assert engine.initialize_rating(_trials(False, True, False)) == pytest.approx(1.5)


@pytest.mark.parametrize("outcomes", list(product([True, False], repeat=3)))
def test_every_trial_combination_stays_in_new_player_band(outcomes: tuple[bool, ...]) -> None:
    engine = RatingEngine()
    rating = engine.initialize_rating(_trials(*outcomes))
    assert 0.0 <= rating <= 3.0


@pytest.mark.parametrize("count", [0, 1, 2, 4])
def test_wrong_trial_count_raises_invalid_input(count: int) -> None:
    engine = RatingEngine()
    with pytest.raises(InvalidInputError, match="Exactly 3 trial matches"):
        engine.initialize_rating(_trials(*([True] * count)))


def test_initial_player_starts_history_with_initial_snapshot() -> None:
    engine = RatingEngine(clock=lambda: REGISTERED_AT)

    player = engine.initial_player("new", _trials(True, True, False), name="New Player")

    assert player.rating == pytest.approx(2.25)
    assert player.name == "New Player"
    assert len(player.rating_history) == 1
    snapshot = player.rating_history[0]
    assert snapshot.kind == "initial"
    assert snapshot.timestamp == REGISTERED_AT
    assert snapshot.rating == pytest.approx(2.25)


def test_opponent_relative_method_compares_against_running_rating() -> None:
    engine = RatingEngine(RatingParameters(trial_method=TrialMethod.OPPONENT_RELATIVE))
    trials = [
        TrialMatchResult(won=True, opponent_rating=2.0),
        TrialMatchResult(won=True, opponent_rating=2.0),
        TrialMatchResult(won=False, opponent_rating=2.0),
    ]

    # 1.5 -> 2.0 (beat stronger) -> 2.3 (beat equal) -> 2.0 (lost to weaker)
    assert engine.initialize_rating(trials) == pytest.approx(2.0)


def test_opponent_relative_method_clamps_to_new_player_band() -> None:
    engine = RatingEngine(RatingParameters(trial_method=TrialMethod.OPPONENT_RELATIVE))
    wins = [TrialMatchResult(won=True, opponent_rating=7.0) for _ in range(3)]
    losses = [TrialMatchResult(won=False, opponent_rating=0.0) for _ in range(3)]

    assert engine.initialize_rating(wins) == pytest.approx(3.0)
    assert engine.initialize_rating(losses) == pytest.approx(0.6)


def test_opponent_relative_method_requires_opponent_ratings() -> None:
    engine = RatingEngine(RatingParameters(trial_method=TrialMethod.OPPONENT_RELATIVE))
    trials = [
        TrialMatchResult(won=True, opponent_rating=2.0),
        TrialMatchResult(won=True),
        TrialMatchResult(won=False, opponent_rating=1.0),
    ]

    with pytest.raises(InvalidInputError, match="opponent_rating is required"):
        engine.initialize_rating(trials)

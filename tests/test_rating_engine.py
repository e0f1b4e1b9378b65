"""Unit tests for padel match rating updates."""

from __future__ import annotations

import random
from datetime import datetime, timedelta

import pytest

from domain.ratings.common import DoublesMatch, PlayerRecord, Team
from domain.ratings.errors import InvalidInputError
from domain.ratings.padel.calculator import RatingEngine, RatingParameters

NOON = datetime(2026, 1, 1, 12, 0, 0)


def _engine(**overrides: object) -> RatingEngine:
    return RatingEngine(RatingParameters(**overrides), clock=lambda: NOON)  # type: ignore[arg-type]


def _player(player_id: str, rating: float) -> PlayerRecord:
    return PlayerRecord(player_id=player_id, rating=rating)


def _match(
    ratings: tuple[float, float, float, float],
    *,
    winner: Team = Team.TEAM1,
) -> DoublesMatch:
    a, b, c, d = (_player(pid, rating) for pid, rating in zip("abcd", ratings))
    return DoublesMatch(team1=(a, b), team2=(c, d), winner=winner, match_id="m1")


@pytest.mark.parametrize(
    ("opponent_average", "won", "expected"),
    [
        (4.0, True, 0.15),
        (3.0, True, 0.10),
        (2.0, True, 0.05),
        (4.0, False, -0.05),
        (3.0, False, -0.10),
        (2.0, False, -0.15),
    ],
)
def test_rating_change_table(opponent_average: float, won: bool, expected: float) -> None:
    engine = _engine()
    assert engine.calculate_rating_change(3.0, opponent_average, won) == pytest.approx(expected)


def test_rating_change_is_pre_clamped_to_global_bounds() -> None:
    engine = _engine()
    assert engine.calculate_rating_change(6.95, 7.0, True) == pytest.approx(0.05)
    assert engine.calculate_rating_change(7.0, 5.0, True) == pytest.approx(0.0)
    assert engine.calculate_rating_change(0.1, 0.0, False) == pytest.approx(-0.1)


def test_near_equal_averages_count_as_same_strength() -> None:
    engine = _engine()
    player_rating = 2.05
    opponent_average = (2.0 + 2.1) / 2.0
    assert engine.calculate_rating_change(player_rating, opponent_average, True) == pytest.approx(0.10)


def test_win_against_weaker_near_ceiling_is_not_globally_clamped() -> None:
    engine = _engine()
    player = _player("p", 6.9)

    change = engine.calculate_rating_change(player.rating, 5.0, True)
    update = engine.apply_rating_change(player, change)

    assert change == pytest.approx(0.05)
    assert update.new_rating == pytest.approx(6.95)
    assert update.actual_change == pytest.approx(0.05)
    assert player.rating == pytest.approx(6.95)


def test_daily_cap_reduces_change_near_the_limit() -> None:
    engine = _engine()
    player = _player("p", 6.95)
    engine.ledger.set("p", NOON.date(), 0.28)

    change = engine.calculate_rating_change(player.rating, 7.0, True)
    update = engine.apply_rating_change(player, change)

    assert update.actual_change == pytest.approx(0.02)
    assert update.new_rating == pytest.approx(6.97)
    assert engine.ledger.get("p", NOON.date()) == pytest.approx(0.3)


def test_daily_cap_applies_to_losses() -> None:
    engine = _engine()
    player = _player("p", 4.0)

    updates = [engine.apply_rating_change(player, -0.15) for _ in range(3)]

    assert [update.actual_change for update in updates] == pytest.approx([-0.15, -0.15, 0.0])
    assert player.rating == pytest.approx(3.7)


def test_cap_resets_on_the_next_day() -> None:
    now = [NOON]
    engine = RatingEngine(clock=lambda: now[0])
    player = _player("p", 3.0)

    for _ in range(3):
        engine.apply_rating_change(player, 0.15)
    assert player.rating == pytest.approx(3.3)

    now[0] = NOON + timedelta(days=1)
    update = engine.apply_rating_change(player, 0.15)
    assert update.actual_change == pytest.approx(0.15)
    assert player.rating == pytest.approx(3.45)


def test_global_clamp_reports_smaller_actual_change() -> None:
    engine = _engine()
    player = _player("p", 7.0)

    update = engine.apply_rating_change(player, 0.1)

    assert update.new_rating == pytest.approx(7.0)
    assert update.actual_change == pytest.approx(0.0)
    assert engine.ledger.get("p", NOON.date()) == pytest.approx(0.1)


def test_apply_rating_change_is_deterministic_for_same_state() -> None:
    first = _engine()
    second = _engine()
    for engine in (first, second):
        engine.ledger.set("p", NOON.date(), 0.2)

    update_a = first.apply_rating_change(_player("p", 5.0), 0.15)
    update_b = second.apply_rating_change(_player("p", 5.0), 0.15)

    assert update_a == update_b


def test_each_applied_change_appends_one_history_snapshot() -> None:
    engine = _engine()
    player = _player("p", 3.0)

    for change in (0.1, 0.1, 0.1, 0.1, -0.05):
        engine.apply_rating_change(player, change)

    assert len(player.rating_history) == 5
    assert [snapshot.kind for snapshot in player.rating_history] == ["match"] * 5
    assert player.rating_history[-1].rating == pytest.approx(player.rating)
    assert all(snapshot.timestamp == NOON for snapshot in player.rating_history)


def test_settle_match_uses_pre_match_team_averages() -> None:
    engine = _engine()
    match = _match((5.0, 5.0, 3.0, 3.0), winner=Team.TEAM1)

    events = engine.settle_match(match)

    assert [event.player_id for event in events] == ["a", "b", "c", "d"]
    by_id = {event.player_id: event for event in events}
    assert by_id["a"].actual_change == pytest.approx(0.05)
    assert by_id["b"].actual_change == pytest.approx(0.05)
    assert by_id["c"].actual_change == pytest.approx(-0.05)
    assert by_id["d"].actual_change == pytest.approx(-0.05)
    assert by_id["a"].opponent_average == pytest.approx(3.0)
    assert by_id["c"].opponent_average == pytest.approx(5.0)
    assert match.team1[0].rating == pytest.approx(5.05)
    assert match.team2[1].rating == pytest.approx(2.95)


def test_settle_match_with_team2_winning_updates_winners_first() -> None:
    engine = _engine()
    match = _match((3.0, 3.0, 3.0, 3.0), winner=Team.TEAM2)

    events = engine.settle_match(match)

    assert [event.player_id for event in events] == ["c", "d", "a", "b"]
    assert all(event.won for event in events[:2])
    assert [event.actual_change for event in events] == pytest.approx([0.1, 0.1, -0.1, -0.1])
    assert all(event.team is Team.TEAM2 for event in events[:2])
    assert all(event.match_id == "m1" for event in events)


def test_settle_match_records_history_with_match_id() -> None:
    engine = _engine()
    match = _match((2.0, 2.5, 3.0, 3.5))

    engine.settle_match(match)

    for player in (*match.team1, *match.team2):
        assert len(player.rating_history) == 1
        assert player.rating_history[0].match_id == "m1"


def test_settle_match_accepts_string_winner_value() -> None:
    engine = _engine()
    a, b, c, d = (_player(pid, 3.0) for pid in "abcd")
    match = DoublesMatch(team1=(a, b), team2=(c, d), winner="team2")  # type: ignore[arg-type]

    events = engine.settle_match(match)

    assert events[0].team is Team.TEAM2


@pytest.mark.parametrize(
    "build",
    [
        lambda a, b, c, d: DoublesMatch(team1=(a,), team2=(c, d), winner=Team.TEAM1),
        lambda a, b, c, d: DoublesMatch(team1=(a, b), team2=(c, d, b), winner=Team.TEAM1),
        lambda a, b, c, d: DoublesMatch(team1=(a, b), team2=(c, d), winner=None),
        lambda a, b, c, d: DoublesMatch(team1=(a, b), team2=(c, d), winner="draw"),
        lambda a, b, c, d: DoublesMatch(team1=(a, b), team2=(c, a), winner=Team.TEAM1),
    ],
    ids=["short-team", "long-team", "missing-winner", "unknown-winner", "duplicate-player"],
)
def test_malformed_match_raises_without_mutation(build) -> None:
    engine = _engine()
    a, b, c, d = (_player(pid, 3.0) for pid in "abcd")
    match = build(a, b, c, d)

    with pytest.raises(InvalidInputError):
        engine.settle_match(match)

    for player in (a, b, c, d):
        assert player.rating == pytest.approx(3.0)
        assert player.rating_history == []
    assert len(engine.ledger) == 0


def test_random_match_sequences_respect_bounds_and_daily_cap() -> None:
    rng = random.Random(1234)
    engine = _engine()
    players = [_player(f"p{index}", rng.uniform(0.0, 7.0)) for index in range(8)]
    applied: dict[str, float] = {player.player_id: 0.0 for player in players}

    for _ in range(200):
        a, b, c, d = rng.sample(players, 4)
        winner = rng.choice([Team.TEAM1, Team.TEAM2])
        for event in engine.settle_match(DoublesMatch(team1=(a, b), team2=(c, d), winner=winner)):
            applied[event.player_id] += event.actual_change

    for player in players:
        assert 0.0 <= player.rating <= 7.0
        assert -0.3 - 1e-9 <= applied[player.player_id] <= 0.3 + 1e-9
        ledger_value = engine.ledger.get(player.player_id, NOON.date())
        assert -0.3 <= ledger_value <= 0.3


def test_extreme_ratings_stay_within_bounds() -> None:
    engine = _engine()
    floor = _player("floor", 0.02)
    ceiling = _player("ceiling", 6.98)

    engine.apply_rating_change(floor, engine.calculate_rating_change(floor.rating, 0.0, False))
    engine.apply_rating_change(ceiling, engine.calculate_rating_change(ceiling.rating, 7.0, True))

    assert floor.rating == pytest.approx(0.0)
    assert ceiling.rating == pytest.approx(7.0)


def test_settle_match_with_explicit_now_uses_that_day() -> None:
    engine = _engine()
    match = _match((3.0, 3.0, 3.0, 3.0))
    pinned = NOON - timedelta(days=1)

    engine.settle_match(match, now=pinned)

    assert engine.ledger.get("a", pinned.date()) == pytest.approx(0.10)
    assert engine.ledger.get("a", NOON.date()) == 0.0
    assert match.team1[0].rating_history[-1].timestamp == pinned

"""Thread-safety tests for settling overlapping matches on one engine."""

from __future__ import annotations

import random
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime

import pytest

from domain.ratings.common import DoublesMatch, PlayerRecord, Team
from domain.ratings.padel.calculator import RatingEngine

NOON = datetime(2026, 5, 2, 12, 0, 0)


def test_overlapping_matches_keep_history_and_daily_cap_consistent() -> None:
    engine = RatingEngine(clock=lambda: NOON)
    players = [PlayerRecord(player_id=f"p{index}", rating=3.0) for index in range(6)]
    rng = random.Random(7)
    matches = []
    for _ in range(120):
        a, b, c, d = rng.sample(players, 4)
        matches.append(
            DoublesMatch(team1=(a, b), team2=(c, d), winner=rng.choice([Team.TEAM1, Team.TEAM2]))
        )

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(engine.settle_match, matches))

    appearances = {player.player_id: 0 for player in players}
    net_change = {player.player_id: 0.0 for player in players}
    for events in results:
        assert len(events) == 4
        for event in events:
            appearances[event.player_id] += 1
            net_change[event.player_id] += event.actual_change

    for player in players:
        assert len(player.rating_history) == appearances[player.player_id]
        assert player.rating == pytest.approx(3.0 + net_change[player.player_id])
        assert -0.3 - 1e-9 <= net_change[player.player_id] <= 0.3 + 1e-9
        assert player.rating_history[-1].rating == pytest.approx(player.rating)

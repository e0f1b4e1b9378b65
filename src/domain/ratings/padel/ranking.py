"""Leaderboard ordering over player records."""

from __future__ import annotations

from collections.abc import Iterable

from domain.ratings.common import PlayerRecord


def rank_players(players: Iterable[PlayerRecord]) -> list[PlayerRecord]:
    """Highest rating first; ties fall back to name, then id, for a stable order."""
    return sorted(
        players,
        key=lambda player: (-player.rating, player.name or "", player.player_id),
    )


def player_rank(players: Iterable[PlayerRecord], player_id: str) -> int | None:
    """1-based leaderboard position of ``player_id``, or None when absent."""
    for position, player in enumerate(rank_players(players), start=1):
        if player.player_id == player_id:
            return position
    return None


__all__ = ["player_rank", "rank_players"]

"""Database repository helpers."""

from repositories.players import (
    PLAYER_RATING_REPOSITORY,
    count_rated_players,
    ensure_player_rating_schema,
    fetch_rating_history,
    insert_player,
    load_daily_ledger,
    load_players,
    prune_daily_ledger,
    save_daily_ledger,
    save_players,
    top_players,
    upsert_rating_system,
)

__all__ = [
    "PLAYER_RATING_REPOSITORY",
    "count_rated_players",
    "ensure_player_rating_schema",
    "fetch_rating_history",
    "insert_player",
    "load_daily_ledger",
    "load_players",
    "prune_daily_ledger",
    "save_daily_ledger",
    "save_players",
    "top_players",
    "upsert_rating_system",
]

"""Persistence helpers for player ratings, rating history and the daily ledger."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from datetime import UTC, date, datetime
from typing import Any, cast

from sqlalchemy import delete, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from domain.ratings.common import PlayerRecord, RatingSnapshot
from models import Player, PlayerDailyRatingChange, PlayerRatingHistory, RatingSystem
from repositories.base import BaseRatingRepository

PLAYER_RATING_REPOSITORY = BaseRatingRepository[RatingSystem, Player](
    system_model=RatingSystem,
    entity_model=Player,
    dependent_models=(PlayerRatingHistory, PlayerDailyRatingChange),
)


def _utc_now() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


def _history_row(player_id: str, snapshot: RatingSnapshot) -> PlayerRatingHistory:
    return PlayerRatingHistory(
        player_id=player_id,
        recorded_at=snapshot.timestamp,
        rating=snapshot.rating,
        kind=snapshot.kind,
        match_id=snapshot.match_id,
    )


def _snapshot(row: PlayerRatingHistory) -> RatingSnapshot:
    return RatingSnapshot(
        timestamp=row.recorded_at,
        rating=row.rating,
        kind=row.kind,
        match_id=row.match_id,
    )


def _to_record(player: Player, *, with_history: bool = True) -> PlayerRecord:
    history = [_snapshot(row) for row in player.history] if with_history else []
    return PlayerRecord(
        player_id=player.id,
        rating=player.rating,
        rating_history=history,
        name=player.name,
        persisted_history=len(history),
    )


def ensure_player_rating_schema(engine: Engine) -> None:
    """Create player rating tables and indexes if they do not exist."""
    PLAYER_RATING_REPOSITORY.ensure_schema(engine)


def upsert_rating_system(
    session: Session,
    *,
    name: str,
    description: str | None,
    config_json: dict[str, Any],
) -> RatingSystem:
    """Create or update one rating system definition."""
    return cast(
        RatingSystem,
        PLAYER_RATING_REPOSITORY.upsert_system(
            session,
            name=name,
            description=description,
            config_json=config_json,
        ),
    )


def insert_player(session: Session, record: PlayerRecord) -> Player:
    """Insert a new player together with its full rating history."""
    if not record.name:
        raise ValueError(f"player_id={record.player_id} requires a name to be stored")
    player = Player(id=record.player_id, name=record.name, rating=record.rating)
    player.history = [_history_row(record.player_id, snapshot) for snapshot in record.rating_history]
    session.add(player)
    session.flush()
    record.persisted_history = len(record.rating_history)
    return player


def load_players(
    session: Session,
    player_ids: Sequence[str],
    *,
    lock: bool = False,
) -> list[PlayerRecord]:
    """Load player records with history, in the order requested.

    With ``lock`` the player rows are selected ``FOR UPDATE`` (in id order) so
    concurrent settlements of the same player queue on the database.
    """
    unique_ids = list(dict.fromkeys(player_ids))
    stmt = select(Player).where(Player.id.in_(unique_ids))
    if lock:
        stmt = stmt.order_by(Player.id).with_for_update()
    rows = session.execute(stmt).scalars().all()
    by_id = {row.id: row for row in rows}

    missing = [player_id for player_id in unique_ids if player_id not in by_id]
    if missing:
        raise LookupError(f"Unknown player ids: {missing}")

    records = {player_id: _to_record(by_id[player_id]) for player_id in unique_ids}
    return [records[player_id] for player_id in player_ids]


def save_players(session: Session, players: Iterable[PlayerRecord]) -> int:
    """Store current ratings and append the snapshots after ``persisted_history``.

    Player rows are version-checked on flush; a row changed by another
    transaction since it was loaded raises ``StaleDataError``.
    Returns the number of history rows inserted.
    """
    records = {record.player_id: record for record in players}
    if not records:
        return 0

    rows = {
        row.id: row
        for row in session.execute(select(Player).where(Player.id.in_(list(records)))).scalars()
    }

    inserted = 0
    now = _utc_now()
    for player_id, record in records.items():
        row = rows.get(player_id)
        if row is None:
            raise LookupError(f"Unknown player id: {player_id}")
        row.rating = record.rating
        row.updated_at = now

        pending = record.rating_history[record.persisted_history :]
        session.add_all(_history_row(player_id, snapshot) for snapshot in pending)
        inserted += len(pending)

    session.flush()
    for record in records.values():
        record.persisted_history = len(record.rating_history)
    return inserted


def fetch_rating_history(session: Session, player_id: str) -> list[RatingSnapshot]:
    rows = session.execute(
        select(PlayerRatingHistory)
        .where(PlayerRatingHistory.player_id == player_id)
        .order_by(PlayerRatingHistory.id)
    ).scalars()
    return [_snapshot(row) for row in rows]


def load_daily_ledger(session: Session, day: date) -> dict[tuple[str, date], float]:
    """Return persisted ledger entries for one date."""
    rows = session.execute(
        select(PlayerDailyRatingChange).where(PlayerDailyRatingChange.change_date == day)
    ).scalars()
    return {(row.player_id, row.change_date): row.cumulative_change for row in rows}


def save_daily_ledger(session: Session, entries: Mapping[tuple[str, date], float]) -> None:
    """Upsert ledger entries keyed by (player_id, date)."""
    for (player_id, change_date), cumulative_change in entries.items():
        row = session.execute(
            select(PlayerDailyRatingChange).where(
                PlayerDailyRatingChange.player_id == player_id,
                PlayerDailyRatingChange.change_date == change_date,
            )
        ).scalar_one_or_none()
        if row is None:
            session.add(
                PlayerDailyRatingChange(
                    player_id=player_id,
                    change_date=change_date,
                    cumulative_change=cumulative_change,
                )
            )
        else:
            row.cumulative_change = cumulative_change
    session.flush()


def prune_daily_ledger(session: Session, *, before: date) -> int:
    """Delete ledger rows dated strictly before ``before``."""
    result = session.execute(
        delete(PlayerDailyRatingChange).where(PlayerDailyRatingChange.change_date < before)
    )
    return int(result.rowcount or 0)


def top_players(session: Session, *, limit: int = 20) -> list[PlayerRecord]:
    """Highest-rated players, without history."""
    rows = session.execute(
        select(Player).order_by(Player.rating.desc(), Player.name, Player.id).limit(limit)
    ).scalars()
    return [_to_record(row, with_history=False) for row in rows]


def count_rated_players(session: Session) -> int:
    return PLAYER_RATING_REPOSITORY.count_entities(session)


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

"""Session-scoped workflows: register players and settle recorded matches."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from domain.ratings.common import (
    DoublesMatch,
    PlayerRatingEvent,
    PlayerRecord,
    Team,
    TrialMatchResult,
)
from domain.ratings.errors import InvalidInputError
from domain.ratings.padel.calculator import RatingEngine
from domain.ratings.padel.levels import describe_rating
from domain.ratings.padel.seeding import seed_player
from repositories.players import (
    insert_player,
    load_daily_ledger,
    load_players,
    prune_daily_ledger,
    save_daily_ledger,
    save_players,
)

logger = logging.getLogger(__name__)

MAX_SETTLEMENT_ATTEMPTS = 3


@dataclass(frozen=True)
class RegistrationSummary:
    """Outcome for one newly stored player."""

    player_id: str
    name: str
    rating: float
    level: str


@dataclass(frozen=True)
class SettlementSummary:
    """Outcome for one settled match."""

    match_id: str | None
    winner: Team
    events: tuple[PlayerRatingEvent, ...]
    inserted_history_rows: int


def register_player(
    *,
    session_factory: sessionmaker[Session],
    engine: RatingEngine,
    player_id: str,
    name: str,
    trials: Sequence[TrialMatchResult],
    echo: Callable[[str], None] | None = None,
) -> RegistrationSummary:
    """Rate a new player from trial matches and store them with an ``initial`` snapshot."""
    record = engine.initial_player(player_id, trials, name=name)
    return _store_new_player(session_factory, record, echo=echo)


def seed_legacy_player(
    *,
    session_factory: sessionmaker[Session],
    engine: RatingEngine,
    player_id: str,
    name: str,
    wins: int,
    matches_played: int,
    echo: Callable[[str], None] | None = None,
) -> RegistrationSummary:
    """Store a pre-existing player rated from their historical win rate."""
    record = seed_player(
        player_id,
        wins=wins,
        matches_played=matches_played,
        seeded_at=engine.now(),
        name=name,
        min_rating=engine.params.min_rating,
        max_rating=engine.params.max_rating,
    )
    return _store_new_player(session_factory, record, echo=echo)


def settle_recorded_match(
    *,
    session_factory: sessionmaker[Session],
    engine: RatingEngine,
    team1_ids: Sequence[str],
    team2_ids: Sequence[str],
    winner: Team | str,
    match_id: str | None = None,
    team1_score: int | None = None,
    team2_score: int | None = None,
    echo: Callable[[str], None] | None = None,
) -> SettlementSummary:
    """Load four players, settle the match, and persist ratings, history and ledger.

    The engine's per-player locks are held for the whole unit of work and the
    player rows are loaded ``FOR UPDATE``. A write that still races another
    transaction fails the version check and the settlement is retried from a
    fresh load, up to ``MAX_SETTLEMENT_ATTEMPTS`` times.
    """
    try:
        winner_team = Team(winner)
    except ValueError as exc:
        raise InvalidInputError(
            f"winner={winner!r} is not one of {[team.value for team in Team]}"
        ) from exc

    player_ids = [*team1_ids, *team2_ids]
    now = engine.now()
    with engine.players_locked(player_ids):
        for attempt in range(1, MAX_SETTLEMENT_ATTEMPTS + 1):
            try:
                events, inserted = _settle_once(
                    session_factory,
                    engine,
                    player_ids=player_ids,
                    team1_size=len(team1_ids),
                    match_id=match_id,
                    winner=winner_team,
                    team1_score=team1_score,
                    team2_score=team2_score,
                    now=now,
                )
                break
            except StaleDataError:
                if attempt == MAX_SETTLEMENT_ATTEMPTS:
                    raise
                logger.warning(
                    "players changed concurrently, retrying match_id=%s attempt=%d",
                    match_id,
                    attempt + 1,
                )

    if echo is not None:
        for event in events:
            echo(
                f"player={event.player_id} team={event.team.value} won={event.won} "
                f"pre={event.pre_rating:.2f} post={event.post_rating:.2f} "
                f"change={event.actual_change:+.2f}"
            )

    return SettlementSummary(
        match_id=match_id,
        winner=winner_team,
        events=tuple(events),
        inserted_history_rows=inserted,
    )


def _settle_once(
    session_factory: sessionmaker[Session],
    engine: RatingEngine,
    *,
    player_ids: Sequence[str],
    team1_size: int,
    match_id: str | None,
    winner: Team,
    team1_score: int | None,
    team2_score: int | None,
    now: datetime,
) -> tuple[list[PlayerRatingEvent], int]:
    today = now.date()
    previous_ledger = engine.ledger.snapshot(today)
    with session_factory() as session:
        try:
            players = load_players(session, player_ids, lock=True)
            # The stored ledger is authoritative for the players being settled.
            engine.ledger.replace(today, player_ids, load_daily_ledger(session, today))

            match = DoublesMatch(
                team1=tuple(players[:team1_size]),
                team2=tuple(players[team1_size:]),
                winner=winner,
                match_id=match_id,
                team1_score=team1_score,
                team2_score=team2_score,
            )
            events = engine.settle_match(match, now=now)

            inserted = save_players(session, players)
            save_daily_ledger(
                session,
                {
                    key: value
                    for key, value in engine.ledger.snapshot(today).items()
                    if key[0] in player_ids
                },
            )
            cutoff = today - timedelta(days=engine.params.ledger_retention_days - 1)
            prune_daily_ledger(session, before=cutoff)
            session.commit()
        except Exception:
            session.rollback()
            engine.ledger.replace(today, player_ids, previous_ledger)
            raise
    return events, inserted


def _store_new_player(
    session_factory: sessionmaker[Session],
    record: PlayerRecord,
    *,
    echo: Callable[[str], None] | None,
) -> RegistrationSummary:
    with session_factory() as session:
        try:
            insert_player(session, record)
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            raise InvalidInputError(
                f"player_id={record.player_id} or name={record.name!r} is already registered"
            ) from exc
        except Exception:
            session.rollback()
            raise

    summary = RegistrationSummary(
        player_id=record.player_id,
        name=record.name or record.player_id,
        rating=record.rating,
        level=describe_rating(record.rating),
    )
    logger.info("stored player_id=%s rating=%.2f", summary.player_id, summary.rating)
    if echo is not None:
        echo(
            f"registered player_id={summary.player_id} name={summary.name} "
            f"rating={summary.rating:.1f} level={summary.level}"
        )
    return summary


__all__ = [
    "RegistrationSummary",
    "SettlementSummary",
    "register_player",
    "seed_legacy_player",
    "settle_recorded_match",
]

#!/usr/bin/env python3
"""Padel rating commands: register and seed players, settle matches, show rankings."""

from __future__ import annotations

import logging
import re
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated

import typer
from sqlalchemy.orm import Session, sessionmaker

ROOT_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT_DIR / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from db import create_db_engine, create_session_factory, default_db_url
from domain.pipeline import register_player, seed_legacy_player, settle_recorded_match
from domain.ratings.common import Team, TrialMatchResult
from domain.ratings.errors import InvalidInputError
from domain.ratings.padel.calculator import RatingEngine
from domain.ratings.padel.config import RatingSystemConfig, load_rating_system_configs
from domain.ratings.padel.levels import describe_rating
from repositories.players import (
    ensure_player_rating_schema,
    fetch_rating_history,
    top_players,
    upsert_rating_system,
)

DEFAULT_CONFIG_DIR = ROOT_DIR / "configs" / "ratings" / "padel"

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="Padel player rating commands.",
)

DbUrlOption = Annotated[
    str | None,
    typer.Option(
        "--db-url",
        help="Database URL. Defaults to $PADEL_DB_URL or the local padel postgres instance.",
    ),
]
ConfigDirOption = Annotated[
    Path,
    typer.Option("--config-dir", help="Directory of rating system TOML configs."),
]
ConfigNameOption = Annotated[
    str | None,
    typer.Option(
        "--config-name",
        help="Optional single config filename (for example: default.toml).",
    ),
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Log engine decisions at DEBUG level."),
]


@dataclass(frozen=True)
class RatingContext:
    session_factory: sessionmaker[Session]
    engine: RatingEngine
    config: RatingSystemConfig


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _select_config(config_dir: Path, config_name: str | None) -> RatingSystemConfig:
    configs = load_rating_system_configs(config_dir)
    if config_name is None:
        return configs[0]
    for config in configs:
        if config.file_path.name == config_name:
            return config
    raise typer.BadParameter(
        f"No config named '{config_name}' found in {config_dir}",
        param_hint="--config-name",
    )


def _open_context(
    *,
    db_url: str | None,
    config_dir: Path,
    config_name: str | None,
    verbose: bool,
) -> RatingContext:
    _configure_logging(verbose)
    config = _select_config(config_dir, config_name)

    db_engine = create_db_engine(db_url or default_db_url())
    ensure_player_rating_schema(db_engine)
    session_factory = create_session_factory(db_engine)
    with session_factory() as session:
        upsert_rating_system(
            session,
            name=config.name,
            description=config.description,
            config_json=config.as_config_json(),
        )
        session.commit()

    return RatingContext(
        session_factory=session_factory,
        engine=RatingEngine(config.parameters),
        config=config,
    )


def _player_id_from_name(name: str) -> str:
    player_id = re.sub(r"[^a-z0-9]", "", name.lower())
    if not player_id:
        raise typer.BadParameter(
            f"Cannot derive a player id from name {name!r}",
            param_hint="--player-id",
        )
    return player_id


def _parse_trials(outcomes: list[str], opponent_ratings: list[float]) -> list[TrialMatchResult]:
    if opponent_ratings and len(opponent_ratings) != len(outcomes):
        raise typer.BadParameter(
            f"Got {len(opponent_ratings)} opponent ratings for {len(outcomes)} trials",
            param_hint="--opponent-rating",
        )

    trials: list[TrialMatchResult] = []
    for index, outcome in enumerate(outcomes):
        normalized = outcome.strip().lower()
        if normalized not in ("win", "loss"):
            raise typer.BadParameter(
                f"Trial outcome must be 'win' or 'loss', got {outcome!r}",
                param_hint="--trial",
            )
        trials.append(
            TrialMatchResult(
                won=normalized == "win",
                opponent_rating=opponent_ratings[index] if opponent_ratings else None,
            )
        )
    return trials


@app.command()
def register(
    name: Annotated[str, typer.Argument(help="Player display name.")],
    trial: Annotated[
        list[str],
        typer.Option("--trial", help="Trial outcome, 'win' or 'loss'. Repeat once per trial."),
    ],
    opponent_rating: Annotated[
        list[float] | None,
        typer.Option(
            "--opponent-rating",
            help="Opponent rating per trial (required by the opponent_relative trial method).",
        ),
    ] = None,
    player_id: Annotated[
        str | None,
        typer.Option("--player-id", help="Stable id. Defaults to the name, lowercased alphanumerics."),
    ] = None,
    db_url: DbUrlOption = None,
    config_dir: ConfigDirOption = DEFAULT_CONFIG_DIR,
    config_name: ConfigNameOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Register a new player rated from their trial matches."""
    trials = _parse_trials(trial, opponent_rating or [])
    context = _open_context(
        db_url=db_url,
        config_dir=config_dir,
        config_name=config_name,
        verbose=verbose,
    )
    try:
        register_player(
            session_factory=context.session_factory,
            engine=context.engine,
            player_id=player_id or _player_id_from_name(name),
            name=name,
            trials=trials,
            echo=typer.echo,
        )
    except InvalidInputError as exc:
        raise typer.BadParameter(str(exc)) from exc


@app.command()
def seed(
    name: Annotated[str, typer.Argument(help="Player display name.")],
    wins: Annotated[int, typer.Option("--wins", help="Matches won in the legacy record.")],
    played: Annotated[int, typer.Option("--played", help="Matches played in the legacy record.")],
    player_id: Annotated[
        str | None,
        typer.Option("--player-id", help="Stable id. Defaults to the name, lowercased alphanumerics."),
    ] = None,
    db_url: DbUrlOption = None,
    config_dir: ConfigDirOption = DEFAULT_CONFIG_DIR,
    config_name: ConfigNameOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Store an existing player rated from a historical win/loss record."""
    context = _open_context(
        db_url=db_url,
        config_dir=config_dir,
        config_name=config_name,
        verbose=verbose,
    )
    try:
        seed_legacy_player(
            session_factory=context.session_factory,
            engine=context.engine,
            player_id=player_id or _player_id_from_name(name),
            name=name,
            wins=wins,
            matches_played=played,
            echo=typer.echo,
        )
    except InvalidInputError as exc:
        raise typer.BadParameter(str(exc)) from exc


@app.command()
def settle(
    team1: Annotated[list[str], typer.Option("--team1", help="Player id on team 1. Repeat twice.")],
    team2: Annotated[list[str], typer.Option("--team2", help="Player id on team 2. Repeat twice.")],
    winner: Annotated[Team, typer.Option("--winner", help="Winning side.")],
    match_id: Annotated[str | None, typer.Option("--match-id")] = None,
    team1_score: Annotated[int | None, typer.Option("--team1-score")] = None,
    team2_score: Annotated[int | None, typer.Option("--team2-score")] = None,
    db_url: DbUrlOption = None,
    config_dir: ConfigDirOption = DEFAULT_CONFIG_DIR,
    config_name: ConfigNameOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Apply rating changes for a finished doubles match."""
    context = _open_context(
        db_url=db_url,
        config_dir=config_dir,
        config_name=config_name,
        verbose=verbose,
    )
    try:
        summary = settle_recorded_match(
            session_factory=context.session_factory,
            engine=context.engine,
            team1_ids=team1,
            team2_ids=team2,
            winner=winner,
            match_id=match_id,
            team1_score=team1_score,
            team2_score=team2_score,
            echo=typer.echo,
        )
    except (InvalidInputError, LookupError) as exc:
        raise typer.BadParameter(str(exc)) from exc

    typer.echo(
        "completed "
        f"match_id={summary.match_id} "
        f"winner={summary.winner.value} "
        f"inserted_history_rows={summary.inserted_history_rows}"
    )


@app.command()
def top(
    limit: Annotated[int, typer.Option("--limit", help="Number of players to return.")] = 20,
    db_url: DbUrlOption = None,
    config_dir: ConfigDirOption = DEFAULT_CONFIG_DIR,
    config_name: ConfigNameOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Show the highest-rated players."""
    if limit <= 0:
        raise typer.BadParameter("--limit must be greater than 0")

    context = _open_context(
        db_url=db_url,
        config_dir=config_dir,
        config_name=config_name,
        verbose=verbose,
    )
    with context.session_factory() as session:
        players = top_players(session, limit=limit)

    if not players:
        typer.echo("no rated players")
        return

    for position, player in enumerate(players, start=1):
        typer.echo(
            f"{position:>3}. {player.name or player.player_id:<32} "
            f"{player.rating:4.2f}  {describe_rating(player.rating)}"
        )


@app.command()
def history(
    player_id: Annotated[str, typer.Argument(help="Player id.")],
    db_url: DbUrlOption = None,
    config_dir: ConfigDirOption = DEFAULT_CONFIG_DIR,
    config_name: ConfigNameOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Print a player's rating history, oldest first."""
    context = _open_context(
        db_url=db_url,
        config_dir=config_dir,
        config_name=config_name,
        verbose=verbose,
    )
    with context.session_factory() as session:
        snapshots = fetch_rating_history(session, player_id)

    if not snapshots:
        typer.echo(f"no rating history for player_id={player_id}")
        raise typer.Exit(code=1)

    for snapshot in snapshots:
        suffix = f" match_id={snapshot.match_id}" if snapshot.match_id else ""
        typer.echo(
            f"{snapshot.timestamp.isoformat(timespec='seconds')} "
            f"{snapshot.kind:<8} {snapshot.rating:4.2f}{suffix}"
        )


@app.command()
def describe(
    rating: Annotated[float, typer.Argument(help="Rating on the 0-7 scale.")],
) -> None:
    """Print the skill band for a rating."""
    typer.echo(describe_rating(rating))


if __name__ == "__main__":
    app()

"""Padel player rating engine.

Ratings live on a 0-7 scale. A settled doubles match moves each player's rating
by a small table-driven step that depends only on the outcome and on whether the
opposing team's average rating is higher, equal, or lower. Net movement per
player per calendar day is capped, and every applied change is appended to the
player's rating history.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Iterator, Mapping, Sequence
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta

from domain.ratings.common import (
    DoublesMatch,
    PlayerRatingEvent,
    PlayerRecord,
    RatingSnapshot,
    RatingUpdate,
    Team,
    TrialMatchResult,
)
from domain.ratings.errors import InvalidInputError
from domain.ratings.padel.trials import TRIAL_STRATEGIES, validate_trial_results
from domain.ratings.protocol import Clock, TrialMethod

logger = logging.getLogger(__name__)

PLAYERS_PER_TEAM = 2


@dataclass(frozen=True)
class RatingParameters:
    min_rating: float = 0.0
    max_rating: float = 7.0
    daily_max_increase: float = 0.3
    daily_max_decrease: float = -0.3
    win_vs_higher: float = 0.15
    win_vs_same: float = 0.10
    win_vs_lower: float = 0.05
    loss_vs_higher: float = -0.05
    loss_vs_same: float = -0.10
    loss_vs_lower: float = -0.15
    trial_base_rating: float = 1.5
    trial_win_bonus: float = 0.5
    trial_loss_penalty: float = 0.25
    trial_max_rating: float = 3.0
    trial_match_count: int = 3
    trial_method: TrialMethod = TrialMethod.FLAT
    tie_tolerance: float = 1e-9
    ledger_retention_days: int = 2


def _utc_now() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


class DailyChangeLedger:
    """Cumulative signed rating change per (player, calendar date)."""

    def __init__(self, entries: Mapping[tuple[str, date], float] | None = None) -> None:
        self._lock = threading.Lock()
        self._changes: dict[tuple[str, date], float] = dict(entries or {})

    def __len__(self) -> int:
        with self._lock:
            return len(self._changes)

    def get(self, player_id: str, day: date) -> float:
        with self._lock:
            return self._changes.get((player_id, day), 0.0)

    def set(self, player_id: str, day: date, cumulative_change: float) -> None:
        with self._lock:
            self._changes[(player_id, day)] = cumulative_change

    def load(self, entries: Mapping[tuple[str, date], float]) -> None:
        """Merge persisted entries, replacing any in-memory value for the same key."""
        with self._lock:
            self._changes.update(entries)

    def replace(
        self,
        day: date,
        player_ids: Iterable[str],
        entries: Mapping[tuple[str, date], float],
    ) -> None:
        """Set the listed players' entries for ``day`` from ``entries``.

        Players without a key in ``entries`` have their entry for ``day`` removed.
        """
        with self._lock:
            for player_id in player_ids:
                key = (player_id, day)
                if key in entries:
                    self._changes[key] = entries[key]
                else:
                    self._changes.pop(key, None)

    def snapshot(self, day: date | None = None) -> dict[tuple[str, date], float]:
        with self._lock:
            if day is None:
                return dict(self._changes)
            return {key: value for key, value in self._changes.items() if key[1] == day}

    def prune(self, before: date) -> int:
        """Drop entries dated strictly before ``before``; return how many were removed."""
        with self._lock:
            stale = [key for key in self._changes if key[1] < before]
            for key in stale:
                del self._changes[key]
            return len(stale)


class RatingEngine:
    """Applies bounded rating changes for trial assessments and settled matches.

    One engine is constructed per process (or per test) and handed to callers.
    The engine owns its ``DailyChangeLedger``; player records are owned by the
    caller and only their ``rating`` and ``rating_history`` fields are mutated.
    Updates touching the same player are serialized with a per-player lock.
    """

    def __init__(
        self,
        params: RatingParameters | None = None,
        *,
        clock: Clock | None = None,
        ledger: DailyChangeLedger | None = None,
    ) -> None:
        self.params = params or RatingParameters()
        self.ledger = ledger if ledger is not None else DailyChangeLedger()
        self._clock = clock or _utc_now
        self._locks_guard = threading.Lock()
        self._prune_guard = threading.Lock()
        self._player_locks: dict[str, threading.RLock] = {}
        self._last_pruned_on: date | None = None

    def now(self) -> datetime:
        return self._clock()

    def today(self) -> date:
        return self.now().date()

    # Trial assessment

    def initialize_rating(self, trial_results: Sequence[TrialMatchResult]) -> float:
        """Initial rating for a new player from exactly ``trial_match_count`` trials."""
        results = validate_trial_results(
            trial_results,
            expected_count=self.params.trial_match_count,
        )
        strategy = TRIAL_STRATEGIES[self.params.trial_method]
        return strategy(results, self.params)

    def initial_player(
        self,
        player_id: str,
        trial_results: Sequence[TrialMatchResult],
        *,
        name: str | None = None,
    ) -> PlayerRecord:
        rating = self.initialize_rating(trial_results)
        return PlayerRecord(
            player_id=player_id,
            rating=rating,
            rating_history=[RatingSnapshot(timestamp=self.now(), rating=rating, kind="initial")],
            name=name,
        )

    # Match settlement

    def calculate_rating_change(
        self,
        player_rating: float,
        opponent_average: float,
        won: bool,
    ) -> float:
        """Table-driven change, pre-clamped so the rating cannot leave global bounds."""
        rating_diff = opponent_average - player_rating
        if abs(rating_diff) <= self.params.tie_tolerance:
            change = self.params.win_vs_same if won else self.params.loss_vs_same
        elif rating_diff > 0:
            change = self.params.win_vs_higher if won else self.params.loss_vs_higher
        else:
            change = self.params.win_vs_lower if won else self.params.loss_vs_lower

        projected = player_rating + change
        if projected > self.params.max_rating:
            return self.params.max_rating - player_rating
        if projected < self.params.min_rating:
            return self.params.min_rating - player_rating
        return change

    def apply_rating_change(self, player: PlayerRecord, proposed_change: float) -> RatingUpdate:
        """Apply a change subject to today's cap and global bounds, recording history."""
        with self._player_lock(player.player_id):
            return self._apply_locked(player, proposed_change, now=self.now(), match_id=None)

    def settle_match(
        self,
        match: DoublesMatch,
        *,
        now: datetime | None = None,
    ) -> list[PlayerRatingEvent]:
        """Update all four players of a finished match; winners' events come first.

        ``now`` pins the timestamp and ledger day; it defaults to the engine clock.
        """
        winner = self._validate_match(match)
        loser = winner.opponent
        winning_players = match.players(winner)
        losing_players = match.players(loser)

        with self.players_locked(player.player_id for player in (*winning_players, *losing_players)):
            now = now or self.now()
            event_time = match.event_time or now
            winning_avg = self._team_average(winning_players)
            losing_avg = self._team_average(losing_players)

            events = self._settle_side(
                winning_players,
                team=winner,
                won=True,
                opponent_average=losing_avg,
                match=match,
                now=now,
                event_time=event_time,
            )
            events.extend(
                self._settle_side(
                    losing_players,
                    team=loser,
                    won=False,
                    opponent_average=winning_avg,
                    match=match,
                    now=now,
                    event_time=event_time,
                )
            )

        logger.info(
            "settled match_id=%s winner=%s winning_avg=%.3f losing_avg=%.3f",
            match.match_id,
            winner.value,
            winning_avg,
            losing_avg,
        )
        return events

    def prune_ledger(self, *, today: date | None = None) -> int:
        """Drop ledger days that fall outside the retention window."""
        current_day = today or self.today()
        with self._prune_guard:
            return self._prune_locked(current_day)

    def _prune_locked(self, current_day: date) -> int:
        cutoff = current_day - timedelta(days=self.params.ledger_retention_days - 1)
        removed = self.ledger.prune(cutoff)
        self._last_pruned_on = current_day
        if removed:
            logger.debug("pruned %d daily ledger entries older than %s", removed, cutoff)
        return removed

    def _settle_side(
        self,
        players: Sequence[PlayerRecord],
        *,
        team: Team,
        won: bool,
        opponent_average: float,
        match: DoublesMatch,
        now: datetime,
        event_time: datetime,
    ) -> list[PlayerRatingEvent]:
        events: list[PlayerRatingEvent] = []
        for player in players:
            pre_rating = player.rating
            raw_change = self.calculate_rating_change(pre_rating, opponent_average, won)
            update = self._apply_locked(player, raw_change, now=now, match_id=match.match_id)
            events.append(
                PlayerRatingEvent(
                    player_id=player.player_id,
                    team=team,
                    match_id=match.match_id,
                    event_time=event_time,
                    won=won,
                    opponent_average=opponent_average,
                    pre_rating=pre_rating,
                    raw_change=raw_change,
                    post_rating=update.new_rating,
                    actual_change=update.actual_change,
                )
            )
        return events

    def _apply_locked(
        self,
        player: PlayerRecord,
        proposed_change: float,
        *,
        now: datetime,
        match_id: str | None,
    ) -> RatingUpdate:
        day = now.date()
        with self._prune_guard:
            if self._last_pruned_on != day:
                self._prune_locked(day)

        prior_daily = self.ledger.get(player.player_id, day)
        effective_change = self._cap_daily_change(prior_daily, proposed_change)
        if effective_change != proposed_change:
            logger.debug(
                "daily cap reduced change player_id=%s proposed=%.3f effective=%.3f prior_daily=%.3f",
                player.player_id,
                proposed_change,
                effective_change,
                prior_daily,
            )
        self.ledger.set(
            player.player_id,
            day,
            self._clamp_daily_total(prior_daily + effective_change),
        )

        current_rating = player.rating
        new_rating = self._clamp_rating(current_rating + effective_change)
        if new_rating != current_rating + effective_change:
            logger.debug(
                "global bounds clamped rating player_id=%s rating=%.3f",
                player.player_id,
                new_rating,
            )

        player.rating = new_rating
        player.rating_history.append(
            RatingSnapshot(timestamp=now, rating=new_rating, kind="match", match_id=match_id)
        )
        return RatingUpdate(new_rating=new_rating, actual_change=new_rating - current_rating)

    def _cap_daily_change(self, prior_daily: float, proposed_change: float) -> float:
        total = prior_daily + proposed_change
        if total > self.params.daily_max_increase:
            return max(0.0, self.params.daily_max_increase - prior_daily)
        if total < self.params.daily_max_decrease:
            return min(0.0, self.params.daily_max_decrease - prior_daily)
        return proposed_change

    def _clamp_daily_total(self, value: float) -> float:
        return max(self.params.daily_max_decrease, min(self.params.daily_max_increase, value))

    def _clamp_rating(self, value: float) -> float:
        return max(self.params.min_rating, min(self.params.max_rating, value))

    @staticmethod
    def _team_average(players: Sequence[PlayerRecord]) -> float:
        return sum(player.rating for player in players) / float(len(players))

    def _validate_match(self, match: DoublesMatch) -> Team:
        winner = match.winner
        if winner is None:
            raise InvalidInputError(f"match_id={match.match_id} is missing a winner")
        if not isinstance(winner, Team):
            try:
                winner = Team(winner)
            except ValueError as exc:
                raise InvalidInputError(
                    f"winner={winner!r} is not one of {[team.value for team in Team]} "
                    f"for match_id={match.match_id}"
                ) from exc

        for team in Team:
            players = match.players(team)
            if players is None or len(players) != PLAYERS_PER_TEAM:
                count = 0 if players is None else len(players)
                raise InvalidInputError(
                    f"{team.value} must have exactly {PLAYERS_PER_TEAM} players "
                    f"for match_id={match.match_id}, got {count}"
                )

        player_ids = [player.player_id for player in (*match.team1, *match.team2)]
        duplicates = sorted({pid for pid in player_ids if player_ids.count(pid) > 1})
        if duplicates:
            raise InvalidInputError(
                f"match_id={match.match_id} lists players more than once: {duplicates}"
            )
        return winner

    def _player_lock(self, player_id: str) -> threading.RLock:
        with self._locks_guard:
            lock = self._player_locks.get(player_id)
            if lock is None:
                lock = threading.RLock()
                self._player_locks[player_id] = lock
            return lock

    @contextmanager
    def players_locked(self, player_ids: Iterable[str]) -> Iterator[None]:
        """Hold the per-player locks for ``player_ids``; re-entrant for the calling thread."""
        # Sorted acquisition keeps two overlapping matches from deadlocking.
        with ExitStack() as stack:
            for player_id in sorted(set(player_ids)):
                stack.enter_context(self._player_lock(player_id))
            yield


__all__ = [
    "DailyChangeLedger",
    "RatingEngine",
    "RatingParameters",
]

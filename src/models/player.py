"""players, player_rating_history and player_daily_rating_changes table models."""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base


class Player(Base):
    """Current rating for one registered player."""

    __tablename__ = "players"
    __table_args__ = (
        CheckConstraint("rating >= 0.0 AND rating <= 7.0", name="ck_players_rating"),
        Index("idx_players_rating", "rating"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    rating: Mapped[float] = mapped_column(Float, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        server_default=func.now(),
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    history: Mapped[list[PlayerRatingHistory]] = relationship(
        back_populates="player",
        order_by="PlayerRatingHistory.id",
        cascade="all, delete-orphan",
    )


class PlayerRatingHistory(Base):
    """Append-only rating snapshots (one row per applied change)."""

    __tablename__ = "player_rating_history"
    __table_args__ = (
        CheckConstraint("rating >= 0.0 AND rating <= 7.0", name="ck_player_rating_history_rating"),
        CheckConstraint(
            "kind IN ('initial', 'match', 'seed')",
            name="ck_player_rating_history_kind",
        ),
        Index("idx_player_rating_history_player_time", "player_id", "recorded_at"),
        Index("idx_player_rating_history_match", "match_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    player_id: Mapped[str] = mapped_column(ForeignKey("players.id"), nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    rating: Mapped[float] = mapped_column(Float, nullable=False)
    kind: Mapped[str] = mapped_column(String(16), nullable=False)
    match_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        server_default=func.now(),
    )

    player: Mapped[Player] = relationship(back_populates="history")


class PlayerDailyRatingChange(Base):
    """Persisted daily change ledger (net change per player per date)."""

    __tablename__ = "player_daily_rating_changes"
    __table_args__ = (
        UniqueConstraint("player_id", "change_date", name="uq_player_daily_rating_change"),
        Index("idx_player_daily_rating_change_date", "change_date"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    player_id: Mapped[str] = mapped_column(ForeignKey("players.id"), nullable=False)
    change_date: Mapped[date] = mapped_column(Date, nullable=False)
    # Bounded by the configured daily caps; the engine clamps before storing.
    cumulative_change: Mapped[float] = mapped_column(Float, nullable=False)

"""Shared protocols and enums for the rating engine."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Protocol, runtime_checkable


class TrialMethod(str, Enum):
    """How a new player's initial rating is derived from trial matches."""

    FLAT = "flat"
    OPPONENT_RELATIVE = "opponent_relative"


@runtime_checkable
class Clock(Protocol):
    """Callable returning the current naive-UTC time."""

    def __call__(self) -> datetime: ...


__all__ = ["Clock", "TrialMethod"]

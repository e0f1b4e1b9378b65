"""Error types raised by the rating engine."""

from __future__ import annotations


class InvalidInputError(ValueError):
    """Malformed trial results, match shape, or seeding record.

    Raised before any rating, ledger, or history state is touched.
    """


__all__ = ["InvalidInputError"]

"""Exclusion window around a candidate appointment instant.

Two appointments of the same agent conflict when one instant falls strictly
inside the other's window. The half-width is one second short of an hour so
that back-to-back hourly slots (14:00, 15:00) do not collide.
"""

from datetime import datetime, timedelta, timezone
from typing import NamedTuple

CONFLICT_WINDOW_MS = 3_599_000
CONFLICT_HALF_WIDTH = timedelta(milliseconds=CONFLICT_WINDOW_MS)


class ConflictWindow(NamedTuple):
    """Open interval (lower, upper); both bounds are exclusive."""
    lower: datetime
    upper: datetime

    def contains(self, instant: datetime) -> bool:
        return self.lower < to_utc(instant) < self.upper


def to_utc(instant: datetime) -> datetime:
    """Normalize to an aware UTC datetime. Naive values are taken as UTC."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def conflict_window(instant: datetime) -> ConflictWindow:
    """Compute the exclusion window for ``instant``."""
    instant = to_utc(instant)
    return ConflictWindow(
        lower=instant - CONFLICT_HALF_WIDTH,
        upper=instant + CONFLICT_HALF_WIDTH,
    )

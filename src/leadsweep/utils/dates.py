"""Clock helpers shared by the schedulers.

All persisted timestamps are naive UTC so that comparisons behave the same
on PostgreSQL and SQLite.
"""

from datetime import date, datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def today(clock: Clock = utcnow) -> date:
    """Return the UTC calendar date according to ``clock``."""
    return clock().date()

"""Per-day additive counters.

Every component that produces countable events (zones scraped, leads
qualified, emails sent) reports them here. Counters are only ever
incremented with one ``INSERT ... ON CONFLICT DO UPDATE`` per call, never
overwritten.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import COUNTER_FIELDS, DailyMetric, Database
from .models.database import upsert_add
from .utils.dates import Clock, today, utcnow

logger = logging.getLogger(__name__)


@dataclass
class DailySnapshot:
    """Counters for one calendar date (zero-filled when nothing happened)."""

    day: date
    zones_scraped: int = 0
    businesses_scraped: int = 0
    leads_qualified: int = 0
    emails_sent: int = 0
    emails_failed: int = 0
    responses_received: int = 0
    conversions: int = 0

    @property
    def email_attempts(self) -> int:
        """Sends attempted today, successful or not."""
        return self.emails_sent + self.emails_failed

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "date": self.day.isoformat(),
            **{name: getattr(self, name) for name in COUNTER_FIELDS},
        }

    @classmethod
    def from_row(cls, row: DailyMetric) -> "DailySnapshot":
        return cls(day=row.date, **{name: getattr(row, name) for name in COUNTER_FIELDS})


class MetricsLedger:
    """Additive daily metrics store.

    Args:
        database: Database client.
        clock: Returns the current UTC time; the date part selects the row.
    """

    def __init__(self, database: Database, clock: Clock = utcnow) -> None:
        self.database = database
        self.clock = clock

    def today(self) -> date:
        return today(self.clock)

    @staticmethod
    def _validate(deltas: Dict[str, int]) -> Dict[str, int]:
        unknown = set(deltas) - set(COUNTER_FIELDS)
        if unknown:
            raise ValueError(f"Unknown metric counters: {sorted(unknown)}")
        for name, delta in deltas.items():
            if isinstance(delta, bool) or not isinstance(delta, int) or delta < 0:
                raise ValueError(f"Metric delta for {name} must be a non-negative int, got {delta!r}")
        return {name: delta for name, delta in deltas.items() if delta}

    async def increment(
        self,
        day: Optional[date] = None,
        session: Optional[AsyncSession] = None,
        **deltas: int,
    ) -> None:
        """Add deltas to the day's counters in one upsert.

        Args:
            day: Date to update; defaults to today per the clock.
            session: Run inside this open transaction instead of a new one.
            **deltas: Counter name to non-negative increment.

        Raises:
            ValueError: If a counter name is unknown or a delta is negative.
        """
        deltas = self._validate(deltas)
        if not deltas:
            return
        day = day or self.today()

        values: Dict[str, Any] = {name: 0 for name in COUNTER_FIELDS}
        values.update(deltas)
        values["date"] = day

        statement = upsert_add(
            self.database.dialect_name, DailyMetric, values, ["date"], list(deltas)
        )
        if session is not None:
            await session.execute(statement)
        else:
            async with self.database.session() as own_session:
                await own_session.execute(statement)

        logger.debug("Metrics for %s incremented: %s", day.isoformat(), deltas)

    async def for_day(self, day: Optional[date] = None) -> DailySnapshot:
        """Get the counters for one date (zeros when no row exists)."""
        day = day or self.today()
        async with self.database.session() as session:
            row = await session.scalar(select(DailyMetric).where(DailyMetric.date == day))
        if row is None:
            return DailySnapshot(day=day)
        return DailySnapshot.from_row(row)

    async def between(self, start: date, end: date) -> List[DailySnapshot]:
        """Get snapshots for dates in [start, end], newest first.

        Dates without a row are omitted.
        """
        async with self.database.session() as session:
            rows = await session.scalars(
                select(DailyMetric)
                .where(DailyMetric.date >= start, DailyMetric.date <= end)
                .order_by(DailyMetric.date.desc())
            )
            return [DailySnapshot.from_row(row) for row in rows]

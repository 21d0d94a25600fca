"""Daily metrics model with additive counters."""

import datetime as dt
from typing import Tuple

from sqlalchemy import Date, Integer
from sqlalchemy.orm import Mapped, mapped_column

from . import Base

COUNTER_FIELDS: Tuple[str, ...] = (
    "zones_scraped",
    "businesses_scraped",
    "leads_qualified",
    "emails_sent",
    "emails_failed",
    "responses_received",
    "conversions",
)


class DailyMetric(Base):
    """One row of counters per calendar date.

    Rows are only ever upserted additively; see ``MetricsLedger``.
    """

    __tablename__ = "daily_metrics"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, unique=True)

    zones_scraped: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    businesses_scraped: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    leads_qualified: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    emails_sent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    emails_failed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    responses_received: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    conversions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<DailyMetric(date={self.date!r})>"

"""LeadSweep Database Models.

This module contains SQLAlchemy models for zones, leads, outreach history,
suppression markers and daily metrics.
"""

from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase


class Base(AsyncAttrs, DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


# Import models to register them with Base metadata
from .zone import Zone, ZoneStatus
from .lead import Lead, LeadStatus
from .outreach import OutreachEvent, OutreachKind, Unsubscribe
from .metrics import COUNTER_FIELDS, DailyMetric

# Import database utilities
from .database import Database, insert_ignore

__all__ = [
    # Base class
    "Base",
    # Models
    "Zone",
    "ZoneStatus",
    "Lead",
    "LeadStatus",
    "OutreachEvent",
    "OutreachKind",
    "Unsubscribe",
    "DailyMetric",
    "COUNTER_FIELDS",
    # Database utilities
    "Database",
    "insert_ignore",
]

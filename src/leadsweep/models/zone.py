"""Zone SQLAlchemy model for tracking scrape coverage of the search grid."""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, Float, Index, Integer, String, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from . import Base


class ZoneStatus(str, Enum):
    """Scrape status of a zone within the current coverage cycle."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class Zone(Base):
    """SQLAlchemy model representing one grid cell of the search area.

    Attributes:
        id: Autoincrement identifier; also the insertion order tie-break.
        name: Unique zone name (``Grid_{row}_{col}``).
        zone_type: Partitioning scheme that produced the zone.
        lat_min, lat_max, lon_min, lon_max: Bounding box in decimal degrees.
        center_lat, center_lon: Box midpoint used as the search centre.
        status: Lifecycle status (pending, in_progress, completed).
        last_worked_at: When the zone was last completed, null if never.
        businesses_found: Running total of leads qualified from this zone.
        created_at: Timestamp when the zone was seeded.
    """

    __tablename__ = "zones"
    __table_args__ = (
        Index("ix_zones_status_last_worked_at", "status", "last_worked_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    zone_type: Mapped[str] = mapped_column(String(20), nullable=False, default="grid")

    lat_min: Mapped[float] = mapped_column(Float, nullable=False)
    lat_max: Mapped[float] = mapped_column(Float, nullable=False)
    lon_min: Mapped[float] = mapped_column(Float, nullable=False)
    lon_max: Mapped[float] = mapped_column(Float, nullable=False)
    center_lat: Mapped[float] = mapped_column(Float, nullable=False)
    center_lon: Mapped[float] = mapped_column(Float, nullable=False)

    status: Mapped[ZoneStatus] = mapped_column(
        SQLEnum(ZoneStatus, name="zone_status"),
        nullable=False,
        default=ZoneStatus.PENDING,
    )
    last_worked_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    businesses_found: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=datetime.utcnow
    )

    def __repr__(self) -> str:
        """Return string representation of the zone."""
        return f"<Zone(id={self.id!r}, name={self.name!r}, status={self.status.value!r})>"

    def to_dict(self) -> dict:
        """Convert zone to dictionary representation."""
        return {
            "id": self.id,
            "name": self.name,
            "zone_type": self.zone_type,
            "lat_min": self.lat_min,
            "lat_max": self.lat_max,
            "lon_min": self.lon_min,
            "lon_max": self.lon_max,
            "center_lat": self.center_lat,
            "center_lon": self.center_lon,
            "status": self.status.value,
            "last_worked_at": self.last_worked_at.isoformat() if self.last_worked_at else None,
            "businesses_found": self.businesses_found,
        }

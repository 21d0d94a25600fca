"""Persisted zone grid and idempotent seeding."""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from sqlalchemy import select

from ..models import Database, Zone, ZoneStatus, insert_ignore
from .zone_partitioner import ZoneCell

logger = logging.getLogger(__name__)


@dataclass
class SeedResult:
    """Counts reported by a seeding run."""

    inserted: int = 0
    skipped: int = 0
    total: int = 0

    def to_dict(self) -> dict:
        return {"inserted": self.inserted, "skipped": self.skipped, "total": self.total}


class ZoneStore:
    """Zone table access: seeding and lookups.

    Seeding inserts each zone if no zone with the same name exists and never
    modifies existing rows, so re-seeding after a bounds change cannot lose
    in-progress work.
    """

    def __init__(self, database: Database) -> None:
        self.database = database

    async def seed(self, cells: Iterable[ZoneCell]) -> SeedResult:
        """Insert zones that do not exist yet, keyed by name.

        Args:
            cells: Zones from ``partition``.

        Returns:
            SeedResult with inserted, skipped and total counts.
        """
        result = SeedResult()
        async with self.database.session() as session:
            for cell in cells:
                result.total += 1
                zone_id = await insert_ignore(
                    session,
                    Zone,
                    {
                        "name": cell.name,
                        "zone_type": "grid",
                        "lat_min": cell.lat_min,
                        "lat_max": cell.lat_max,
                        "lon_min": cell.lon_min,
                        "lon_max": cell.lon_max,
                        "center_lat": cell.center_lat,
                        "center_lon": cell.center_lon,
                        "status": ZoneStatus.PENDING,
                        "businesses_found": 0,
                    },
                    conflict_columns=["name"],
                )
                if zone_id is None:
                    result.skipped += 1
                else:
                    result.inserted += 1

        logger.info(
            "Zone seeding complete: %d inserted, %d skipped, %d total",
            result.inserted,
            result.skipped,
            result.total,
        )
        return result

    async def get(self, zone_id: int) -> Optional[Zone]:
        async with self.database.session() as session:
            return await session.get(Zone, zone_id)

    async def get_by_name(self, name: str) -> Optional[Zone]:
        async with self.database.session() as session:
            return await session.scalar(select(Zone).where(Zone.name == name))

    async def all_zones(self, status: Optional[ZoneStatus] = None) -> List[Zone]:
        """List zones in insertion order, optionally filtered by status."""
        query = select(Zone).order_by(Zone.id)
        if status is not None:
            query = query.where(Zone.status == status)
        async with self.database.session() as session:
            return list(await session.scalars(query))

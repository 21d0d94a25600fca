"""Zone lifecycle state machine.

Zones move ``pending -> in_progress -> completed``. When no pending zone is
left, every completed zone is reset to pending so coverage runs as a ring.
Zones that are in progress are never touched by a reset.

Claims are conditional updates (``WHERE status = 'pending'``), so two
schedulers racing for the same zone cannot both win it.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import func, select, update

from ..metrics_ledger import MetricsLedger
from ..models import Database, Zone, ZoneStatus
from ..utils.dates import Clock, utcnow

logger = logging.getLogger(__name__)


@dataclass
class ZoneStats:
    """Aggregate zone counts per status."""

    total: int = 0
    pending: int = 0
    in_progress: int = 0
    completed: int = 0
    businesses_found: int = 0

    @property
    def progress_percent(self) -> float:
        if not self.total:
            return 0.0
        return round(self.completed / self.total * 100, 2)

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "total": self.total,
            "pending": self.pending,
            "in_progress": self.in_progress,
            "completed": self.completed,
            "businesses_found": self.businesses_found,
            "progress_percent": self.progress_percent,
        }


class ZoneScheduler:
    """Selects, claims and completes zones.

    Args:
        database: Database client.
        metrics: Ledger receiving ``zones_scraped`` on completion.
        clock: Source of ``last_worked_at`` timestamps.
    """

    def __init__(
        self,
        database: Database,
        metrics: MetricsLedger,
        clock: Clock = utcnow,
    ) -> None:
        self.database = database
        self.metrics = metrics
        self.clock = clock

    async def next_pending(self) -> Optional[Zone]:
        """Return the pending zone worked least recently (never-worked first).

        Ties are broken by insertion order. Returns None when no zone is
        pending.
        """
        query = (
            select(Zone)
            .where(Zone.status == ZoneStatus.PENDING)
            .order_by(Zone.last_worked_at.asc().nulls_first(), Zone.id.asc())
            .limit(1)
        )
        async with self.database.session() as session:
            return await session.scalar(query)

    async def next_zone(self) -> Optional[Zone]:
        """Return the next pending zone, starting a new cycle if none is left.

        Returns None only when no zone can be made pending, i.e. the grid is
        empty or every zone is in progress.
        """
        zone = await self.next_pending()
        if zone is not None:
            return zone

        reset = await self.reset_cycle()
        if not reset:
            logger.info("No pending zones available")
            return None
        return await self.next_pending()

    async def mark_in_progress(self, zone_id: int) -> bool:
        """Claim a pending zone.

        Returns:
            True if this call moved the zone to in_progress, False if the
            zone does not exist or was not pending.
        """
        statement = (
            update(Zone)
            .where(Zone.id == zone_id, Zone.status == ZoneStatus.PENDING)
            .values(status=ZoneStatus.IN_PROGRESS)
            .execution_options(synchronize_session=False)
        )
        async with self.database.session() as session:
            result = await session.execute(statement)
            claimed = result.rowcount == 1

        if claimed:
            logger.info("Zone %s claimed", zone_id)
        else:
            logger.warning("Zone %s could not be claimed: not pending", zone_id)
        return claimed

    async def mark_completed(self, zone_id: int, new_business_count: int) -> bool:
        """Complete an in-progress zone and add to its business count.

        The zone update and the ``zones_scraped`` metric share one
        transaction.

        Args:
            zone_id: Zone to complete.
            new_business_count: Leads newly qualified from this pass.

        Returns:
            True if the zone was in progress and is now completed.

        Raises:
            ValueError: If new_business_count is negative.
        """
        if new_business_count < 0:
            raise ValueError(
                f"new_business_count cannot be negative, got {new_business_count}"
            )

        statement = (
            update(Zone)
            .where(Zone.id == zone_id, Zone.status == ZoneStatus.IN_PROGRESS)
            .values(
                status=ZoneStatus.COMPLETED,
                last_worked_at=self.clock(),
                businesses_found=Zone.businesses_found + new_business_count,
            )
            .execution_options(synchronize_session=False)
        )
        async with self.database.session() as session:
            result = await session.execute(statement)
            completed = result.rowcount == 1
            if completed:
                await self.metrics.increment(session=session, zones_scraped=1)

        if completed:
            logger.info(
                "Zone %s completed with %d new businesses", zone_id, new_business_count
            )
        else:
            logger.warning("Zone %s could not be completed: not in progress", zone_id)
        return completed

    async def reset_cycle(self) -> int:
        """Move every completed zone back to pending.

        Returns:
            Number of zones reset.
        """
        statement = (
            update(Zone)
            .where(Zone.status == ZoneStatus.COMPLETED)
            .values(status=ZoneStatus.PENDING)
            .execution_options(synchronize_session=False)
        )
        async with self.database.session() as session:
            result = await session.execute(statement)
            count = result.rowcount

        if count:
            logger.info("Zone cycle reset: %d zones back to pending", count)
        return count

    async def stats(self) -> ZoneStats:
        """Get zone counts per status and the total businesses found."""
        async with self.database.session() as session:
            rows = (
                await session.execute(
                    select(Zone.status, func.count(Zone.id), func.sum(Zone.businesses_found))
                    .group_by(Zone.status)
                )
            ).all()

        stats = ZoneStats()
        for status, count, businesses in rows:
            setattr(stats, ZoneStatus(status).value, count)
            stats.total += count
            stats.businesses_found += businesses or 0
        return stats

    async def is_ready(self) -> bool:
        """True iff at least one zone exists."""
        async with self.database.session() as session:
            count = await session.scalar(select(func.count(Zone.id)))
        return bool(count)

    async def stuck_zones(self) -> List[Zone]:
        """List zones left in progress, e.g. after an extraction failure."""
        async with self.database.session() as session:
            return list(
                await session.scalars(
                    select(Zone)
                    .where(Zone.status == ZoneStatus.IN_PROGRESS)
                    .order_by(Zone.id)
                )
            )

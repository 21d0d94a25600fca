"""Service orchestration for zone scraping and outreach.

This module wires the database client, the extractor and the mailer into the
zone, qualification, campaign and metrics components, and exposes the jobs
run by the CLI and the task scheduler:

1. Zone job - claim the next zone, discover businesses, qualify, complete
2. Location job - discover and qualify around a named location
3. Email job - daily campaign followed by follow-ups
4. Health check - log lead, zone and daily statistics

An extraction failure leaves the claimed zone in progress so it shows up in
``zone_stats()`` and ``stuck_zones()``; it is never silently reverted.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, Optional

from .config import Config
from .errors import ConfigurationError, ExtractionError
from .integrations.base import Extractor, LocationArea, Mailer, RawRecord, ZoneArea
from .logging_utils import ContextAdapter, LogContext
from .metrics_ledger import DailySnapshot, MetricsLedger
from .models import Database, Zone
from .processing.lead_qualifier import BatchResult, LeadQualifier
from .scheduling.campaign_scheduler import (
    CampaignScheduler,
    CampaignSettings,
    CombinedCampaignResult,
    LeadStats,
)
from .scheduling.task_scheduler import CancellationToken, PeriodicTask, TaskScheduler
from .scheduling.zone_partitioner import Bounds, partition
from .scheduling.zone_scheduler import ZoneScheduler, ZoneStats
from .scheduling.zone_store import SeedResult, ZoneStore
from .utils.dates import Clock, utcnow
from .utils.templates import MessageRenderer
from .utils.validators import CHAIN_KEYWORDS


logger = ContextAdapter(logging.getLogger(__name__), {})


@dataclass
class ServiceSettings:
    """Settings for the scraping and outreach jobs.

    Attributes:
        bounds: Search area covered by the zone grid.
        grid_size: Rows and columns of the zone grid.
        zone_based_scraping: Scrape zones instead of the named location.
        search_location: Named location for location jobs and templates.
        zone_pause_seconds: Pause between zones in continuous mode.
        campaign: Quota and cadence settings.
        auto_scraping: Register the scraping task with the task scheduler.
        auto_emailing: Register the email task with the task scheduler.
        scraping_cron, email_cron, health_check_cron: Task schedules.
        timezone: Time zone the cron expressions are evaluated in.
    """

    bounds: Bounds = field(default_factory=lambda: Bounds(30.45, 30.15, -97.65, -97.75))
    grid_size: int = 10
    zone_based_scraping: bool = False
    search_location: str = "Austin, Texas"
    zone_pause_seconds: float = 5.0
    campaign: CampaignSettings = field(default_factory=CampaignSettings)
    auto_scraping: bool = False
    auto_emailing: bool = False
    scraping_cron: str = "0 2 * * *"
    email_cron: str = "0 10 * * *"
    health_check_cron: str = "0 * * * *"
    timezone: str = "UTC"

    @classmethod
    def from_config(cls, config: Config) -> "ServiceSettings":
        """Build settings from the environment configuration."""
        return cls(
            bounds=config.get_bounds(),
            grid_size=config.GRID_SIZE,
            zone_based_scraping=config.ZONE_BASED_SCRAPING,
            search_location=config.SEARCH_LOCATION,
            zone_pause_seconds=config.ZONE_PAUSE_SECONDS,
            campaign=CampaignSettings(
                max_daily_emails=config.MAX_DAILY_EMAILS,
                followup1_after_days=config.FOLLOWUP1_AFTER_DAYS,
                followup2_after_days=config.FOLLOWUP2_AFTER_DAYS,
                send_delay_seconds=config.EMAIL_SEND_DELAY_SECONDS,
            ),
            auto_scraping=config.ENABLE_AUTO_SCRAPING,
            auto_emailing=config.ENABLE_AUTO_EMAILING,
            scraping_cron=config.SCRAPING_CRON,
            email_cron=config.EMAIL_CRON,
            health_check_cron=config.HEALTH_CHECK_CRON,
            timezone=config.SCHEDULER_TIMEZONE,
        )


@dataclass
class ZoneJobResult:
    """Result of working one zone.

    Attributes:
        zone_id: Zone that was worked.
        zone_name: Its name.
        discovered: Raw records returned by the extractor.
        batch: Qualification counts.
        completed: Whether the zone was marked completed.
    """

    zone_id: int
    zone_name: str
    discovered: int = 0
    batch: BatchResult = field(default_factory=BatchResult)
    completed: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "zone_id": self.zone_id,
            "zone_name": self.zone_name,
            "discovered": self.discovered,
            "processed": self.batch.processed,
            "qualified": self.batch.qualified,
            "completed": self.completed,
        }


@dataclass
class ContinuousRunResult:
    """Totals for a continuous zone loop."""

    zones_completed: int = 0
    zones_failed: int = 0
    qualified: int = 0
    failed_zones: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "zones_completed": self.zones_completed,
            "zones_failed": self.zones_failed,
            "qualified": self.qualified,
            "failed_zones": list(self.failed_zones),
        }


class LeadSweepService:
    """Entry point for all scraping, outreach and statistics operations.

    Args:
        database: Database client, opened by the caller.
        extractor: Business extractor; required by the scraping jobs.
        mailer: Mailer; required by the campaign jobs.
        settings: Service settings.
        renderer: Message renderer; built from settings when omitted.
        chain_keywords: Chain keywords for the qualifier.
        clock: Source of timestamps and "today" for every component.

    Example:
        >>> service = LeadSweepService(database, extractor, mailer, settings)
        >>> await service.seed_zones()
        >>> result = await service.run_zone_job()
        >>> print(result.to_dict())
    """

    def __init__(
        self,
        database: Database,
        extractor: Optional[Extractor] = None,
        mailer: Optional[Mailer] = None,
        settings: Optional[ServiceSettings] = None,
        renderer: Optional[MessageRenderer] = None,
        chain_keywords: Iterable[str] = CHAIN_KEYWORDS,
        clock: Clock = utcnow,
    ) -> None:
        self.database = database
        self.extractor = extractor
        self.mailer = mailer
        self.settings = settings or ServiceSettings()
        self.clock = clock

        self.metrics = MetricsLedger(database, clock=clock)
        self.zone_store = ZoneStore(database)
        self.zones = ZoneScheduler(database, self.metrics, clock=clock)
        self.qualifier = LeadQualifier(
            database, self.metrics, chain_keywords=chain_keywords, clock=clock
        )
        self.campaigns = CampaignScheduler(
            database,
            mailer,
            self.metrics,
            renderer or MessageRenderer(location=self.settings.search_location),
            settings=self.settings.campaign,
            clock=clock,
        )

    # Zone API

    async def seed_zones(self) -> SeedResult:
        """Partition the configured bounds and seed missing zones.

        Raises:
            ConfigurationError: If the grid size or bounds are invalid.
        """
        cells = partition(self.settings.bounds, self.settings.grid_size)
        return await self.zone_store.seed(cells)

    async def next_zone(self) -> Optional[Zone]:
        return await self.zones.next_zone()

    async def claim_zone(self, zone_id: int) -> bool:
        return await self.zones.mark_in_progress(zone_id)

    async def complete_zone(self, zone_id: int, new_business_count: int) -> bool:
        return await self.zones.mark_completed(zone_id, new_business_count)

    async def reset_zone_cycle(self) -> int:
        return await self.zones.reset_cycle()

    async def zone_stats(self) -> ZoneStats:
        return await self.zones.stats()

    async def stuck_zones(self) -> list[Zone]:
        return await self.zones.stuck_zones()

    # Lead and campaign API

    async def qualify(self, batch: Iterable[RawRecord]) -> BatchResult:
        return await self.qualifier.process_batch(batch)

    async def run_campaign(self) -> CombinedCampaignResult:
        if self.mailer is None:
            raise ConfigurationError("No mailer configured for campaign jobs")
        return await self.campaigns.run_combined_campaign()

    async def daily_stats(self, day: Optional[date] = None) -> DailySnapshot:
        return await self.metrics.for_day(day)

    async def lead_stats(self) -> LeadStats:
        return await self.campaigns.lead_stats()

    async def unsubscribe(self, lead_id: int, email: Optional[str] = None) -> bool:
        return await self.campaigns.unsubscribe(lead_id, email)

    async def mark_converted(self, lead_id: int) -> bool:
        return await self.campaigns.mark_converted(lead_id)

    async def record_response(self, lead_id: int) -> None:
        await self.campaigns.record_response(lead_id)

    # Jobs

    async def _discover(self, area: Any) -> list[RawRecord]:
        if self.extractor is None:
            raise ConfigurationError("No extractor configured for scraping jobs")
        try:
            return list(await self.extractor.discover(area))
        except ExtractionError:
            raise
        except Exception as e:
            raise ExtractionError(f"Extractor failed for {area.label}: {e}", area=area.label) from e

    async def run_zone_job(self) -> Optional[ZoneJobResult]:
        """Work the next zone end to end.

        Returns:
            The job result, or None when no zone could be claimed.

        Raises:
            ExtractionError: If the extractor fails; the zone stays in progress.
        """
        zone = await self.zones.next_zone()
        if zone is None:
            logger.info("No zone available to scrape")
            return None

        with LogContext(zone=zone.name):
            if not await self.zones.mark_in_progress(zone.id):
                logger.warning("Zone %s was claimed by another worker", zone.name)
                return None

            result = ZoneJobResult(zone_id=zone.id, zone_name=zone.name)
            try:
                records = await self._discover(ZoneArea.from_zone(zone))
            except ExtractionError as e:
                logger.error("Extraction failed; zone %s left in progress: %s", zone.name, e)
                raise

            result.discovered = len(records)
            result.batch = await self.qualifier.process_batch(records)
            result.completed = await self.zones.mark_completed(zone.id, result.batch.qualified)

            logger.info(
                "Zone %s done: %d discovered, %d qualified",
                zone.name,
                result.discovered,
                result.batch.qualified,
            )
            return result

    async def run_location_job(self, location: Optional[str] = None) -> BatchResult:
        """Discover and qualify businesses around a named location."""
        location = location or self.settings.search_location
        with LogContext(location=location):
            records = await self._discover(LocationArea(location))
            logger.info("Discovered %d businesses around %s", len(records), location)
            return await self.qualifier.process_batch(records)

    async def run_scraping_job(self) -> Any:
        """Run one zone job or one location job depending on settings."""
        if self.settings.zone_based_scraping:
            if not await self.zones.is_ready():
                logger.info("Zone grid is empty; seeding before first zone job")
                await self.seed_zones()
            return await self.run_zone_job()
        return await self.run_location_job()

    async def run_continuous(
        self,
        token: CancellationToken,
        pause_seconds: Optional[float] = None,
        max_zones: Optional[int] = None,
    ) -> ContinuousRunResult:
        """Work zones one after another until cancelled.

        The token is checked between zones only. Extraction failures are
        logged and the loop moves on; the failed zone stays in progress.

        Args:
            token: Cooperative stop flag.
            pause_seconds: Pause between zones; defaults to settings.
            max_zones: Stop after this many zones were attempted.
        """
        pause = self.settings.zone_pause_seconds if pause_seconds is None else pause_seconds
        totals = ContinuousRunResult()
        attempted = 0

        while not token.cancelled:
            if max_zones is not None and attempted >= max_zones:
                break
            try:
                result = await self.run_zone_job()
            except ExtractionError as e:
                attempted += 1
                totals.zones_failed += 1
                totals.failed_zones.append(e.area or "unknown")
            else:
                if result is None:
                    if not await self.zones.is_ready():
                        logger.warning("Zone grid is empty; stopping continuous run")
                        break
                    logger.info("No claimable zone; waiting %.1fs", pause)
                else:
                    attempted += 1
                    totals.zones_completed += int(result.completed)
                    totals.qualified += result.batch.qualified

            if await token.wait(pause):
                break

        logger.info(
            "Continuous run stopped: %d completed, %d failed",
            totals.zones_completed,
            totals.zones_failed,
        )
        return totals

    async def run_email_job(self) -> CombinedCampaignResult:
        """Run the combined campaign."""
        result = await self.run_campaign()
        logger.info(
            "Email job done: %d initial, %d follow-up",
            result.initial_sent,
            result.follow_up_sent,
        )
        return result

    async def health_check(self) -> dict[str, Any]:
        """Collect and log lead, zone and daily statistics."""
        leads = await self.lead_stats()
        zones = await self.zone_stats()
        today = await self.daily_stats()
        report = {
            "leads": leads.to_dict(),
            "zones": zones.to_dict(),
            "today": today.to_dict(),
        }
        logger.info(
            "Health check: %d leads (%d new), %d/%d zones completed, %d in progress, "
            "%d emails attempted today",
            leads.total,
            leads.new,
            zones.completed,
            zones.total,
            zones.in_progress,
            today.email_attempts,
        )
        return report

    def build_task_scheduler(self) -> TaskScheduler:
        """Create a task scheduler with the enabled periodic jobs."""
        scheduler = TaskScheduler(timezone=self.settings.timezone)
        if self.settings.auto_scraping:
            scheduler.add(
                PeriodicTask("scraping", self.run_scraping_job, cron=self.settings.scraping_cron)
            )
        if self.settings.auto_emailing:
            scheduler.add(
                PeriodicTask("email", self.run_email_job, cron=self.settings.email_cron)
            )
        scheduler.add(
            PeriodicTask("health_check", self.health_check, cron=self.settings.health_check_cron)
        )
        return scheduler

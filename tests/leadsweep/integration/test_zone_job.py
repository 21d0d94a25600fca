"""Integration tests for the zone job and outreach flow.

Runs the LeadSweepService against an in-memory database with a fake
extractor and mailer: zone claim, discovery, qualification, completion,
metrics, and the campaigns that follow.
"""

import pytest

from leadsweep.errors import ConfigurationError, ExtractionError
from leadsweep.integrations.base import LocationArea, ZoneArea
from leadsweep.models import ZoneStatus
from leadsweep.orchestrator import LeadSweepService, ServiceSettings
from leadsweep.scheduling.campaign_scheduler import CampaignSettings
from leadsweep.scheduling.task_scheduler import CancellationToken
from leadsweep.scheduling.zone_partitioner import Bounds


AUSTIN = Bounds(north=30.45, south=30.15, east=-97.65, west=-97.75)


@pytest.fixture
def settings():
    return ServiceSettings(
        bounds=AUSTIN,
        grid_size=2,
        zone_based_scraping=True,
        zone_pause_seconds=0,
        campaign=CampaignSettings(max_daily_emails=10, send_delay_seconds=0),
    )


@pytest.fixture
def scraped_records(record_factory):
    return [
        record_factory(),
        record_factory(name="Eastside Tailor", address="9 Chicon St", category="tailoring service"),
        record_factory(name="Starbucks", address="1 Congress Ave"),
        record_factory(name="Lamar Bikes", address="40 N Lamar", has_website=True),
        record_factory(name="Quiet Books", address="77 Guadalupe St", email=None),
    ]


@pytest.fixture
def service_factory(database, clock, mailer, extractor_factory, settings):
    def build(records=None, fail=False, **overrides):
        options = {
            "extractor": extractor_factory(records or [], fail=fail),
            "mailer": mailer,
            "settings": settings,
            "clock": clock,
        }
        options.update(overrides)
        return LeadSweepService(database, **options)

    return build


class TestZoneJob:
    """Tests for run_zone_job and run_scraping_job."""

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_scraping_job_seeds_and_works_first_zone(self, service_factory, scraped_records):
        service = service_factory(scraped_records)

        result = await service.run_scraping_job()

        assert result.zone_name == "Grid_0_0"
        assert result.discovered == 5
        assert result.batch.qualified == 3
        assert result.completed is True

        area = service.extractor.areas[0]
        assert isinstance(area, ZoneArea)
        assert (area.center_lat, area.center_lon) == (30.225, -97.725)

        zone = await service.zone_store.get_by_name("Grid_0_0")
        assert zone.status == ZoneStatus.COMPLETED
        assert zone.businesses_found == 3

        stats = await service.zone_stats()
        assert stats.total == 4
        assert stats.completed == 1

        today = await service.daily_stats()
        assert today.zones_scraped == 1
        assert today.businesses_scraped == 5
        assert today.leads_qualified == 3

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_rescraping_counts_only_new_leads(self, service_factory, scraped_records):
        service = service_factory(scraped_records)
        await service.seed_zones()

        first = await service.run_zone_job()
        second = await service.run_zone_job()

        assert first.batch.qualified == 3
        assert second.batch.qualified == 0
        assert second.batch.duplicates == 3
        zone = await service.zone_store.get_by_name(second.zone_name)
        assert zone.businesses_found == 0

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_extraction_failure_leaves_zone_in_progress(self, service_factory):
        service = service_factory(fail=True)
        await service.seed_zones()

        with pytest.raises(ExtractionError):
            await service.run_zone_job()

        stuck = await service.stuck_zones()
        assert [zone.name for zone in stuck] == ["Grid_0_0"]
        stats = await service.zone_stats()
        assert stats.in_progress == 1
        assert (await service.daily_stats()).zones_scraped == 0

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_unexpected_extractor_error_is_wrapped(self, service_factory):
        service = service_factory()

        async def broken(area):
            raise KeyError("results")

        service.extractor.discover = broken
        await service.seed_zones()

        with pytest.raises(ExtractionError) as exc_info:
            await service.run_zone_job()
        assert exc_info.value.area == "Grid_0_0"

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_grid_cycle_wraps_around(self, service_factory):
        service = service_factory()
        await service.seed_zones()

        names = [(await service.run_zone_job()).zone_name for _ in range(5)]

        assert names == ["Grid_0_0", "Grid_0_1", "Grid_1_0", "Grid_1_1", "Grid_0_0"]

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_manual_claim_and_complete(self, service_factory):
        service = service_factory()
        await service.seed_zones()
        zone = await service.next_zone()

        assert await service.claim_zone(zone.id) is True
        assert await service.claim_zone(zone.id) is False
        assert await service.complete_zone(zone.id, 7) is True
        assert await service.complete_zone(zone.id, 1) is False

        stats = await service.zone_stats()
        assert stats.completed == 1
        assert stats.businesses_found == 7

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_qualify_batch_directly(self, service_factory, scraped_records):
        service = service_factory()

        result = await service.qualify(scraped_records)

        assert (result.processed, result.qualified) == (5, 3)
        assert service.extractor.areas == []

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_location_job(self, service_factory, settings, scraped_records):
        settings.zone_based_scraping = False
        service = service_factory(scraped_records)

        result = await service.run_scraping_job()

        assert result.qualified == 3
        assert service.extractor.areas == [LocationArea("Austin, Texas")]
        assert (await service.zone_stats()).total == 0

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_scraping_without_extractor_raises(self, service_factory):
        service = service_factory(extractor=None)
        await service.seed_zones()

        with pytest.raises(ConfigurationError):
            await service.run_zone_job()


class TestContinuousRun:
    """Tests for run_continuous."""

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_stops_after_max_zones(self, service_factory, scraped_records):
        service = service_factory(scraped_records)
        await service.seed_zones()

        totals = await service.run_continuous(CancellationToken(), max_zones=4)

        assert totals.zones_completed == 4
        assert totals.zones_failed == 0
        assert totals.qualified == 3
        assert (await service.zone_stats()).completed == 4

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_failures_do_not_stop_the_loop(self, service_factory):
        service = service_factory(fail=True)
        await service.seed_zones()

        totals = await service.run_continuous(CancellationToken(), max_zones=3)

        assert totals.zones_failed == 3
        assert totals.failed_zones == ["Grid_0_0", "Grid_0_1", "Grid_1_0"]
        assert (await service.zone_stats()).in_progress == 3

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_empty_grid_stops_loop(self, service_factory):
        service = service_factory()

        totals = await service.run_continuous(CancellationToken(), max_zones=10)

        assert totals.zones_completed == 0
        assert service.extractor.areas == []

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_cancelled_token_stops_before_first_zone(self, service_factory):
        service = service_factory()
        await service.seed_zones()
        token = CancellationToken()
        token.cancel()

        totals = await service.run_continuous(token)

        assert totals.zones_completed == 0
        assert (await service.zone_stats()).pending == 4


class TestScrapeThenEmail:
    """Tests for leads flowing from zones into campaigns."""

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_qualified_leads_receive_initial_email(self, service_factory, scraped_records, mailer):
        service = service_factory(scraped_records)
        await service.run_scraping_job()

        result = await service.run_email_job()

        assert result.initial_sent == 2
        assert result.follow_up_sent == 0
        assert set(mailer.destinations) == {"hello@bluedoor.example"}
        leads = await service.lead_stats()
        assert leads.total == 3
        assert leads.contacted == 2
        assert leads.new == 1

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_campaign_without_mailer_raises(self, service_factory):
        service = service_factory(mailer=None)

        with pytest.raises(ConfigurationError):
            await service.run_campaign()

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_health_check_report(self, service_factory, scraped_records):
        service = service_factory(scraped_records)
        await service.run_scraping_job()

        report = await service.health_check()

        assert report["leads"]["total"] == 3
        assert report["zones"]["completed"] == 1
        assert report["today"]["leads_qualified"] == 3

    @pytest.mark.integration
    def test_task_scheduler_registers_enabled_jobs(self, service_factory, settings):
        settings.auto_emailing = True
        service = service_factory()

        scheduler = service.build_task_scheduler()

        assert [task.name for task in scheduler.tasks] == ["email", "health_check"]

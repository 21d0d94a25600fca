"""Tests for the qualification pipeline.

Tests cover:
- Filter order: chain, then completeness, then website
- Normalization of names and phone numbers
- Deduplication on (name, address)
- Per-batch counts and the single metrics update per batch
"""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select

from leadsweep.integrations.base import RawRecord
from leadsweep.models import Lead, LeadStatus
from leadsweep.processing import LeadQualifier, RejectReason


@pytest.fixture
def qualifier(database, metrics, clock):
    return LeadQualifier(database, metrics, clock=clock)


async def count_leads(database):
    async with database.session() as session:
        return await session.scalar(select(func.count(Lead.id)))


class TestScreening:
    """Tests for the ordered filters."""

    @pytest.mark.unit
    def test_chain_rejected(self, qualifier, record_factory):
        assert qualifier.screen(record_factory(name="McDonald's")) is RejectReason.CHAIN

    @pytest.mark.unit
    def test_chain_check_runs_before_website_check(self, qualifier, record_factory):
        chain_with_site = record_factory(name="Starbucks", has_website=True)
        assert qualifier.screen(chain_with_site) is RejectReason.CHAIN

    @pytest.mark.unit
    @pytest.mark.parametrize("field", ["name", "address"])
    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_missing_name_or_address_rejected(self, qualifier, record_factory, field, value):
        record = record_factory(**{field: value})
        assert qualifier.screen(record) is RejectReason.INCOMPLETE

    @pytest.mark.unit
    def test_business_with_website_rejected(self, qualifier, record_factory):
        assert qualifier.screen(record_factory(has_website=True)) is RejectReason.HAS_WEBSITE

    @pytest.mark.unit
    def test_independent_business_without_website_passes(self, qualifier, record_factory):
        assert qualifier.screen(record_factory()) is None

    @pytest.mark.unit
    def test_custom_chain_keywords(self, database, metrics, record_factory):
        qualifier = LeadQualifier(database, metrics, chain_keywords=["Blue Door"])
        assert qualifier.screen(record_factory()) is RejectReason.CHAIN


class TestNormalization:
    """Tests for LeadQualifier.normalize."""

    @pytest.mark.unit
    def test_normalize_cleans_fields(self, record_factory):
        raw = record_factory(
            name="  Blue   Door Cafe ",
            address=" 1200 E 6th St ",
            phone="(512) 555-0100",
            email="  ",
            review_count=None,
        )
        normalized = LeadQualifier.normalize(raw)

        assert normalized.name == "Blue Door Cafe"
        assert normalized.address == "1200 E 6th St"
        assert normalized.phone == "5125550100"
        assert normalized.email is None
        assert normalized.review_count == 0
        assert raw.name == "  Blue   Door Cafe "

    @pytest.mark.unit
    @pytest.mark.parametrize("email", ["n/a", "front desk", "owner@", "call us"])
    def test_normalize_drops_unusable_email(self, record_factory, email):
        assert LeadQualifier.normalize(record_factory(email=email)).email is None

    @pytest.mark.unit
    def test_normalize_keeps_valid_email_trimmed(self, record_factory):
        normalized = LeadQualifier.normalize(record_factory(email=" owner@cafe.example "))
        assert normalized.email == "owner@cafe.example"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unusable_email_is_stored_as_null(self, database, qualifier, record_factory):
        outcome = await qualifier.qualify(record_factory(email="n/a"))

        async with database.session() as session:
            lead = await session.get(Lead, outcome.lead_id)
        assert outcome.inserted
        assert lead.email is None

    @pytest.mark.unit
    def test_feed_row_accepts_camel_case_keys(self):
        record = RawRecord.from_dict(
            {
                "name": "Rainey Tailor",
                "address": "88 Rainey St",
                "email": "stitch@rainey.example",
                "hasWebsite": True,
                "reviewCount": 14,
            }
        )

        assert record.has_website is True
        assert record.review_count == 14
        assert record.email == "stitch@rainey.example"
        assert record.category is None


class TestQualify:
    """Tests for inserting qualified leads."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_qualified_record_is_stored(self, database, qualifier, record_factory, clock):
        outcome = await qualifier.qualify(record_factory())

        assert outcome.inserted
        assert outcome.priority_score == 100

        async with database.session() as session:
            lead = await session.get(Lead, outcome.lead_id)
        assert lead.name == "Blue Door Cafe"
        assert lead.phone == "5125550100"
        assert lead.email == "hello@bluedoor.example"
        assert lead.status == LeadStatus.NEW
        assert lead.has_website is False
        assert lead.priority_score == 100
        assert lead.created_at == clock()
        assert lead.last_contacted_at is None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_rejected_record_is_not_stored(self, database, qualifier, record_factory):
        outcome = await qualifier.qualify(record_factory(name="KFC"))

        assert outcome.rejected is RejectReason.CHAIN
        assert not outcome.inserted
        assert await count_leads(database) == 0

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_duplicate_is_a_no_op(self, database, qualifier, record_factory):
        first = await qualifier.qualify(record_factory(rating=3.0))
        second = await qualifier.qualify(record_factory(name="Blue  Door   Cafe", rating=5.0))

        assert first.inserted
        assert second.duplicate
        assert second.lead_id is None
        assert await count_leads(database) == 1

        async with database.session() as session:
            lead = await session.get(Lead, first.lead_id)
        assert lead.rating == 3.0

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_same_name_different_address_is_new_lead(self, database, qualifier, record_factory):
        await qualifier.qualify(record_factory())
        await qualifier.qualify(record_factory(address="88 Rainey St, Austin, TX"))

        assert await count_leads(database) == 2


class TestProcessBatch:
    """Tests for batch processing and metrics."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_batch_counts(self, qualifier, record_factory, metrics):
        batch = [
            record_factory(),
            record_factory(name="McDonald's"),
            record_factory(name="Lone Star Repair", has_website=True),
            record_factory(name="Rainey Street Tailor", address=None),
            record_factory(),
            record_factory(name="Eastside Bakery", address="2 Cesar Chavez St"),
        ]

        result = await qualifier.process_batch(batch)

        assert result.processed == 6
        assert result.qualified == 2
        assert result.duplicates == 1
        assert result.rejected == {"chain": 1, "has_website": 1, "incomplete": 1}
        assert len(result.lead_ids) == 2

        snapshot = await metrics.for_day()
        assert snapshot.businesses_scraped == 6
        assert snapshot.leads_qualified == 2

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_metrics_updated_once_per_batch(self, qualifier, record_factory):
        qualifier.metrics.increment = AsyncMock()

        await qualifier.process_batch(
            [record_factory(), record_factory(name="Eastside Bakery"), record_factory(name="KFC")]
        )

        qualifier.metrics.increment.assert_awaited_once_with(
            businesses_scraped=3, leads_qualified=2
        )

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_empty_batch(self, qualifier, metrics):
        result = await qualifier.process_batch([])

        assert result.to_dict() == {
            "processed": 0,
            "qualified": 0,
            "duplicates": 0,
            "rejected": {},
        }
        assert (await metrics.for_day()).businesses_scraped == 0

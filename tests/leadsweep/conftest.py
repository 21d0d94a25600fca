"""Shared fixtures for LeadSweep tests.

Database tests run against an in-memory SQLite database (aiosqlite) created
fresh for every test. External collaborators are replaced by small fakes
that record what they were asked to do.
"""

import itertools
from datetime import datetime, timedelta
from typing import Any, Iterable, Optional

import pytest
import pytest_asyncio

from leadsweep.errors import ExtractionError
from leadsweep.integrations.base import DeliveryResult, RawRecord
from leadsweep.metrics_ledger import MetricsLedger
from leadsweep.models import Database, Lead, LeadStatus, OutreachEvent


FIXED_NOW = datetime(2025, 3, 10, 9, 30)


class FakeClock:
    """Manually advanced clock returning naive UTC datetimes."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: Any) -> None:
        self.now += timedelta(**kwargs)


class FakeMailer:
    """Mailer that records sends and fails for selected destinations."""

    def __init__(self, fail_for: Iterable[str] = (), raise_for: Iterable[str] = ()):
        self.fail_for = set(fail_for)
        self.raise_for = set(raise_for)
        self.sent: list[tuple[str, str, str]] = []

    async def send(self, destination: str, subject: str, body: str) -> DeliveryResult:
        self.sent.append((destination, subject, body))
        if destination in self.raise_for:
            raise RuntimeError("connection reset")
        if destination in self.fail_for:
            return DeliveryResult(success=False, error="rejected by provider")
        return DeliveryResult(success=True, reference=f"msg-{len(self.sent)}")

    @property
    def destinations(self) -> list[str]:
        return [destination for destination, _, _ in self.sent]


class FakeExtractor:
    """Extractor returning canned records for every area."""

    def __init__(self, records: Optional[list[RawRecord]] = None, fail: bool = False):
        self.records = records or []
        self.fail = fail
        self.areas: list[Any] = []

    async def discover(self, area: Any) -> list[RawRecord]:
        self.areas.append(area)
        if self.fail:
            raise ExtractionError(f"quota exceeded for {area.label}", area=area.label)
        return list(self.records)


@pytest.fixture
def clock():
    return FakeClock()


@pytest_asyncio.fixture
async def database():
    db = Database("sqlite+aiosqlite://")
    await db.create_tables()
    yield db
    await db.close()


@pytest.fixture
def metrics(database, clock):
    return MetricsLedger(database, clock=clock)


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def mailer_factory():
    return FakeMailer


@pytest.fixture
def extractor_factory():
    return FakeExtractor


@pytest.fixture
def lead_factory(database, clock):
    """Insert leads directly, bypassing qualification."""
    counter = itertools.count(1)

    async def create(**overrides: Any) -> Lead:
        n = next(counter)
        values: dict[str, Any] = {
            "name": f"Business {n}",
            "address": f"{n} Congress Ave, Austin, TX",
            "category": "cafe",
            "email": f"owner{n}@example.com",
            "has_website": False,
            "priority_score": 50,
            "status": LeadStatus.NEW,
            "created_at": clock(),
            "updated_at": clock(),
        }
        values.update(overrides)
        async with database.session() as session:
            lead = Lead(**values)
            session.add(lead)
            await session.flush()
        return lead

    return create


@pytest.fixture
def event_factory(database, clock):
    """Insert outreach events directly."""

    async def create(lead_id: int, kind: Any, sent_at: Optional[datetime] = None) -> OutreachEvent:
        async with database.session() as session:
            event = OutreachEvent(
                lead_id=lead_id,
                kind=kind,
                subject="Earlier message",
                sent_at=sent_at or clock(),
            )
            session.add(event)
            await session.flush()
        return event

    return create


def make_record(**overrides: Any) -> RawRecord:
    """Build a qualifying raw record."""
    values: dict[str, Any] = {
        "name": "Blue Door Cafe",
        "address": "1200 E 6th St, Austin, TX",
        "category": "cafe",
        "phone": "(512) 555-0100",
        "email": "hello@bluedoor.example",
        "has_website": False,
        "rating": 4.6,
        "review_count": 120,
        "latitude": 30.26,
        "longitude": -97.72,
    }
    values.update(overrides)
    return RawRecord(**values)


@pytest.fixture
def record_factory():
    return make_record

"""Tests for the database client and dialect-specific insert helpers."""

import pytest
from sqlalchemy import select

from leadsweep.errors import ConfigurationError
from leadsweep.models import Zone, ZoneStatus, insert_ignore
from leadsweep.models.database import Database, normalize_database_url


def zone_values(name="Grid_0_0"):
    return {
        "name": name,
        "lat_min": 30.15,
        "lat_max": 30.30,
        "lon_min": -97.75,
        "lon_max": -97.70,
        "center_lat": 30.225,
        "center_lon": -97.725,
        "status": ZoneStatus.PENDING,
        "businesses_found": 0,
    }


class TestNormalizeDatabaseUrl:
    """Tests for normalize_database_url."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "url,expected",
        [
            ("postgresql://u:p@db:5432/leads", "postgresql+asyncpg://u:p@db:5432/leads"),
            ("postgres://u:p@db/leads", "postgresql+asyncpg://u:p@db/leads"),
            ("postgresql+asyncpg://u:p@db/leads", "postgresql+asyncpg://u:p@db/leads"),
            ("sqlite:///leads.db", "sqlite+aiosqlite:///leads.db"),
            ("sqlite+aiosqlite://", "sqlite+aiosqlite://"),
        ],
    )
    def test_supported_urls(self, url, expected):
        assert normalize_database_url(url) == expected

    @pytest.mark.unit
    @pytest.mark.parametrize("url", ["", "mysql://u:p@db/leads", "leads.db"])
    def test_unsupported_urls_raise(self, url):
        with pytest.raises(ConfigurationError):
            normalize_database_url(url)


class TestDatabase:
    """Tests for sessions and insert helpers against SQLite."""

    @pytest.mark.unit
    def test_dialect_name(self):
        assert Database("sqlite://").dialect_name == "sqlite"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_insert_ignore_returns_id_then_none(self, database):
        async with database.session() as session:
            first = await insert_ignore(session, Zone, zone_values(), ["name"])
        async with database.session() as session:
            second = await insert_ignore(session, Zone, zone_values(), ["name"])

        assert isinstance(first, int)
        assert second is None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_session_rolls_back_on_error(self, database):
        with pytest.raises(RuntimeError):
            async with database.session() as session:
                await insert_ignore(session, Zone, zone_values("Grid_9_9"), ["name"])
                raise RuntimeError("abort")

        async with database.session() as session:
            assert await session.scalar(select(Zone).where(Zone.name == "Grid_9_9")) is None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_drop_and_recreate_tables(self, database):
        async with database.session() as session:
            await insert_ignore(session, Zone, zone_values(), ["name"])

        await database.drop_tables()
        await database.create_tables()

        async with database.session() as session:
            assert await session.scalar(select(Zone)) is None

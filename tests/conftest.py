"""
Shared test fixtures.

Environment overrides are applied before any nebula module is imported, so
the application settings pick up a throwaway database, no geolocation
network calls, and no rate limiting.
"""

import os
import tempfile

_TEST_DIR = tempfile.mkdtemp(prefix="nebula-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR}/app.db"
os.environ["GEO_ENRICHMENT_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"

import asyncio  # noqa: E402
from typing import Optional  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

from nebula.db.session import create_session_maker, create_tables  # noqa: E402
from nebula.db.sqlite_adapter import SQLiteAdapter  # noqa: E402
from nebula.services.counter_store import CounterStore  # noqa: E402
from nebula.services.geo_client import LocationInfo  # noqa: E402
from nebula.services.notifier import RealtimeNotifier  # noqa: E402
from nebula.services.visit_logger import EventLog  # noqa: E402


class StubGeoClient:
    """Stands in for GeoEnrichmentClient; returns a fixed location or None."""

    def __init__(self, location: Optional[LocationInfo] = None, delay: float = 0.0):
        self.location = location
        self.delay = delay
        self.calls = []

    async def enrich(self, ip: Optional[str] = None) -> Optional[LocationInfo]:
        self.calls.append(ip)
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.location


@pytest.fixture
def adapter():
    return SQLiteAdapter()


@pytest_asyncio.fixture
async def db_engine(tmp_path, adapter):
    engine = adapter.create_engine(f"sqlite+aiosqlite:///{tmp_path / 'visits.db'}")
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(db_engine):
    return create_session_maker(db_engine)


@pytest.fixture
def notifier():
    return RealtimeNotifier()


@pytest.fixture
def counter_store(session_maker, adapter, notifier):
    return CounterStore(session_maker, adapter, notifier)


@pytest.fixture
def event_log(session_maker):
    return EventLog(session_maker)


@pytest.fixture
def berlin():
    return LocationInfo(
        country="Germany",
        country_code="DE",
        city="Berlin",
        region="Land Berlin",
        ip="203.0.113.7",
    )

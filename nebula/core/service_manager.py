"""
Service Manager

This module manages the process-wide service instances.
They are created once on application startup and shared across requests.

Design:
- One notifier per process: every live counter subscriber on this instance
  hears every increment made through this instance
- One in-memory session store per process (dedup flags are ephemeral)
- One geolocation client (shared HTTP connection pool)
- Endpoints obtain the services through the get_* dependency functions, so
  tests can override them
"""

import logging
from typing import Optional

from nebula.core.setting import settings
from nebula.db.session import async_session_maker, create_tables, db_adapter
from nebula.services.counter_store import CounterStore
from nebula.services.geo_client import GeoEnrichmentClient
from nebula.services.notifier import RealtimeNotifier
from nebula.services.session_gate import MemorySessionStore
from nebula.services.stats_service import StatsService
from nebula.services.visit_logger import EventLog
from nebula.services.visit_tracker import VisitTracker

logger = logging.getLogger(__name__)

_notifier: Optional[RealtimeNotifier] = None
_session_store: Optional[MemorySessionStore] = None
_geo_client: Optional[GeoEnrichmentClient] = None
_counter_store: Optional[CounterStore] = None
_event_log: Optional[EventLog] = None


async def initialize_services() -> None:
    """
    Create the shared services and, if configured, the database tables.
    """
    global _notifier, _session_store, _geo_client, _counter_store, _event_log

    if _counter_store is not None:
        logger.warning("Services already initialized")
        return

    if settings.AUTO_CREATE_TABLES:
        await create_tables()

    _notifier = RealtimeNotifier()
    _session_store = MemorySessionStore(max_size=settings.SESSION_STORE_MAX_SIZE)
    _geo_client = GeoEnrichmentClient(
        lookup_url=settings.GEO_LOOKUP_URL,
        self_lookup_url=settings.GEO_LOOKUP_SELF_URL,
        timeout=settings.GEO_LOOKUP_TIMEOUT_SECONDS,
        enabled=settings.GEO_ENRICHMENT_ENABLED,
    )
    _counter_store = CounterStore(async_session_maker, db_adapter, _notifier)
    _event_log = EventLog(async_session_maker)

    logger.info(
        f"Visitor analytics services initialized: "
        f"db={db_adapter.get_dialect_name()}, "
        f"geo_enrichment={'on' if settings.GEO_ENRICHMENT_ENABLED else 'off'}"
    )


async def shutdown_services() -> None:
    """Release the HTTP client and drop the shared instances."""
    global _notifier, _session_store, _geo_client, _counter_store, _event_log

    if _geo_client is not None:
        try:
            await _geo_client.aclose()
        except Exception as e:
            logger.warning(f"Failed to close geolocation client: {e}")

    _notifier = None
    _session_store = None
    _geo_client = None
    _counter_store = None
    _event_log = None
    logger.info("Visitor analytics services shut down")


def _require(service, name: str):
    if service is None:
        raise RuntimeError(f"{name} is not initialized; did the application start up?")
    return service


def get_session_store() -> MemorySessionStore:
    return _require(_session_store, "Session store")


def get_counter_store() -> CounterStore:
    return _require(_counter_store, "Counter store")


def get_event_log() -> EventLog:
    return _require(_event_log, "Event log")


def get_visit_tracker() -> VisitTracker:
    return VisitTracker(
        counter_store=get_counter_store(),
        event_log=get_event_log(),
        geo_client=_require(_geo_client, "Geolocation client"),
    )


def get_stats_service() -> StatsService:
    return StatsService(
        counter_store=get_counter_store(),
        event_log=get_event_log(),
        timezone_name=settings.ANALYTICS_TIMEZONE,
    )

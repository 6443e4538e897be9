"""
Statistics Service

Builds the dashboard's analytics payload.

Design Decisions:
- Pulls the full visit log and hands it to the pure aggregation engine;
  nothing is cached or persisted, each call is a fresh projection
- Adds the counter value so the dashboard shows the same total as the
  public widget (the log may hold fewer entries if some appends failed)
"""

from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from nebula.services.aggregation import aggregate
from nebula.services.counter_store import CounterStore
from nebula.services.visit_logger import EventLog


class StatsService:
    """Service for retrieving visitor analytics."""

    def __init__(
        self,
        counter_store: CounterStore,
        event_log: EventLog,
        timezone_name: str = "UTC",
    ):
        self.counter_store = counter_store
        self.event_log = event_log
        self.tz = ZoneInfo(timezone_name)

    async def get_analytics(self, window_days: int, now: Optional[datetime] = None) -> dict:
        """
        Aggregate the whole visit log for a dashboard window.

        Args:
            window_days: Length of the trend series in days
            now: Reference time (defaults to the current time)

        Returns:
            Aggregated views plus window_days and total_count
        """
        entries = await self.event_log.list_entries()
        view = aggregate(entries, window_days, now or datetime.now(timezone.utc), tz=self.tz)
        view["window_days"] = window_days
        view["total_count"] = await self.counter_store.get()
        return view

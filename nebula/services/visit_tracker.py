"""
Visit Tracker

Records one counted visit end to end:

1. Claim the session at the gate; a counted or in-flight session is not
   counted again
2. Start the geolocation lookup and increment the counter concurrently
3. On a counter failure, release the claim and give up (the next load retries)
4. Mark the session as counted
5. Append the visit record; a failure there is logged and absorbed

The counter and the log are independent writes: an increment can succeed
while the append fails. Nothing links them transactionally.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from nebula.core.exceptions import CounterWriteFailure, LogWriteFailure
from nebula.services.counter_store import CounterStore
from nebula.services.device_detection import parse_user_agent
from nebula.services.geo_client import UNKNOWN, GeoEnrichmentClient, LocationInfo
from nebula.services.session_gate import SessionDedupGate, SessionState
from nebula.services.visit_logger import EventLog, VisitLogInput

logger = logging.getLogger(__name__)


@dataclass
class VisitOutcome:
    counted: bool
    count: int
    logged: bool = False


class VisitTracker:
    """Orchestrates gate, enrichment, counter, and log for a single visit."""

    def __init__(
        self,
        counter_store: CounterStore,
        event_log: EventLog,
        geo_client: GeoEnrichmentClient,
    ):
        self.counter_store = counter_store
        self.event_log = event_log
        self.geo_client = geo_client

    async def record_visit(
        self,
        session_state: SessionState,
        client_ip: Optional[str] = None,
        user_agent: Optional[str] = None,
        device_type: Optional[str] = None,
        browser: Optional[str] = None,
    ) -> VisitOutcome:
        """
        Count a visit for this browsing session if it has not been counted yet.

        Client-reported device_type/browser win over the User-Agent guess.

        Returns:
            VisitOutcome with the current count

        Raises:
            CounterWriteFailure: If the counter increment failed
        """
        gate = SessionDedupGate(session_state)
        if not gate.try_claim():
            # Already counted, or a concurrent request for this session is counting it
            return VisitOutcome(counted=False, count=await self.counter_store.get())

        enrichment = asyncio.create_task(self.geo_client.enrich(client_ip))
        try:
            count = await self.counter_store.increment()
        except BaseException:
            enrichment.cancel()
            gate.release()
            raise

        gate.mark_counted()

        location = await enrichment
        detected_device, detected_browser = parse_user_agent(user_agent)
        entry = build_log_entry(
            location,
            client_ip,
            device_type or detected_device,
            browser or detected_browser,
        )

        try:
            await self.event_log.append(entry)
        except LogWriteFailure as e:
            logger.error(str(e), exc_info=True)
            return VisitOutcome(counted=True, count=count, logged=False)

        return VisitOutcome(counted=True, count=count, logged=True)


def build_log_entry(
    location: Optional[LocationInfo],
    client_ip: Optional[str],
    device_type: Optional[str],
    browser: Optional[str],
) -> VisitLogInput:
    """
    Visit record for storage.

    Without a location every geo field stays empty; "Unknown"/"XX" are read-time
    defaults and are not written.
    """
    if location is None:
        return VisitLogInput(ip=client_ip, device_type=device_type, browser=browser)

    return VisitLogInput(
        country=location.country,
        country_code=location.country_code,
        city=location.city,
        region=location.region,
        ip=location.ip if location.ip != UNKNOWN else client_ip,
        device_type=device_type,
        browser=browser,
    )

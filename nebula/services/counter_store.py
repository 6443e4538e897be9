"""
Counter Store

The shared visitor counter as seen by the rest of the service:
increment(), get(), and subscribe().

Each operation opens its own short database session, like the background
tasks it is called from. Successful increments are published to the
RealtimeNotifier so live displays update without polling.
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from nebula.core.exceptions import CounterWriteFailure
from nebula.db.interface import DatabaseAdapter
from nebula.services.notifier import (
    CountCallback,
    ErrorCallback,
    RealtimeNotifier,
    Subscription,
)
from nebula.services.visit_count_service import VisitCountService

logger = logging.getLogger(__name__)


class CounterStore:
    """Atomic, observable visitor counter."""

    def __init__(
        self,
        session_maker: async_sessionmaker,
        adapter: DatabaseAdapter,
        notifier: RealtimeNotifier,
    ):
        self.session_maker = session_maker
        self.adapter = adapter
        self.notifier = notifier

    async def increment(self) -> int:
        """
        Add one to the counter (creating it at 1 if missing).

        Returns:
            The new count

        Raises:
            CounterWriteFailure: If the increment could not be committed
        """
        try:
            async with self.session_maker() as session:
                service = VisitCountService(session, self.adapter)
                count = await service.increment_visit_count()
                await session.commit()
        except Exception as e:
            logger.error(f"Failed to increment visitor counter: {e}", exc_info=True)
            raise CounterWriteFailure(str(e), e) from e

        await self.notifier.publish(count)
        return count

    async def get(self) -> int:
        """Current count (0 before the first counted visit)."""
        async with self.session_maker() as session:
            return await VisitCountService(session, self.adapter).get_visit_count()

    async def exists(self) -> bool:
        async with self.session_maker() as session:
            return await VisitCountService(session, self.adapter).counter_exists()

    def subscribe(
        self,
        callback: CountCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Subscription:
        """
        Receive every future counter value.

        Returns:
            Subscription; call unsubscribe() when the consumer detaches
        """
        return self.notifier.subscribe(callback, on_error)

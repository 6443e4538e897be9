"""
Visit Count Service

This service handles the shared visitor counter.

Design Decisions:
- Uses the database adapter's single-statement "insert or increment" so
  concurrent callers never lose an update, and two simultaneous first-ever
  visitors cannot race on creating the row
- Never a client-side read-modify-write
- Commit is handled by the caller (CounterStore)
"""

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from nebula.db.interface import DatabaseAdapter
from nebula.db.models import VISITOR_COUNTER_ID, VisitorCounter


class VisitCountService:
    """Service for reading and incrementing the singleton visitor counter."""

    def __init__(self, session: AsyncSession, adapter: DatabaseAdapter):
        """
        Initialize the visit count service.

        Args:
            session: Async database session for database operations
            adapter: Database adapter providing the dialect's upsert statement
        """
        self.session = session
        self.adapter = adapter

    async def increment_visit_count(self, counter_id: str = VISITOR_COUNTER_ID) -> int:
        """
        Increment the visitor counter atomically.

        Creates the row with count=1 if it does not exist yet.

        Returns:
            The count after this increment, as seen inside the same transaction
        """
        await self.session.exec(self.adapter.counter_upsert_statement(counter_id))
        # Read within the writing transaction, so the value includes this increment
        return await self.get_visit_count(counter_id)

    async def get_visit_count(self, counter_id: str = VISITOR_COUNTER_ID) -> int:
        """
        Get the current visitor count.

        Returns:
            Visit count (0 if the counter has never been created)
        """
        statement = select(VisitorCounter.count).where(VisitorCounter.id == counter_id)
        result = await self.session.exec(statement)
        count = result.first()
        return count if count is not None else 0

    async def counter_exists(self, counter_id: str = VISITOR_COUNTER_ID) -> bool:
        statement = select(VisitorCounter.id).where(VisitorCounter.id == counter_id)
        result = await self.session.exec(statement)
        return result.first() is not None

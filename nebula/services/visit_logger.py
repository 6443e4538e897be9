"""
Visit Logging Service

This service handles the append-only visit log used for analytics.

Design Decisions:
- Only append and full read are exposed; records are never updated or
  deleted
- Values are stored exactly as received: missing location or device fields
  stay NULL and defaults are applied by the aggregation at read time
- Independent of the visitor counter; a failure here never undoes a count
"""

from typing import Optional

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from nebula.core.exceptions import LogWriteFailure
from nebula.db.models import VisitLog


class VisitLogInput(BaseModel):
    """Fields of a visit record supplied by the caller (id and timestamp are assigned)."""
    country: Optional[str] = None
    country_code: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    ip: Optional[str] = None
    device_type: Optional[str] = None
    browser: Optional[str] = None


class VisitLoggerService:
    """Session-scoped access to the visit_logs table."""

    def __init__(self, session: AsyncSession):
        """
        Initialize the visit logger with a database session.

        Args:
            session: Async database session for database operations
        """
        self.session = session

    async def log_visit(self, entry: VisitLogInput) -> VisitLog:
        """
        Insert one visit record and commit it.

        Args:
            entry: Location and device fields of the visit

        Returns:
            The stored VisitLog with id and timestamp populated
        """
        visit_log = VisitLog(**entry.model_dump())

        self.session.add(visit_log)
        await self.session.commit()
        await self.session.refresh(visit_log)
        return visit_log

    async def list_visits(self) -> list[VisitLog]:
        """All visit records, oldest first."""
        statement = select(VisitLog).order_by(VisitLog.timestamp, VisitLog.id)
        result = await self.session.exec(statement)
        return list(result.all())


class EventLog:
    """
    Append-only visit log.

    Opens its own session per call, so it can be used from background tasks
    after the request session is gone.
    """

    def __init__(self, session_maker: async_sessionmaker):
        self.session_maker = session_maker

    async def append(self, entry: VisitLogInput) -> VisitLog:
        """
        Append one visit record.

        Raises:
            LogWriteFailure: If the record could not be stored
        """
        try:
            async with self.session_maker() as session:
                return await VisitLoggerService(session).log_visit(entry)
        except Exception as e:
            raise LogWriteFailure(str(e), e) from e

    async def list_entries(self) -> list[VisitLog]:
        """Full read of the log, oldest first."""
        async with self.session_maker() as session:
            return await VisitLoggerService(session).list_visits()

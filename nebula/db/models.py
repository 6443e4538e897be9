"""
Database Models for Visitor Analytics

This module defines the SQLModel database schemas for:
- VisitorCounter: The single shared visitor count
- VisitLog: One immutable record per counted visit

Design Decisions:
- Counter and log are separate tables written independently; a counted visit
  is not a transaction spanning both
- The counter is a keyed singleton row so the store can use an atomic
  "insert or increment" statement instead of read-modify-write
- Location and device columns are nullable: enrichment is best-effort and
  defaults ("Unknown", "XX", "Desktop") are applied when reading, never when
  writing
- Index on timestamp for time-window queries
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Integer, String
from sqlmodel import Column, Field, SQLModel

# Primary key of the one row in visitor_counters
VISITOR_COUNTER_ID = "visitors"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class VisitorCounter(SQLModel, table=True):
    """
    Singleton table holding the global visitor count.

    Fields:
    - id: Fixed key (VISITOR_COUNTER_ID)
    - count: Number of counted visits, never decreases

    The row is created lazily by the first counted visit.
    """
    __tablename__ = "visitor_counters"

    id: str = Field(
        default=VISITOR_COUNTER_ID,
        sa_column=Column(String(32), primary_key=True)
    )
    count: int = Field(default=0, sa_column=Column(Integer, nullable=False, default=0))


class VisitLog(SQLModel, table=True):
    """
    Append-only visit log used by the analytics dashboard.

    This table stores one record per counted browsing session with:
    - Coarse location (country, region, city) from the geolocation lookup
    - Device type and browser family
    - Server-assigned UTC timestamp

    Records are never updated or deleted by the service.
    """
    __tablename__ = "visit_logs"

    id: Optional[int] = Field(default=None, primary_key=True)
    country: Optional[str] = Field(default=None, sa_column=Column(String(100), nullable=True))
    country_code: Optional[str] = Field(default=None, sa_column=Column(String(8), nullable=True))
    city: Optional[str] = Field(default=None, sa_column=Column(String(100), nullable=True))
    region: Optional[str] = Field(default=None, sa_column=Column(String(100), nullable=True))
    ip: Optional[str] = Field(default=None, sa_column=Column(String(45), nullable=True))  # IPv6 max length
    device_type: Optional[str] = Field(default=None, sa_column=Column(String(40), nullable=True))
    browser: Optional[str] = Field(default=None, sa_column=Column(String(40), nullable=True))
    timestamp: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True)
    )

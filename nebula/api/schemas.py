"""
API Request and Response Schemas

This module defines all Pydantic models for API requests and responses.

Design Principles:
- Request models: Define input validation
- Response models: Define output structure
- The analytics models mirror the dictionaries produced by the aggregation
  engine, so endpoints can build them with Model(**view)
"""

from typing import Optional

from pydantic import BaseModel, Field


class VisitRequest(BaseModel):
    """Request model for recording a visit."""
    session_id: str = Field(..., description="Random id generated once per browser tab")
    device_type: Optional[str] = Field(None, description="Client-reported device class")
    browser: Optional[str] = Field(None, description="Client-reported browser family")


class CounterResponse(BaseModel):
    """Current visitor count with its display phrase."""
    count: int
    ordinal: str
    message: str


class VisitResponse(CounterResponse):
    """Response model for the visit endpoint."""
    counted: bool = Field(..., description="Whether this call counted a new visit")


class GeoSlice(BaseModel):
    name: str
    value: int
    color: str


class NamedCount(BaseModel):
    name: str
    value: int


class TrendPoint(BaseModel):
    date: str
    visitors: int


class HourBucket(BaseModel):
    hour: int
    label: str
    visitors: int


class RecentVisit(BaseModel):
    id: Optional[int] = None
    country: str
    country_code: str
    city: str
    region: str
    device_type: str
    browser: str
    timestamp: str


class AnalyticsSummary(BaseModel):
    total_visits: int
    window_visits: int
    countries: int
    today: int


class AnalyticsResponse(BaseModel):
    """Response model for the analytics endpoint."""
    window_days: int
    total_count: int
    geo_distribution: list[GeoSlice]
    top_cities: list[NamedCount]
    visitor_trends: list[TrendPoint]
    device_stats: list[NamedCount]
    browser_stats: list[NamedCount]
    peak_hours: list[HourBucket]
    recent_activity: list[RecentVisit]
    summary: AnalyticsSummary

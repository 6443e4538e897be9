"""
Aggregation Engine

Derives the dashboard's analytics views from the raw visit log.

aggregate() is a pure function of (entries, window_days, now, tz): no I/O,
no shared state, identical output for identical input. Groupings keep
first-encountered order for ties, so results are reproducible.

Views:
- geo_distribution: visits per country, top 8, one palette colour per rank
- top_cities: visits per "City, CC", top 10
- visitor_trends: one point per calendar day of the window, zero-filled
- device_stats: visits per device type, every non-empty category
- browser_stats: visits per browser, top 5
- peak_hours: 24 hour-of-day buckets
- recent_activity: the 5 newest visits
- summary: headline totals

Missing fields never raise; they fall back to "Unknown" / "XX" / "Desktop".
Entries without a usable timestamp are left out of the time-based views.
"""

from collections import Counter
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Any, Iterable, Optional

UNKNOWN = "Unknown"
UNKNOWN_COUNTRY_CODE = "XX"
DEFAULT_DEVICE_TYPE = "Desktop"

GEO_TOP_N = 8
CITY_TOP_N = 10
BROWSER_TOP_N = 5
RECENT_ACTIVITY_N = 5
HOURS_PER_DAY = 24

# Rank colours for the country chart
GEO_PALETTE = [
    "#6366f1",
    "#0ea5e9",
    "#10b981",
    "#f59e0b",
    "#f43f5e",
    "#8b5cf6",
    "#14b8a6",
    "#ec4899",
]


def _field(entry: Any, name: str) -> Any:
    if isinstance(entry, dict):
        return entry.get(name)
    return getattr(entry, name, None)


def _text(entry: Any, name: str, default: str) -> str:
    value = _field(entry, name)
    if value is None:
        return default
    value = str(value).strip()
    return value or default


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Timezone-aware datetime for a stored timestamp, or None if unusable.

    Accepts datetimes, dates (midnight) and ISO-8601 strings; naive values
    are taken as UTC.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def rank_counts(values: Iterable[str]) -> list[tuple[str, int]]:
    """
    Count values and sort descending by count.

    Counter preserves insertion order and sorted() is stable, so ties keep
    the order in which values were first seen.
    """
    counts = Counter(values)
    return sorted(counts.items(), key=lambda item: item[1], reverse=True)


def geo_distribution(entries: list) -> list[dict]:
    ranked = rank_counts(_text(e, "country", UNKNOWN) for e in entries)[:GEO_TOP_N]
    return [
        {"name": name, "value": value, "color": GEO_PALETTE[rank % len(GEO_PALETTE)]}
        for rank, (name, value) in enumerate(ranked)
    ]


def top_cities(entries: list) -> list[dict]:
    labels = (
        f"{_text(e, 'city', UNKNOWN)}, {_text(e, 'country_code', UNKNOWN_COUNTRY_CODE)}"
        for e in entries
    )
    return [{"name": name, "value": value} for name, value in rank_counts(labels)[:CITY_TOP_N]]


def visitor_trends(timestamps: list[datetime], window_days: int, today: date) -> list[dict]:
    """Dense daily series of window_days points ending on today (inclusive)."""
    if window_days <= 0:
        return []
    first_day = today - timedelta(days=window_days - 1)
    buckets = {first_day + timedelta(days=offset): 0 for offset in range(window_days)}
    for ts in timestamps:
        day = ts.date()
        if day in buckets:
            buckets[day] += 1
    return [{"date": day.isoformat(), "visitors": visitors} for day, visitors in buckets.items()]


def device_stats(entries: list) -> list[dict]:
    ranked = rank_counts(_text(e, "device_type", DEFAULT_DEVICE_TYPE) for e in entries)
    return [{"name": name, "value": value} for name, value in ranked if value > 0]


def browser_stats(entries: list) -> list[dict]:
    ranked = rank_counts(_text(e, "browser", UNKNOWN) for e in entries)[:BROWSER_TOP_N]
    return [{"name": name, "value": value} for name, value in ranked]


def peak_hours(timestamps: list[datetime]) -> list[dict]:
    counts = [0] * HOURS_PER_DAY
    for ts in timestamps:
        counts[ts.hour] += 1
    return [
        {"hour": hour, "label": f"{hour:02d}:00", "visitors": counts[hour]}
        for hour in range(HOURS_PER_DAY)
    ]


def recent_activity(timed_entries: list[tuple[datetime, Any]]) -> list[dict]:
    # stable sort: equal timestamps keep input order
    newest = sorted(timed_entries, key=lambda pair: pair[0], reverse=True)[:RECENT_ACTIVITY_N]
    return [
        {
            "id": _field(entry, "id"),
            "country": _text(entry, "country", UNKNOWN),
            "country_code": _text(entry, "country_code", UNKNOWN_COUNTRY_CODE),
            "city": _text(entry, "city", UNKNOWN),
            "region": _text(entry, "region", UNKNOWN),
            "device_type": _text(entry, "device_type", DEFAULT_DEVICE_TYPE),
            "browser": _text(entry, "browser", UNKNOWN),
            "timestamp": ts.isoformat(),
        }
        for ts, entry in newest
    ]


def aggregate(
    entries: Iterable[Any],
    window_days: int,
    now: datetime,
    tz: tzinfo = timezone.utc,
) -> dict:
    """
    Compute every analytics view from the full visit log.

    Args:
        entries: Visit records (VisitLog objects or dicts with the same keys)
        window_days: Number of days in the trend series
        now: Reference time; the trend series ends on its calendar day
        tz: Timezone for calendar days and hours of day

    Returns:
        Dictionary of views (see module docstring)
    """
    entries = list(entries)

    timed_entries = []
    for entry in entries:
        ts = parse_timestamp(_field(entry, "timestamp"))
        if ts is not None:
            timed_entries.append((ts.astimezone(tz), entry))
    local_timestamps = [ts for ts, _ in timed_entries]

    reference = parse_timestamp(now) or datetime.now(timezone.utc)
    today = reference.astimezone(tz).date()

    trends = visitor_trends(local_timestamps, window_days, today)
    countries = {_text(e, "country", UNKNOWN) for e in entries}

    return {
        "geo_distribution": geo_distribution(entries),
        "top_cities": top_cities(entries),
        "visitor_trends": trends,
        "device_stats": device_stats(entries),
        "browser_stats": browser_stats(entries),
        "peak_hours": peak_hours(local_timestamps),
        "recent_activity": recent_activity(timed_entries),
        "summary": {
            "total_visits": len(entries),
            "window_visits": sum(point["visitors"] for point in trends),
            "countries": len(countries - {UNKNOWN}),
            "today": trends[-1]["visitors"] if trends else 0,
        },
    }

"""
Rate Limiting Configuration

This module provides rate limiting functionality for API endpoints.
Visit recording is public and anonymous, so it is the main abuse target.

Design Decisions:
- Uses slowapi for rate limiting (lightweight, FastAPI-compatible)
- Different limits for different endpoints
- Keyed on the visitor IP, the same address that is logged and geolocated.
  Behind a reverse proxy that is the first X-Forwarded-For hop; without a
  proxy, set TRUST_FORWARDED_FOR=false so clients cannot pick their own key
- Can be disabled via settings (tests, trusted deployments)
"""

from slowapi import Limiter
from starlette.requests import Request

from nebula.core.setting import settings


def get_client_ip(request: Request) -> str:
    """
    Extract client IP address from request.

    Handles proxies and load balancers by checking X-Forwarded-For header.
    """
    if settings.TRUST_FORWARDED_FOR:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            # X-Forwarded-For can contain multiple IPs, take the first one
            return forwarded_for.split(",")[0].strip()

    return request.client.host if request.client else "unknown"


# Initialize rate limiter
# Uses the visitor's IP address for rate limiting
limiter = Limiter(key_func=get_client_ip, enabled=settings.RATE_LIMIT_ENABLED)

# Rate limit configurations per endpoint
# Format: "count/period" (e.g., "10/minute" means 10 requests per minute)
RATE_LIMITS = {
    "visit": "20/minute",  # Visit recording: one per tab load, generous for reloads
    "counter": "120/minute",  # Counter reads
    "analytics": "30/minute",  # Dashboard queries
}

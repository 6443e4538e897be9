"""
Geo Enrichment Client

Best-effort coarse geolocation (country, region, city) for a counted visit.

Design Decisions:
- Never raises to the caller: any failure is logged and returns None
- Time-bounded twice: by the HTTP client timeout and by an overall
  asyncio.wait_for, so a stalled upstream cannot hold up the visit
- The upstream response is untrusted; it is validated with Pydantic and
  missing fields are replaced with "Unknown" / "XX"
- Private, loopback, and unknown client addresses are looked up through the
  upstream's "my own address" endpoint instead
"""

import asyncio
import ipaddress
import logging
from typing import Optional

import httpx
from pydantic import BaseModel, ValidationError

from nebula.core.exceptions import EnrichmentFailure

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"
UNKNOWN_COUNTRY_CODE = "XX"


class LocationInfo(BaseModel):
    """Coarse location attached to a visit."""
    country: str = UNKNOWN
    country_code: str = UNKNOWN_COUNTRY_CODE
    city: str = UNKNOWN
    region: str = UNKNOWN
    ip: str = UNKNOWN


class GeoLookupResponse(BaseModel):
    """Subset of the ipapi.co JSON payload the service reads."""
    country_name: Optional[str] = None
    country_code: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    ip: Optional[str] = None
    error: bool = False
    reason: Optional[str] = None

    def to_location(self) -> LocationInfo:
        return LocationInfo(
            country=self.country_name or UNKNOWN,
            country_code=self.country_code or UNKNOWN_COUNTRY_CODE,
            city=self.city or UNKNOWN,
            region=self.region or UNKNOWN,
            ip=self.ip or UNKNOWN,
        )


def is_public_ip(ip: Optional[str]) -> bool:
    """Whether ip is a syntactically valid, globally routable address."""
    if not ip:
        return False
    try:
        return ipaddress.ip_address(ip).is_global
    except ValueError:
        return False


class GeoEnrichmentClient:
    """
    Async client for the IP geolocation service.

    The client owns an httpx.AsyncClient unless one is passed in (tests pass
    one built on httpx.MockTransport).
    """

    def __init__(
        self,
        lookup_url: str = "https://ipapi.co/{ip}/json/",
        self_lookup_url: str = "https://ipapi.co/json/",
        timeout: float = 4.0,
        enabled: bool = True,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.lookup_url = lookup_url
        self.self_lookup_url = self_lookup_url
        self.timeout = timeout
        self.enabled = enabled
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            headers={"Accept": "application/json"},
        )

    def build_url(self, ip: Optional[str]) -> str:
        if is_public_ip(ip):
            return self.lookup_url.format(ip=ip)
        return self.self_lookup_url

    async def enrich(self, ip: Optional[str] = None) -> Optional[LocationInfo]:
        """
        Look up the coarse location of a client address.

        Args:
            ip: Client IP as seen by the service (may be None or private)

        Returns:
            LocationInfo, or None if the lookup failed for any reason
        """
        if not self.enabled:
            return None

        try:
            return await asyncio.wait_for(self._lookup(ip), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Geolocation lookup timed out after {self.timeout}s")
        except EnrichmentFailure as e:
            logger.warning(str(e))
        except Exception as e:
            logger.warning(f"Geolocation lookup failed unexpectedly: {e}", exc_info=True)
        return None

    async def _lookup(self, ip: Optional[str]) -> LocationInfo:
        url = self.build_url(ip)
        try:
            response = await self._client.get(url)
            response.raise_for_status()
            payload = GeoLookupResponse.model_validate(response.json())
        except httpx.TimeoutException as e:
            raise EnrichmentFailure("upstream timed out", e)
        except httpx.HTTPStatusError as e:
            raise EnrichmentFailure(f"upstream returned {e.response.status_code}", e)
        except httpx.HTTPError as e:
            raise EnrichmentFailure(f"network error ({e.__class__.__name__})", e)
        except (ValueError, ValidationError) as e:
            raise EnrichmentFailure("malformed response", e)

        if payload.error:
            raise EnrichmentFailure(f"upstream error: {payload.reason or 'unknown reason'}")

        return payload.to_location()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

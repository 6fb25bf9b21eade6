"""Geo lookup collaborators.

Resolving an IP to a country and city is best-effort: every implementation
returns an empty GeoLocation instead of raising.
"""

import logging
from typing import Optional

import httpx
from pydantic import BaseModel

from shortlinks.core.config import settings

logger = logging.getLogger(__name__)


class GeoLocation(BaseModel):
    """Country and city of a visitor, each None when unknown."""

    country: Optional[str] = None
    city: Optional[str] = None


class GeoLookup:
    """Interface for IP geolocation."""

    async def lookup(self, ip_address: Optional[str]) -> GeoLocation:
        raise NotImplementedError


class NullGeoLookup(GeoLookup):
    """Lookup used when no geo service is configured; everything is unknown."""

    async def lookup(self, ip_address: Optional[str]) -> GeoLocation:
        return GeoLocation()


class HttpGeoLookup(GeoLookup):
    """
    Lookup against a JSON HTTP service.

    ``url_template`` contains an ``{ip}`` placeholder; the response must be a
    JSON object with optional ``country`` and ``city`` keys.
    """

    def __init__(self, url_template: str, timeout: Optional[float] = None):
        self.url_template = url_template
        self.timeout = timeout if timeout is not None else settings.GEO_LOOKUP_TIMEOUT

    async def lookup(self, ip_address: Optional[str]) -> GeoLocation:
        if not ip_address:
            return GeoLocation()

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(self.url_template.format(ip=ip_address))
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Geo lookup failed for {ip_address}: {e}")
            return GeoLocation()

        if not isinstance(payload, dict):
            return GeoLocation()
        return GeoLocation(
            country=payload.get("country") or None,
            city=payload.get("city") or None,
        )


def build_geo_lookup() -> GeoLookup:
    """Create the lookup selected by settings."""
    if settings.GEO_LOOKUP_URL:
        return HttpGeoLookup(settings.GEO_LOOKUP_URL)
    return NullGeoLookup()

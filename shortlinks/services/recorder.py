"""Click recording service for the shortlinks application.

This module contains the AnalyticsRecorder, which classifies a visit and
appends it as a ClickEvent.
"""

import logging
import re
from typing import Optional

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from shortlinks.models.click import ClickEvent
from shortlinks.repositories.base import RepositoryError
from shortlinks.repositories.click_repository import ClickRepository
from shortlinks.services.exceptions import ClickRecordingError
from shortlinks.services.geo import GeoLocation, GeoLookup, NullGeoLookup

logger = logging.getLogger(__name__)

# Tested in order, first match wins. Case-sensitive.
DEVICE_PATTERNS = [
    ("mobile", re.compile(r"Mobile|Android|iPhone|iPad")),
    ("tablet", re.compile(r"Tablet|iPad")),
]
BROWSER_PATTERNS = [
    ("Chrome", re.compile(r"Chrome")),
    ("Firefox", re.compile(r"Firefox")),
    ("Safari", re.compile(r"Safari")),
    ("Edge", re.compile(r"Edge")),
]
OS_PATTERNS = [
    ("Windows", re.compile(r"Windows")),
    ("macOS", re.compile(r"Mac")),
    ("Linux", re.compile(r"Linux")),
    ("Android", re.compile(r"Android")),
    ("iOS", re.compile(r"iPhone|iPad")),
]


class ClickContext(BaseModel):
    """Raw request details of a visit."""

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    referer: Optional[str] = None


class UserAgentInfo(BaseModel):
    device: str = "desktop"
    browser: str = "Other"
    os: str = "Other"


def _first_match(patterns, value: str, default: str) -> str:
    for label, pattern in patterns:
        if pattern.search(value):
            return label
    return default


def _clip(value: Optional[str], length: int) -> Optional[str]:
    """Fit a header value into its column; empty values become None."""
    return value[:length] if value else None


def classify_user_agent(user_agent: Optional[str]) -> UserAgentInfo:
    """
    Derive device, browser and OS from a user-agent string.

    The mobile pattern is tested before the tablet one, so an iPad counts
    as mobile. A missing user agent classifies as desktop/Other/Other.
    """
    ua = user_agent or ""
    return UserAgentInfo(
        device=_first_match(DEVICE_PATTERNS, ua, "desktop"),
        browser=_first_match(BROWSER_PATTERNS, ua, "Other"),
        os=_first_match(OS_PATTERNS, ua, "Other"),
    )


class AnalyticsRecorder:
    """
    Service appending click events.

    Events are never updated or deleted once written.
    """

    def __init__(self, click_repository: ClickRepository, geo_lookup: Optional[GeoLookup] = None):
        """
        Initialize the recorder.

        Args:
            click_repository: Repository for click event data access
            geo_lookup: IP geolocation collaborator
        """
        self.click_repository = click_repository
        self.geo_lookup = geo_lookup or NullGeoLookup()

    async def record(self, db: AsyncSession, link_id: int, context: ClickContext) -> ClickEvent:
        """
        Classify a visit and store it.

        Args:
            db: Database session
            link_id: ID of the link that was followed
            context: Raw request details

        Returns:
            ClickEvent: The stored event

        Raises:
            ClickRecordingError: If the event could not be stored
        """
        agent = classify_user_agent(context.user_agent)
        location = await self._locate(context.ip_address)

        data = {
            "link_id": link_id,
            "ip_address": _clip(context.ip_address, 45),
            "user_agent": _clip(context.user_agent, 1024),
            "referer": _clip(context.referer, 2048),
            "country": location.country,
            "city": location.city,
            "device": agent.device,
            "browser": agent.browser,
            "os": agent.os,
        }

        try:
            return await self.click_repository.record_click(db, data)
        except RepositoryError as e:
            logger.error(f"Error recording click for link {link_id}: {e}")
            raise ClickRecordingError(f"Failed to record click for link {link_id}") from e

    async def _locate(self, ip_address: Optional[str]) -> GeoLocation:
        try:
            return await self.geo_lookup.lookup(ip_address)
        except Exception as e:
            logger.warning(f"Geo lookup raised for {ip_address}: {e}")
            return GeoLocation()

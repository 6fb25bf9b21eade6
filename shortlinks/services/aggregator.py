"""Analytics aggregation service for the shortlinks application.

This module contains the AnalyticsAggregator class which computes summaries,
trends and breakdowns from recorded click events on demand.
"""

import logging
from datetime import timedelta
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from shortlinks.core.config import settings
from shortlinks.models.click import ClickEvent
from shortlinks.models.link import utcnow
from shortlinks.repositories.base import RepositoryError
from shortlinks.repositories.click_repository import ClickRepository
from shortlinks.repositories.link_repository import LinkRepository
from shortlinks.services.exceptions import StatsRetrievalError

logger = logging.getLogger(__name__)

UNKNOWN_COUNTRY = "unknown"
DIRECT_REFERER = "direct"


class AnalyticsSummary(BaseModel):
    total_links: int
    total_clicks: int
    clicks_this_month: int


class TrendPoint(BaseModel):
    date: str
    clicks: int


class GeoCount(BaseModel):
    country: str
    clicks: int


class DeviceCount(BaseModel):
    device: str
    clicks: int


class RefererCount(BaseModel):
    referer: str
    clicks: int


class AnalyticsAggregator:
    """
    Read-only service over click events.

    Breakdowns are ordered by clicks descending with ties broken by the
    group key ascending. No matching events yields an empty result.
    """

    def __init__(self, click_repository: ClickRepository, link_repository: LinkRepository):
        """
        Initialize the aggregator.

        Args:
            click_repository: Repository for click event data access
            link_repository: Repository for link data access
        """
        self.click_repository = click_repository
        self.link_repository = link_repository

    async def summary(self, db: AsyncSession, owner_id: str) -> AnalyticsSummary:
        """
        Totals for everything an owner has shortened.

        ``total_links`` counts active links only, while both click totals
        include clicks on links deleted since. ``clicks_this_month`` is a
        rolling window, not the calendar month.

        Raises:
            StatsRetrievalError: On repository failure
        """
        try:
            total_links = await self.link_repository.count_active_by_owner(db, owner_id)
            link_ids = await self.link_repository.get_owned_link_ids(db, owner_id)
            total_clicks = await self.click_repository.count_for_links(db, link_ids)
            month_start = utcnow() - timedelta(days=settings.ANALYTICS_MONTH_WINDOW_DAYS)
            clicks_this_month = await self.click_repository.count_for_links(
                db, link_ids, since=month_start
            )
        except RepositoryError as e:
            logger.error(f"Error building summary for owner {owner_id}: {e}")
            raise StatsRetrievalError(f"Failed to build summary: {e}") from e

        return AnalyticsSummary(
            total_links=total_links,
            total_clicks=total_clicks,
            clicks_this_month=clicks_this_month,
        )

    async def click_trends(
        self,
        db: AsyncSession,
        link_id: int,
        days: Optional[int] = None,
    ) -> List[TrendPoint]:
        """
        Clicks per UTC date over the trailing ``days`` days, oldest first.

        Dates without clicks are omitted rather than zero-filled.

        Raises:
            StatsRetrievalError: On repository failure
        """
        if days is None:
            days = settings.ANALYTICS_DEFAULT_TREND_DAYS
        since = utcnow() - timedelta(days=days)

        try:
            rows = await self.click_repository.daily_counts(db, link_id, since)
        except RepositoryError as e:
            logger.error(f"Error retrieving trends for link {link_id}: {e}")
            raise StatsRetrievalError(f"Failed to retrieve click trends: {e}") from e

        return [TrendPoint(date=day, clicks=clicks) for day, clicks in rows]

    async def geo_breakdown(self, db: AsyncSession, link_id: int) -> List[GeoCount]:
        """Top countries for a link; unknown locations are grouped as ``"unknown"``."""
        rows = await self._breakdown(
            db, link_id, "country", UNKNOWN_COUNTRY, settings.ANALYTICS_BREAKDOWN_LIMIT
        )
        return [GeoCount(country=key, clicks=clicks) for key, clicks in rows]

    async def device_breakdown(self, db: AsyncSession, link_id: int) -> List[DeviceCount]:
        """Clicks per device class, every class included."""
        rows = await self._breakdown(db, link_id, "device")
        return [DeviceCount(device=key, clicks=clicks) for key, clicks in rows]

    async def referer_breakdown(self, db: AsyncSession, link_id: int) -> List[RefererCount]:
        """Top referers for a link; visits without one are grouped as ``"direct"``."""
        rows = await self._breakdown(
            db, link_id, "referer", DIRECT_REFERER, settings.ANALYTICS_BREAKDOWN_LIMIT
        )
        return [RefererCount(referer=key, clicks=clicks) for key, clicks in rows]

    async def recent_clicks(
        self,
        db: AsyncSession,
        link_id: int,
        limit: Optional[int] = None,
    ) -> List[ClickEvent]:
        """Latest raw click events for a link, newest first."""
        try:
            return await self.click_repository.recent_clicks(
                db, link_id, limit or settings.ANALYTICS_RECENT_CLICKS_LIMIT
            )
        except RepositoryError as e:
            logger.error(f"Error retrieving recent clicks for link {link_id}: {e}")
            raise StatsRetrievalError(f"Failed to retrieve recent clicks: {e}") from e

    async def click_counts(self, db: AsyncSession, link_ids: Sequence[int]) -> Dict[int, int]:
        """Total clicks per link id; every requested id is present."""
        try:
            counts = await self.click_repository.click_counts(db, link_ids)
        except RepositoryError as e:
            logger.error(f"Error retrieving click counts: {e}")
            raise StatsRetrievalError(f"Failed to retrieve click counts: {e}") from e
        return {link_id: counts.get(link_id, 0) for link_id in link_ids}

    async def _breakdown(
        self,
        db: AsyncSession,
        link_id: int,
        field_name: str,
        default_label: Optional[str] = None,
        limit: Optional[int] = None,
    ):
        try:
            return await self.click_repository.breakdown(
                db, link_id, field_name, default_label=default_label, limit=limit
            )
        except RepositoryError as e:
            logger.error(f"Error retrieving {field_name} breakdown for link {link_id}: {e}")
            raise StatsRetrievalError(f"Failed to retrieve {field_name} breakdown: {e}") from e

"""Click analytics endpoints.

Per-link endpoints only answer for links owned by the requester.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from shortlinks.api import schemas
from shortlinks.api.dependencies import get_aggregator, get_current_user_id, get_registry
from shortlinks.api.errors import http_error
from shortlinks.core.config import settings
from shortlinks.db.session import get_db
from shortlinks.services.aggregator import AnalyticsAggregator
from shortlinks.services.exceptions import ServiceError
from shortlinks.services.registry import URLRegistry

router = APIRouter(prefix="/analytics", tags=["analytics"])


async def owned_link_id(
    link_id: int = Path(..., ge=1),
    db: AsyncSession = Depends(get_db),
    registry: URLRegistry = Depends(get_registry),
    owner_id: str = Depends(get_current_user_id)
) -> int:
    """Resolve the path link id, checking the requester owns it."""
    try:
        link = await registry.get_owned(db, link_id, owner_id)
    except ServiceError as e:
        raise http_error(e) from e
    return link.id


@router.get("/summary", response_model=schemas.SummaryResponse)
async def get_summary(
    db: AsyncSession = Depends(get_db),
    aggregator: AnalyticsAggregator = Depends(get_aggregator),
    owner_id: str = Depends(get_current_user_id)
):
    try:
        summary = await aggregator.summary(db, owner_id)
    except ServiceError as e:
        raise http_error(e) from e
    return schemas.SummaryResponse(**summary.model_dump())


@router.get("/{link_id}/trends", response_model=List[schemas.TrendPointResponse])
async def get_trends(
    days: int = Query(settings.ANALYTICS_DEFAULT_TREND_DAYS, ge=1, le=365, description="Trailing window in days"),
    link_id: int = Depends(owned_link_id),
    db: AsyncSession = Depends(get_db),
    aggregator: AnalyticsAggregator = Depends(get_aggregator)
):
    try:
        points = await aggregator.click_trends(db, link_id, days)
    except ServiceError as e:
        raise http_error(e) from e
    return [schemas.TrendPointResponse(**point.model_dump()) for point in points]


@router.get("/{link_id}/geo", response_model=List[schemas.GeoCountResponse])
async def get_geo(
    link_id: int = Depends(owned_link_id),
    db: AsyncSession = Depends(get_db),
    aggregator: AnalyticsAggregator = Depends(get_aggregator)
):
    try:
        rows = await aggregator.geo_breakdown(db, link_id)
    except ServiceError as e:
        raise http_error(e) from e
    return [schemas.GeoCountResponse(**row.model_dump()) for row in rows]


@router.get("/{link_id}/devices", response_model=List[schemas.DeviceCountResponse])
async def get_devices(
    link_id: int = Depends(owned_link_id),
    db: AsyncSession = Depends(get_db),
    aggregator: AnalyticsAggregator = Depends(get_aggregator)
):
    try:
        rows = await aggregator.device_breakdown(db, link_id)
    except ServiceError as e:
        raise http_error(e) from e
    return [schemas.DeviceCountResponse(**row.model_dump()) for row in rows]


@router.get("/{link_id}/referers", response_model=List[schemas.RefererCountResponse])
async def get_referers(
    link_id: int = Depends(owned_link_id),
    db: AsyncSession = Depends(get_db),
    aggregator: AnalyticsAggregator = Depends(get_aggregator)
):
    try:
        rows = await aggregator.referer_breakdown(db, link_id)
    except ServiceError as e:
        raise http_error(e) from e
    return [schemas.RefererCountResponse(**row.model_dump()) for row in rows]


@router.get("/{link_id}/clicks", response_model=List[schemas.ClickData])
async def get_recent_clicks(
    limit: Optional[int] = Query(None, ge=1, le=500, description="Maximum number of clicks"),
    link_id: int = Depends(owned_link_id),
    db: AsyncSession = Depends(get_db),
    aggregator: AnalyticsAggregator = Depends(get_aggregator)
):
    try:
        clicks = await aggregator.recent_clicks(db, link_id, limit)
    except ServiceError as e:
        raise http_error(e) from e
    return [schemas.ClickData.model_validate(click) for click in clicks]

"""API dependencies for FastAPI.

This module provides dependency injection functions for FastAPI endpoints
to access repositories, service instances and the requester identity.
"""

from typing import Optional

from fastapi import Depends, HTTPException, Request, status

from shortlinks.core.config import settings
from shortlinks.db.session import get_session_context_factory
from shortlinks.repositories.click_repository import ClickRepository
from shortlinks.repositories.link_repository import LinkRepository
from shortlinks.services.aggregator import AnalyticsAggregator
from shortlinks.services.dispatcher import RedirectDispatcher, SessionContextFactory
from shortlinks.services.geo import GeoLookup, build_geo_lookup
from shortlinks.services.recorder import AnalyticsRecorder
from shortlinks.services.registry import URLRegistry


async def get_link_repository():
    """Get an instance of the link repository."""
    return LinkRepository()


async def get_click_repository():
    """Get an instance of the click repository."""
    return ClickRepository()


async def get_geo_lookup() -> GeoLookup:
    """Get the configured geo lookup collaborator."""
    return build_geo_lookup()


async def get_registry(
    link_repo: LinkRepository = Depends(get_link_repository),
) -> URLRegistry:
    """Get an instance of the link registry."""
    return URLRegistry(link_repository=link_repo)


async def get_recorder(
    click_repo: ClickRepository = Depends(get_click_repository),
    geo_lookup: GeoLookup = Depends(get_geo_lookup),
) -> AnalyticsRecorder:
    """Get an instance of the click recorder."""
    return AnalyticsRecorder(click_repository=click_repo, geo_lookup=geo_lookup)


async def get_dispatcher(
    registry: URLRegistry = Depends(get_registry),
    recorder: AnalyticsRecorder = Depends(get_recorder),
    session_factory: SessionContextFactory = Depends(get_session_context_factory),
) -> RedirectDispatcher:
    """Get an instance of the redirect dispatcher."""
    return RedirectDispatcher(registry=registry, recorder=recorder, session_factory=session_factory)


async def get_aggregator(
    click_repo: ClickRepository = Depends(get_click_repository),
    link_repo: LinkRepository = Depends(get_link_repository),
) -> AnalyticsAggregator:
    """Get an instance of the analytics aggregator."""
    return AnalyticsAggregator(click_repository=click_repo, link_repository=link_repo)


def get_optional_user_id(request: Request) -> Optional[str]:
    """Requester id forwarded by the auth gateway, if any."""
    user_id = request.headers.get(settings.USER_ID_HEADER)
    if user_id is None or not user_id.strip():
        return None
    return user_id.strip()


def get_current_user_id(user_id: Optional[str] = Depends(get_optional_user_id)) -> str:
    """Requester id for endpoints that need one."""
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing {settings.USER_ID_HEADER} header",
        )
    return user_id


def get_base_url():
    """Get the base URL for shortened links."""
    return settings.BASE_URL

"""Routes package initialization.

This module exports the route collection for the application.
"""

from fastapi import APIRouter

from shortlinks.api.routes import analytics, health, redirect, shortener
from shortlinks.core.config import settings

# Create root router
api_router = APIRouter()

api_router.include_router(shortener.router, prefix=settings.API_PREFIX)
api_router.include_router(analytics.router, prefix=settings.API_PREFIX)
api_router.include_router(health.router, prefix=settings.API_PREFIX)

# Redirects live at the root path so short URLs are /{code}
api_router.include_router(redirect.router)

__all__ = ["api_router"]

"""Service layer for the shortlinks application.

This package contains service classes implementing the business logic of the application.
Services orchestrate interactions between repositories and provide domain-specific operations.
"""

from shortlinks.services.codegen import CodeGenerator
from shortlinks.services.registry import URLRegistry, BulkShortenItem, BulkShortenResult
from shortlinks.services.recorder import AnalyticsRecorder, ClickContext, classify_user_agent
from shortlinks.services.dispatcher import RedirectDispatcher, RedirectOutcome, RedirectState
from shortlinks.services.aggregator import AnalyticsAggregator, AnalyticsSummary
from shortlinks.services.geo import GeoLocation, GeoLookup, NullGeoLookup, HttpGeoLookup

__all__ = [
    "CodeGenerator",
    "URLRegistry",
    "BulkShortenItem",
    "BulkShortenResult",
    "AnalyticsRecorder",
    "ClickContext",
    "classify_user_agent",
    "RedirectDispatcher",
    "RedirectOutcome",
    "RedirectState",
    "AnalyticsAggregator",
    "AnalyticsSummary",
    "GeoLocation",
    "GeoLookup",
    "NullGeoLookup",
    "HttpGeoLookup",
]

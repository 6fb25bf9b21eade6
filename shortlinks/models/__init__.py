"""
Data models for the shortlinks service.

This module imports and exports all SQLModel models used in the application.
"""

from sqlmodel import SQLModel

# Table models in dependency order (parent before child)
from shortlinks.models.link import (
    ShortLink,
    ShortLinkBase,
    ShortLinkCreate,
    ReservedCode,
    utcnow,
)
from shortlinks.models.click import (
    ClickEvent,
    ClickEventBase,
    ClickEventCreate,
)

__all__ = [
    "SQLModel",

    # Click event models
    "ClickEvent",
    "ClickEventBase",
    "ClickEventCreate",

    # Short link models
    "ShortLink",
    "ShortLinkBase",
    "ShortLinkCreate",
    "ReservedCode",
    "utcnow",
]

"""
Click event tracking data models.

This module defines the ClickEvent model recording each visit through a short link.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Column, DateTime, Index
from sqlmodel import Field, SQLModel

from shortlinks.models.link import utcnow


class ClickEventBase(SQLModel):
    """Base model for click event data."""

    ip_address: Optional[str] = Field(
        default=None,
        description="IP address of the visitor",
        max_length=45  # Support both IPv4 and IPv6 addresses
    )
    user_agent: Optional[str] = Field(
        default=None,
        description="Raw user agent string of the visitor's browser",
        max_length=1024
    )
    referer: Optional[str] = Field(
        default=None,
        description="Referring page URL",
        max_length=2048
    )
    country: Optional[str] = Field(default=None, max_length=100)
    city: Optional[str] = Field(default=None, max_length=100)
    device: str = Field(default="desktop", max_length=20)
    browser: str = Field(default="Other", max_length=20)
    os: str = Field(default="Other", max_length=20)


class ClickEvent(ClickEventBase, table=True):
    """
    Click event model.

    Events are append-only. They are written from a background task after
    the redirect has been answered, so analytics never delays the visitor.
    """

    __tablename__ = "click_events"

    id: Optional[int] = Field(default=None, primary_key=True)
    link_id: int = Field(
        foreign_key="short_links.id",
        description="The short link that was followed"
    )
    clicked_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=False), nullable=False),
        description="UTC timestamp of the click"
    )

    __table_args__ = (
        # Per-link time-window and grouping queries
        Index("ix_click_events_link_id_clicked_at", "link_id", "clicked_at"),
    )


class ClickEventCreate(ClickEventBase):
    """Schema for creating a new click event record."""
    link_id: int
    clicked_at: Optional[datetime] = None

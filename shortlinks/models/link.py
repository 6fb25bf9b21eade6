"""Short link data models.

This module defines the ShortLink model mapping short codes to target URLs,
and the ReservedCode model holding every code or alias ever claimed.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import Column, DateTime, Index
from sqlmodel import Field, SQLModel

from shortlinks.core.config import settings


def utcnow() -> datetime:
    """Current time as a naive UTC datetime, the storage convention for all timestamps."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class ShortLinkBase(SQLModel):
    """Base model for short link data."""

    original_url: str = Field(
        description="The absolute URL visitors are redirected to"
    )
    short_code: str = Field(
        max_length=50,
        unique=True,
        description="Path token resolving to the original URL; equals the alias for custom links"
    )
    custom_alias: Optional[str] = Field(
        default=None,
        max_length=50,
        unique=True,
        description="User-chosen token, usable interchangeably with the short code"
    )
    owner_id: Optional[str] = Field(
        default=None,
        max_length=255,
        description="Identifier of the owning user (null for anonymous links)"
    )
    expires_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=False), nullable=True),
        description="When this link stops resolving (null means no expiration)"
    )


class ShortLink(ShortLinkBase, table=True):
    """
    Short link model.

    Links are never hard-deleted: deleting a link clears ``is_active`` so its
    click history remains attached and its code stays claimed.
    """

    __tablename__ = "short_links"

    id: Optional[int] = Field(default=None, primary_key=True)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=False), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=False), nullable=False),
    )

    __table_args__ = (
        # Owner listings, newest first
        Index("ix_short_links_owner_created", "owner_id", "created_at"),
    )

    @classmethod
    def generate_expiration(cls, days: Optional[int] = None) -> Optional[datetime]:
        """Build an expiry timestamp ``days`` from now, falling back to the configured default.

        Args:
            days: Number of days until expiration, or None for the default

        Returns:
            Optional[datetime]: Expiration date or None if links should not expire
        """
        if days is None:
            days = settings.DEFAULT_EXPIRATION_DAYS

        if days is None:
            return None
        return utcnow() + timedelta(days=days)


class ShortLinkCreate(ShortLinkBase):
    """Schema for creating a new short link."""
    pass


class ReservedCode(SQLModel, table=True):
    """
    A claimed code or alias.

    Generated codes and aliases share one namespace; the primary key on
    ``code`` is what makes that namespace unique at the database level.
    Rows are never removed, so a claimed token is never handed out again.
    """

    __tablename__ = "reserved_codes"

    code: str = Field(primary_key=True, max_length=50)
    link_id: int = Field(foreign_key="short_links.id", index=True)
    claimed_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=False), nullable=False),
    )

"""API request and response schemas.

This module contains Pydantic models for API request validation
and response serialization.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator


def blank_alias_to_none(value: Any) -> Any:
    """An empty alias means no alias."""
    if isinstance(value, str) and not value.strip():
        return None
    return value


class ShortenRequest(BaseModel):
    """Request schema for creating a short link.

    ``original_url`` is validated by the registry so a malformed URL is
    reported like any other invalid input.
    """
    original_url: str
    custom_alias: Optional[str] = None
    expiration_days: Optional[int] = Field(None, ge=1)

    @field_validator("custom_alias", mode="before")
    def empty_alias(cls, v: Any) -> Any:
        return blank_alias_to_none(v)


class BulkShortenItemRequest(BaseModel):
    """One bulk entry.

    Fields are left loosely typed: a bad entry is rejected by the registry
    as that entry's error instead of failing the whole request.
    """
    original_url: Any = None
    custom_alias: Any = None
    expiration_days: Any = None

    @field_validator("custom_alias", mode="before")
    def empty_alias(cls, v: Any) -> Any:
        return blank_alias_to_none(v)


class BulkShortenRequest(BaseModel):
    """Request schema for creating several short links at once."""
    items: List[BulkShortenItemRequest] = Field(..., min_length=1, max_length=100)


class LinkUpdateRequest(BaseModel):
    """Request schema for changing a link's alias; null clears it."""
    custom_alias: Optional[str] = None


class LinkResponse(BaseModel):
    """Response schema for link information."""
    id: int
    original_url: str
    short_code: str
    custom_alias: Optional[str] = None
    short_url: str  # Full URL including base domain
    is_active: bool
    created_at: datetime
    expires_at: Optional[datetime] = None
    click_count: Optional[int] = None


class LinkListResponse(BaseModel):
    """Response schema for an owner's links."""
    links: List[LinkResponse]


class BulkItemSuccess(BaseModel):
    id: int
    original_url: str
    short_code: str
    short_url: str


class BulkItemFailure(BaseModel):
    original_url: Any = None  # Echoed back as submitted
    error: str


class BulkShortenResponse(BaseModel):
    """Per-item results in request order."""
    results: List[Union[BulkItemSuccess, BulkItemFailure]]


class AliasAvailabilityResponse(BaseModel):
    alias: str
    available: bool


class SummaryResponse(BaseModel):
    total_links: int
    total_clicks: int
    clicks_this_month: int


class TrendPointResponse(BaseModel):
    date: str
    clicks: int


class GeoCountResponse(BaseModel):
    country: str
    clicks: int


class DeviceCountResponse(BaseModel):
    device: str
    clicks: int


class RefererCountResponse(BaseModel):
    referer: str
    clicks: int


class ClickData(BaseModel):
    """Schema for click event data."""
    id: int
    clicked_at: datetime
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    referer: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None
    device: str
    browser: str
    os: str

    class Config:
        from_attributes = True


class ErrorResponse(BaseModel):
    """Response schema for errors."""
    detail: str
    error_code: Optional[str] = None  # Machine-readable error code
    field_errors: Optional[Dict[str, List[str]]] = None  # For validation errors

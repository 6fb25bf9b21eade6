"""Test utilities for shortlinks tests."""

import random
import string
from datetime import datetime
from typing import Optional

from shortlinks.models.click import ClickEvent
from shortlinks.models.link import ReservedCode, ShortLink, utcnow


IPHONE_UA = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) "
    "AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)
WINDOWS_CHROME_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
LINUX_FIREFOX_UA = "Mozilla/5.0 (X11; Linux x86_64; rv:121.0) Gecko/20100101 Firefox/121.0"


def random_string(length: int = 10) -> str:
    """Generate a random alphanumeric string."""
    return ''.join(random.choice(string.ascii_letters + string.digits) for _ in range(length))


def random_url() -> str:
    """Generate a random URL for testing."""
    domain = f"{random_string(8).lower()}.com"
    path = random_string(12)
    return f"https://{domain}/{path}"


async def create_test_link(
    db,
    short_code: Optional[str] = None,
    original_url: Optional[str] = None,
    custom_alias: Optional[str] = None,
    owner_id: Optional[str] = None,
    is_active: bool = True,
    expires_at: Optional[datetime] = None,
    created_at: Optional[datetime] = None,
) -> ShortLink:
    """Create and persist a test ShortLink along with its reservations."""
    link = ShortLink(
        original_url=original_url or random_url(),
        short_code=short_code or random_string(8).lower(),
        custom_alias=custom_alias,
        owner_id=owner_id,
        is_active=is_active,
        expires_at=expires_at,
        created_at=created_at or utcnow(),
    )
    db.add(link)
    await db.flush()

    db.add(ReservedCode(code=link.short_code, link_id=link.id))
    if custom_alias and custom_alias != link.short_code:
        db.add(ReservedCode(code=custom_alias, link_id=link.id))
    await db.flush()
    await db.refresh(link)
    return link


async def create_test_click(
    db,
    link_id: int,
    clicked_at: Optional[datetime] = None,
    country: Optional[str] = None,
    referer: Optional[str] = None,
    device: str = "desktop",
    browser: str = "Other",
    os: str = "Other",
) -> ClickEvent:
    """Create and persist a test ClickEvent."""
    click = ClickEvent(
        link_id=link_id,
        clicked_at=clicked_at or utcnow(),
        country=country,
        referer=referer,
        device=device,
        browser=browser,
        os=os,
    )
    db.add(click)
    await db.flush()
    await db.refresh(click)
    return click

"""Basic tests to verify test DB setup."""

from datetime import timedelta

import pytest
from sqlalchemy import DateTime, select, text

from shortlinks.models import ClickEvent, ReservedCode, ShortLink, utcnow


@pytest.mark.asyncio
async def test_tables_exist(test_engine):
    """Verify every table is created in the test database."""
    async with test_engine.connect() as conn:
        result = await conn.execute(text("SELECT name FROM sqlite_master WHERE type='table'"))
        tables = {row[0] for row in result.fetchall()}

    assert {"short_links", "reserved_codes", "click_events"} <= tables


@pytest.mark.asyncio
async def test_create_link_and_reservation(test_db):
    link = ShortLink(original_url="https://example.com", short_code="test1234")
    test_db.add(link)
    await test_db.flush()
    test_db.add(ReservedCode(code="test1234", link_id=link.id))
    await test_db.commit()

    result = await test_db.execute(select(ShortLink).where(ShortLink.short_code == "test1234"))
    retrieved = result.scalars().first()

    assert retrieved is not None
    assert retrieved.original_url == "https://example.com"
    assert retrieved.is_active is True
    assert retrieved.custom_alias is None
    assert (await test_db.get(ReservedCode, "test1234")).link_id == link.id


@pytest.mark.asyncio
async def test_foreign_keys(test_db):
    """Verify click events and reservations reference short links."""
    for table in ("click_events", "reserved_codes"):
        result = await test_db.execute(text(f"PRAGMA foreign_key_list('{table}')"))
        assert any(fk[2] == "short_links" for fk in result.fetchall())


@pytest.mark.parametrize("model, column", [
    (ShortLink, "created_at"),
    (ShortLink, "updated_at"),
    (ShortLink, "expires_at"),
    (ReservedCode, "claimed_at"),
    (ClickEvent, "clicked_at"),
])
def test_timestamps_store_naive_utc(model, column):
    """Timestamp columns hold naive UTC values regardless of sqlmodel's default mapping."""
    column_type = model.__table__.c[column].type

    assert type(column_type) is DateTime
    assert column_type.timezone is False


@pytest.mark.asyncio
async def test_naive_timestamps_round_trip(test_db):
    expires_at = utcnow() + timedelta(days=1)
    link = ShortLink(original_url="https://example.com", short_code="naive001", expires_at=expires_at)
    test_db.add(link)
    await test_db.flush()
    test_db.add(ClickEvent(link_id=link.id))
    await test_db.flush()

    clicked_at = await test_db.scalar(select(ClickEvent.clicked_at).where(ClickEvent.link_id == link.id))
    stored_expiry = await test_db.scalar(select(ShortLink.expires_at).where(ShortLink.id == link.id))

    assert clicked_at.tzinfo is None
    assert stored_expiry == expires_at

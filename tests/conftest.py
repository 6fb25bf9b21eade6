"""Test fixtures for the shortlinks application."""

import os

# Settings are read at import time
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("DB_AUTO_CREATE", "false")
os.environ.setdefault("LOG_TO_FILE", "false")

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from shortlinks.db.session import get_db, get_session_context_factory
from shortlinks.main import app as main_app
# Import models to ensure they're registered with SQLModel metadata
from shortlinks.models import ClickEvent, ReservedCode, ShortLink  # noqa: F401
from shortlinks.repositories import ClickRepository, LinkRepository
from shortlinks.services import (
    AnalyticsAggregator,
    AnalyticsRecorder,
    RedirectDispatcher,
    URLRegistry,
)


# Test database URL - using SQLite in-memory
TEST_SQLALCHEMY_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def test_engine():
    """Create a fresh in-memory SQLite engine for each test."""
    engine = create_async_engine(
        TEST_SQLALCHEMY_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )

    # pysqlite's own transaction handling breaks SAVEPOINT; emit BEGIN ourselves
    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def test_db(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create isolated test database session."""
    async_session = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False
    )

    async with async_session() as session:
        await session.begin()
        try:
            yield session
        finally:
            await session.rollback()
            await session.close()


@pytest.fixture
def session_context_factory(test_db):
    """Background session factory that reuses the test session."""
    @asynccontextmanager
    async def _factory():
        yield test_db

    return _factory


@pytest.fixture
def link_repository():
    return LinkRepository()


@pytest.fixture
def click_repository():
    return ClickRepository()


@pytest.fixture
def registry(link_repository):
    return URLRegistry(link_repository=link_repository)


@pytest.fixture
def recorder(click_repository):
    return AnalyticsRecorder(click_repository=click_repository)


@pytest.fixture
def aggregator(click_repository, link_repository):
    return AnalyticsAggregator(click_repository=click_repository, link_repository=link_repository)


@pytest.fixture
def dispatcher(registry, recorder, session_context_factory):
    return RedirectDispatcher(
        registry=registry,
        recorder=recorder,
        session_factory=session_context_factory,
    )


@pytest.fixture
def test_app(test_db, session_context_factory):
    """FastAPI app wired to the test session."""
    async def _override_get_db():
        yield test_db

    main_app.dependency_overrides[get_db] = _override_get_db
    main_app.dependency_overrides[get_session_context_factory] = lambda: session_context_factory
    yield main_app
    main_app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(test_app) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Return an async HTTP client bound to the app."""
    transport = httpx.ASGITransport(app=test_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as test_client:
        yield test_client

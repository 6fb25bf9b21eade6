"""Database base configuration for SQLAlchemy with SQLModel.

This module provides base database configuration for async SQLAlchemy with SQLModel.
It includes:
- Engine configuration
- Session factory setup
- Schema creation

The engine and session factory are built lazily on first use so that
importing the package never opens a connection pool.
"""

from typing import AsyncGenerator, Dict
from functools import lru_cache
import logging
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel

from shortlinks.core.config import settings

logger = logging.getLogger(__name__)

# Mapping of environment to SQLAlchemy engine configurations
ENGINE_CONFIGS: Dict[str, Dict] = {
    "development": {
        "echo": settings.DB_ECHO,
        "pool_size": settings.POSTGRES_POOL_SIZE,
        "max_overflow": settings.POSTGRES_POOL_MAX_OVERFLOW,
        "pool_timeout": settings.POSTGRES_POOL_TIMEOUT,
        "pool_recycle": settings.POSTGRES_POOL_RECYCLE,
        "pool_pre_ping": True,
    },
    "production": {
        "echo": False,
        "pool_size": settings.POSTGRES_POOL_SIZE,
        "max_overflow": settings.POSTGRES_POOL_MAX_OVERFLOW,
        "pool_timeout": settings.POSTGRES_POOL_TIMEOUT,
        "pool_recycle": settings.POSTGRES_POOL_RECYCLE,
        "pool_pre_ping": True,
    },
    "testing": {
        "echo": False,
        "poolclass": NullPool,
    },
}


def get_engine_config() -> Dict:
    """Get the appropriate engine configuration based on the environment.

    Returns:
        Dict: Engine configuration parameters for the current environment.
    """
    env = settings.ENVIRONMENT.value
    return ENGINE_CONFIGS.get(env, ENGINE_CONFIGS["development"])


@lru_cache(maxsize=1)
def get_engine() -> AsyncEngine:
    """Create and configure the async SQLAlchemy engine.

    Returns:
        AsyncEngine: Configured SQLAlchemy async engine instance.
    """
    engine_url = str(settings.SQLALCHEMY_DATABASE_URI)
    engine_config = get_engine_config()

    logger.info(f"Creating database engine for environment '{settings.ENVIRONMENT.value}'")

    return create_async_engine(
        engine_url,
        **engine_config,
    )


@lru_cache(maxsize=1)
def get_session_factory() -> async_sessionmaker:
    """Return the async session factory bound to the engine."""
    return async_sessionmaker(
        bind=get_engine(),
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Get async session with proper error handling and cleanup.

    Yields:
        AsyncSession: SQLAlchemy async session
    """
    session = get_session_factory()()
    try:
        yield session
    finally:
        await session.close()


async def create_tables() -> None:
    """Create any missing tables registered on the SQLModel metadata."""
    # Importing the models registers them on SQLModel.metadata
    import shortlinks.models  # noqa: F401

    async with get_engine().begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info("Database tables verified")


async def dispose_engine() -> None:
    """Close pooled connections held by the engine."""
    if get_engine.cache_info().currsize:
        await get_engine().dispose()


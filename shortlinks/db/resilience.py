"""Database resilience patterns.

Implements connection retry with exponential backoff for application
startup, so that the service survives a database that comes up slowly.
"""

import asyncio
import logging
import random

from sqlalchemy.sql import text

from shortlinks.core.config import settings
from shortlinks.db.base import get_session

logger = logging.getLogger(__name__)


def backoff_delay(attempt: int) -> float:
    """Exponential backoff with jitter for the given 1-based attempt."""
    delay = min(
        settings.DB_CONNECT_RETRY_INITIAL_DELAY * (2 ** (attempt - 1)),
        settings.DB_CONNECT_RETRY_MAX_DELAY,
    )
    jitter = delay * settings.DB_CONNECT_RETRY_JITTER
    return delay + random.uniform(-jitter, jitter) if jitter > 0 else delay


async def initialize_database_connection() -> bool:
    """Initialize database connection with retry and exponential backoff.

    Returns:
        bool: True if connection was successful, False otherwise
    """
    max_attempts = settings.DB_CONNECT_RETRY_ATTEMPTS

    logger.info(f"Initializing database connection (max attempts: {max_attempts})")

    for attempt in range(1, max_attempts + 1):
        try:
            async with get_session() as session:
                await session.execute(text("SELECT 1"))

            logger.info(f"Database connection established on attempt {attempt}")
            return True

        except Exception as e:
            if attempt < max_attempts:
                backoff_time = backoff_delay(attempt)
                logger.warning(
                    f"Database connection attempt {attempt}/{max_attempts} failed: {e}. "
                    f"Retrying in {backoff_time:.2f} seconds..."
                )
                await asyncio.sleep(backoff_time)
            else:
                logger.error(
                    f"Failed to connect to database after {max_attempts} attempts. "
                    f"Last error: {e}"
                )

    return False

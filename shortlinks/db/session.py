"""Session management for database operations.

This module provides utilities for handling SQLAlchemy async sessions
with proper lifecycle management, error handling, and transaction support.
It includes dependency injection patterns optimized for FastAPI.
"""

from typing import AsyncGenerator, Callable, Optional, TypeVar
import logging
import inspect
from contextlib import asynccontextmanager
from functools import wraps

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError

from shortlinks.db.base import get_session

logger = logging.getLogger(__name__)

# Generic return type for function decorators
T = TypeVar("T")


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for database sessions.

    Yields:
        AsyncSession: A SQLAlchemy async session object.
    """
    async with get_session() as session:
        try:
            yield session
        except SQLAlchemyError:
            logger.exception("Database error occurred")
            await session.rollback()
            raise
        except Exception:
            await session.rollback()
            raise


def db_transaction(db_param_name: Optional[str] = None) -> Callable:
    """Decorator to wrap functions in a database transaction.

    Finds the database session parameter, commits on success or rolls back
    on error. The session is located by name when ``db_param_name`` is given,
    otherwise by the first parameter annotated as AsyncSession.

    Example:
        ```python
        @router.post("/shorten")
        @db_transaction()
        async def shorten(payload: ShortenRequest, db: AsyncSession = Depends(get_db)):
            ...
        ```

    Raises:
        ValueError: If no suitable database session is passed at call time
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        parameters = inspect.signature(func).parameters
        db_param_pos = None
        db_param_key = None

        for i, (param_name, param) in enumerate(parameters.items()):
            is_async_session = param.annotation is AsyncSession

            if db_param_name and param_name == db_param_name:
                db_param_pos = i
                db_param_key = param_name
                break
            elif is_async_session and db_param_name is None:
                db_param_pos = i
                db_param_key = param_name
                break

        if db_param_key is None:
            logger.warning(
                f"Unable to find database session parameter in function '{func.__name__}'"
            )

        @wraps(func)
        async def wrapper(*args, **kwargs):
            db = None

            if db_param_key is not None and db_param_key in kwargs:
                db = kwargs[db_param_key]
            elif db_param_pos is not None and len(args) > db_param_pos:
                db = args[db_param_pos]
            else:
                for value in list(args) + list(kwargs.values()):
                    if isinstance(value, AsyncSession):
                        db = value
                        break

            if db is None:
                raise ValueError(
                    f"Database session not found in function arguments for '{func.__name__}'. "
                    f"Ensure a parameter of type AsyncSession is passed to the function."
                )

            try:
                result = await func(*args, **kwargs)
                await db.commit()
                return result
            except Exception:
                await db.rollback()
                raise

        return wrapper
    return decorator


class SessionManager:
    """Session manager for database work outside the request lifecycle."""

    @staticmethod
    @asynccontextmanager
    async def transaction_context() -> AsyncGenerator[AsyncSession, None]:
        """Context manager for a database session with transaction support.

        Commits on successful completion or rolls back on error. Used by
        background click recording, which must not share the request session.

        Yields:
            AsyncSession: SQLAlchemy async session
        """
        async with get_session() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise


def get_session_context_factory():
    """FastAPI dependency returning the factory used for background sessions."""
    return SessionManager.transaction_context

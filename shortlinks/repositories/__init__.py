"""Repository layer for the shortlinks service.

This module provides repository classes that abstract database operations
and implement the Repository pattern for clean separation of concerns.
"""

from shortlinks.repositories.base import (
    BaseRepository,
    RepositoryError,
    RepositoryTimeoutError,
    EntityNotFoundError,
    DuplicateEntityError
)
from shortlinks.repositories.link_repository import LinkRepository
from shortlinks.repositories.click_repository import ClickRepository

__all__ = [
    # Base classes and exceptions
    "BaseRepository",
    "RepositoryError",
    "RepositoryTimeoutError",
    "EntityNotFoundError",
    "DuplicateEntityError",

    # Concrete repositories
    "LinkRepository",
    "ClickRepository",
]

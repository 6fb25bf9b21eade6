"""Base repository implementation for the shortlinks service.

This module provides a generic BaseRepository class that follows the Repository pattern
for database operations, serving as a foundation for more specific repositories.
Every statement runs under the configured operation timeout.
"""

from typing import Any, Awaitable, Dict, Generic, Optional, Type, TypeVar, Union
import asyncio
import logging

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import SQLModel

from shortlinks.core.config import settings

# Type variable for model types
T = TypeVar("T", bound=SQLModel)
R = TypeVar("R")

logger = logging.getLogger(__name__)


class RepositoryError(Exception):
    """Base exception for repository errors."""
    pass


class RepositoryTimeoutError(RepositoryError):
    """A database operation did not complete within the configured timeout."""
    pass


class EntityNotFoundError(RepositoryError):
    """Exception raised when an entity cannot be found."""

    def __init__(self, model_type: Type[SQLModel], entity_id: Any):
        self.model_type = model_type
        self.entity_id = entity_id
        model_name = getattr(model_type, "__name__", "Entity")
        super().__init__(f"{model_name} with id {entity_id} not found")


class DuplicateEntityError(RepositoryError):
    """Exception raised when a unique constraint is violated."""

    def __init__(self, model_type: Type[SQLModel], field_name: str, value: Any):
        self.model_type = model_type
        self.field_name = field_name
        self.value = value
        model_name = getattr(model_type, "__name__", "Entity")
        super().__init__(f"{model_name} with {field_name}={value} already exists")


class BaseRepository(Generic[T]):
    """
    Base repository implementing common operations for SQLModel entities.

    Type parameters:
        T: The SQLModel type this repository manages
    """

    def __init__(self, model_type: Type[T]):
        """
        Initialize the repository with a specific model type.

        Args:
            model_type: The SQLModel class this repository will work with
        """
        self.model_type = model_type

    async def _run(self, operation: Awaitable[R]) -> R:
        """
        Await a database operation under the configured timeout.

        Raises:
            RepositoryTimeoutError: If the operation exceeds DB_OPERATION_TIMEOUT
        """
        try:
            return await asyncio.wait_for(operation, timeout=settings.DB_OPERATION_TIMEOUT)
        except asyncio.TimeoutError as e:
            logger.warning(
                f"{self.model_type.__name__} operation timed out after "
                f"{settings.DB_OPERATION_TIMEOUT}s"
            )
            raise RepositoryTimeoutError(
                f"Database operation timed out after {settings.DB_OPERATION_TIMEOUT}s"
            ) from e

    async def get_by_id(self, db: AsyncSession, id: Any) -> Optional[T]:
        """
        Get an entity by its ID.

        Args:
            db: Database session
            id: Entity ID

        Returns:
            The entity if found, None otherwise
        """
        try:
            return await self._run(db.get(self.model_type, id))
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving {self.model_type.__name__} with id {id}: {e}")
            raise RepositoryError(f"Database error retrieving entity: {e}") from e

    async def create(self, db: AsyncSession, data: Union[BaseModel, Dict[str, Any]]) -> T:
        """
        Create a new entity.

        Args:
            db: Database session
            data: Entity data (either as a Pydantic model or dictionary)

        Returns:
            The created entity

        Raises:
            RepositoryError: On database errors
        """
        try:
            if isinstance(data, BaseModel):
                data_dict = data.model_dump(exclude_unset=True)
            else:
                data_dict = data

            entity = self.model_type(**data_dict)
            db.add(entity)
            await self._run(db.flush())  # Flush to generate ID but don't commit yet
            await self._run(db.refresh(entity))
            return entity
        except SQLAlchemyError as e:
            logger.error(f"Error creating {self.model_type.__name__}: {e}")
            raise RepositoryError(f"Database error creating entity: {e}") from e

    async def update(
        self,
        db: AsyncSession,
        id: Any,
        data: Union[BaseModel, Dict[str, Any]]
    ) -> Optional[T]:
        """
        Update an existing entity.

        Args:
            db: Database session
            id: Entity ID
            data: Updated entity data (either as a Pydantic model or dictionary)

        Returns:
            The updated entity, or None if not found

        Raises:
            RepositoryError: On database errors
        """
        try:
            entity = await self.get_by_id(db, id)
            if entity is None:
                return None

            if isinstance(data, BaseModel):
                data_dict = data.model_dump(exclude_unset=True)
            else:
                data_dict = data

            for key, value in data_dict.items():
                setattr(entity, key, value)

            await self._run(db.flush())
            await self._run(db.refresh(entity))
            return entity
        except SQLAlchemyError as e:
            logger.error(f"Error updating {self.model_type.__name__} with id {id}: {e}")
            raise RepositoryError(f"Database error updating entity: {e}") from e


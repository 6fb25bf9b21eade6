"""Link Repository for the shortlinks service.

This module provides the LinkRepository class for database operations related to
ShortLink and ReservedCode models.
"""

from typing import Any, Dict, List, Optional, Union

from sqlalchemy import select, func, desc
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.expression import or_, and_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import FlushError

from shortlinks.models.link import ShortLink, ShortLinkCreate, ReservedCode, utcnow
from shortlinks.repositories.base import (
    BaseRepository,
    DuplicateEntityError,
    EntityNotFoundError,
    RepositoryError,
)


class LinkRepository(BaseRepository[ShortLink]):
    """
    Repository for ShortLink model database operations.

    Writes that claim a code run inside a SAVEPOINT: a unique-constraint
    violation rolls back only the claim, and the caller's transaction stays
    usable so it can retry with another code or report the item as failed.
    """

    def __init__(self):
        """Initialize the repository with the ShortLink model type."""
        super().__init__(ShortLink)

    async def create_link(
        self,
        db: AsyncSession,
        data: Union[ShortLinkCreate, Dict[str, Any]],
    ) -> ShortLink:
        """
        Insert a link and reserve its short code (and alias, when different).

        Args:
            db: Database session
            data: Link data (either as a ShortLinkCreate model or dictionary)

        Returns:
            The created ShortLink entity

        Raises:
            DuplicateEntityError: If the code or alias is already claimed
            RepositoryError: On other database errors
        """
        if isinstance(data, ShortLinkCreate):
            data = data.model_dump(exclude_unset=True)

        short_code = data["short_code"]
        codes = [short_code]
        alias = data.get("custom_alias")
        if alias and alias != short_code:
            codes.append(alias)

        try:
            async with db.begin_nested():
                link = self.model_type(**data)
                db.add(link)
                await self._run(db.flush())
                for code in codes:
                    db.add(ReservedCode(code=code, link_id=link.id))
                await self._run(db.flush())
            await self._run(db.refresh(link))
            return link
        except (IntegrityError, FlushError) as e:
            raise DuplicateEntityError(self.model_type, "short_code", short_code) from e
        except SQLAlchemyError as e:
            raise RepositoryError(f"Database error creating short link: {e}") from e

    async def get_reservation(self, db: AsyncSession, code: str) -> Optional[ReservedCode]:
        """
        Find the reservation holding a code or alias, active link or not.

        Args:
            db: Database session
            code: The code or alias to look up

        Returns:
            The ReservedCode if the value was ever claimed, None otherwise

        Raises:
            RepositoryError: On database errors
        """
        try:
            query = select(ReservedCode).where(ReservedCode.code == code)
            result = await self._run(db.execute(query))
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise RepositoryError(f"Error checking code reservation: {e}") from e

    async def is_code_reserved(self, db: AsyncSession, code: str) -> bool:
        """Check whether a code or alias has ever been claimed by any link."""
        return await self.get_reservation(db, code) is not None

    async def get_active_by_code(self, db: AsyncSession, code_or_alias: str) -> Optional[ShortLink]:
        """
        Find the active, unexpired link whose short code or alias matches.

        Active, expiry and code are evaluated in one statement so a concurrent
        soft delete cannot slip between separate lookups.

        Args:
            db: Database session
            code_or_alias: The path token to look up (case-sensitive)

        Returns:
            The ShortLink if found, None otherwise

        Raises:
            RepositoryError: On database errors
        """
        try:
            now = utcnow()
            query = (
                select(self.model_type)
                .where(
                    and_(
                        self.model_type.is_active.is_(True),
                        or_(
                            self.model_type.short_code == code_or_alias,
                            self.model_type.custom_alias == code_or_alias,
                        ),
                        or_(
                            self.model_type.expires_at.is_(None),
                            self.model_type.expires_at > now,
                        ),
                    )
                )
                .limit(1)
            )
            result = await self._run(db.execute(query))
            return result.scalars().first()
        except SQLAlchemyError as e:
            raise RepositoryError(f"Error resolving short link: {e}") from e

    async def list_by_owner(
        self,
        db: AsyncSession,
        owner_id: str,
        include_inactive: bool = False,
    ) -> List[ShortLink]:
        """
        Get an owner's links, newest first.

        Raises:
            RepositoryError: On database errors
        """
        try:
            query = select(self.model_type).where(self.model_type.owner_id == owner_id)
            if not include_inactive:
                query = query.where(self.model_type.is_active.is_(True))
            query = query.order_by(desc(self.model_type.created_at), desc(self.model_type.id))

            result = await self._run(db.execute(query))
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise RepositoryError(f"Error listing links for owner: {e}") from e

    async def get_owned_link_ids(self, db: AsyncSession, owner_id: str) -> List[int]:
        """
        Get the ids of every link an owner has created, including deactivated ones.

        Raises:
            RepositoryError: On database errors
        """
        try:
            query = select(self.model_type.id).where(self.model_type.owner_id == owner_id)
            result = await self._run(db.execute(query))
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise RepositoryError(f"Error retrieving link ids for owner: {e}") from e

    async def count_active_by_owner(self, db: AsyncSession, owner_id: str) -> int:
        """
        Count an owner's active links.

        Raises:
            RepositoryError: On database errors
        """
        try:
            query = (
                select(func.count())
                .select_from(self.model_type)
                .where(
                    self.model_type.owner_id == owner_id,
                    self.model_type.is_active.is_(True),
                )
            )
            result = await self._run(db.execute(query))
            return result.scalar_one()
        except SQLAlchemyError as e:
            raise RepositoryError(f"Error counting links for owner: {e}") from e

    async def change_alias(
        self,
        db: AsyncSession,
        link: ShortLink,
        alias: Optional[str],
    ) -> ShortLink:
        """
        Point a link at a new alias, reserving it first.

        Aliases released by the change stay reserved.

        Raises:
            DuplicateEntityError: If the new alias is already claimed
            RepositoryError: On other database errors
        """
        try:
            async with db.begin_nested():
                if alias is not None and alias != link.short_code:
                    reservation = await self.get_reservation(db, alias)
                    if reservation is None:
                        db.add(ReservedCode(code=alias, link_id=link.id))
                        await self._run(db.flush())
                    elif reservation.link_id != link.id:
                        raise DuplicateEntityError(self.model_type, "custom_alias", alias)
                link.custom_alias = alias
                link.updated_at = utcnow()
                await self._run(db.flush())
            await self._run(db.refresh(link))
            return link
        except (IntegrityError, FlushError) as e:
            raise DuplicateEntityError(self.model_type, "custom_alias", alias) from e
        except SQLAlchemyError as e:
            raise RepositoryError(f"Database error updating alias: {e}") from e

    async def deactivate(self, db: AsyncSession, link_id: int) -> ShortLink:
        """
        Soft-delete a link by clearing its active flag.

        Raises:
            EntityNotFoundError: If no such link exists
            RepositoryError: On database errors
        """
        link = await self.update(
            db,
            link_id,
            {"is_active": False, "updated_at": utcnow()},
        )
        if link is None:
            raise EntityNotFoundError(self.model_type, link_id)
        return link


"""Click Repository for the shortlinks service.

This module provides the ClickRepository class for database operations related to
ClickEvent models: appending events and the grouped queries analytics is built on.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from sqlalchemy import select, func, desc, asc, literal
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError

from shortlinks.models.click import ClickEvent, ClickEventCreate
from shortlinks.repositories.base import BaseRepository, RepositoryError


class ClickRepository(BaseRepository[ClickEvent]):
    """
    Repository for ClickEvent model database operations.

    Events are only ever inserted; every read is scoped to one link id or to
    the set of link ids owned by a user.
    """

    def __init__(self):
        """Initialize the repository with the ClickEvent model type."""
        super().__init__(ClickEvent)

    async def record_click(
        self,
        db: AsyncSession,
        data: Union[ClickEventCreate, Dict[str, Any]],
    ) -> ClickEvent:
        """
        Append a click event.

        Args:
            db: Database session
            data: Click event data (either as a ClickEventCreate model or dictionary)

        Returns:
            The created ClickEvent entity

        Raises:
            RepositoryError: On database errors
        """
        return await self.create(db, data)

    async def count_for_links(
        self,
        db: AsyncSession,
        link_ids: Sequence[int],
        since: Optional[datetime] = None,
    ) -> int:
        """
        Count clicks across a set of links, optionally from ``since`` onwards.

        Raises:
            RepositoryError: On database errors
        """
        if not link_ids:
            return 0

        try:
            query = (
                select(func.count())
                .select_from(self.model_type)
                .where(self.model_type.link_id.in_(list(link_ids)))
            )
            if since is not None:
                query = query.where(self.model_type.clicked_at >= since)

            result = await self._run(db.execute(query))
            return result.scalar_one()
        except SQLAlchemyError as e:
            raise RepositoryError(f"Error counting clicks: {e}") from e

    async def click_counts(self, db: AsyncSession, link_ids: Sequence[int]) -> Dict[int, int]:
        """
        Get the total click count of each link.

        Links without clicks are absent from the returned mapping.

        Raises:
            RepositoryError: On database errors
        """
        if not link_ids:
            return {}

        try:
            query = (
                select(self.model_type.link_id, func.count().label("clicks"))
                .where(self.model_type.link_id.in_(list(link_ids)))
                .group_by(self.model_type.link_id)
            )
            result = await self._run(db.execute(query))
            return {row.link_id: row.clicks for row in result.all()}
        except SQLAlchemyError as e:
            raise RepositoryError(f"Error counting clicks per link: {e}") from e

    async def daily_counts(
        self,
        db: AsyncSession,
        link_id: int,
        since: datetime,
    ) -> List[Tuple[str, int]]:
        """
        Get click counts per calendar date for a link, oldest date first.

        Only dates with at least one click are returned.

        Args:
            db: Database session
            link_id: ID of the ShortLink
            since: Start of the window (inclusive, naive UTC)

        Returns:
            List of (ISO date, count) tuples

        Raises:
            RepositoryError: On database errors
        """
        try:
            day = func.date(self.model_type.clicked_at)
            query = (
                select(day.label("day"), func.count().label("clicks"))
                .where(
                    self.model_type.link_id == link_id,
                    self.model_type.clicked_at >= since,
                )
                .group_by(day)
                .order_by(asc(day))
            )
            result = await self._run(db.execute(query))

            # SQLite hands back a string, PostgreSQL a date
            return [
                (row.day.isoformat() if isinstance(row.day, date) else str(row.day), row.clicks)
                for row in result.all()
            ]
        except SQLAlchemyError as e:
            raise RepositoryError(f"Error retrieving daily clicks for link {link_id}: {e}") from e

    async def breakdown(
        self,
        db: AsyncSession,
        link_id: int,
        field_name: str,
        default_label: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Tuple[str, int]]:
        """
        Group a link's clicks by one column.

        Groups are ordered by click count descending, ties broken by the
        group key ascending. Null values are folded into ``default_label``.

        Args:
            db: Database session
            link_id: ID of the ShortLink
            field_name: ClickEvent column to group by
            default_label: Label for null values
            limit: Maximum number of groups to return (None for all)

        Returns:
            List of (key, count) tuples

        Raises:
            RepositoryError: On database errors
        """
        column = getattr(self.model_type, field_name)
        if default_label is not None:
            # Inline the label so GROUP BY and SELECT render the same expression
            key = func.coalesce(column, literal(default_label, literal_execute=True))
        else:
            key = column

        try:
            bucket = key.label("bucket")
            clicks = func.count().label("clicks")
            query = (
                select(bucket, clicks)
                .where(self.model_type.link_id == link_id)
                .group_by(key)
                .order_by(desc(clicks), asc(bucket))
            )
            if limit is not None:
                query = query.limit(limit)

            result = await self._run(db.execute(query))
            return [(row.bucket, row.clicks) for row in result.all()]
        except SQLAlchemyError as e:
            raise RepositoryError(f"Error retrieving {field_name} breakdown for link {link_id}: {e}") from e

    async def recent_clicks(self, db: AsyncSession, link_id: int, limit: int = 50) -> List[ClickEvent]:
        """
        Get a link's most recent clicks, newest first.

        Raises:
            RepositoryError: On database errors
        """
        try:
            query = (
                select(self.model_type)
                .where(self.model_type.link_id == link_id)
                .order_by(desc(self.model_type.clicked_at), desc(self.model_type.id))
                .limit(limit)
            )
            result = await self._run(db.execute(query))
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise RepositoryError(f"Error retrieving recent clicks for link {link_id}: {e}") from e

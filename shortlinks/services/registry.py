"""Link registry service for the shortlinks application.

This module contains the URLRegistry class which owns the mapping from short
codes and aliases to target URLs: allocation, resolution, ownership checks
and soft deletion.
"""

import logging
import re
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, TypeVar

from pydantic import AnyUrl, BaseModel, TypeAdapter, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from shortlinks.core.config import settings
from shortlinks.db.session import db_transaction
from shortlinks.models.link import ShortLink
from shortlinks.repositories.base import (
    DuplicateEntityError,
    EntityNotFoundError,
    RepositoryError,
    RepositoryTimeoutError,
)
from shortlinks.repositories.link_repository import LinkRepository
from shortlinks.services.codegen import CodeGenerator
from shortlinks.services.exceptions import (
    AliasTakenError,
    AllocationExhaustedError,
    InvalidAliasError,
    InvalidInputError,
    InvalidURLError,
    LinkNotFoundError,
    LinkOwnershipError,
    PersistenceError,
    ServiceError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

ALIAS_PATTERN = re.compile(r"[A-Za-z0-9_-]+")

_url_adapter = TypeAdapter(AnyUrl)

# Characters the URL parser would silently drop or re-encode
UNSAFE_URL_CHARS = re.compile(r"[\s\x00-\x1f\x7f]")


class BulkShortenItem(BaseModel):
    """One entry of a bulk shorten request, validated when it is processed."""

    original_url: Any = None
    custom_alias: Any = None
    expiration_days: Any = None


class BulkShortenResult(BaseModel):
    """Outcome of one bulk item: either ``link`` or ``error`` is set."""

    original_url: Any = None
    link: Optional[ShortLink] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.link is not None


class URLRegistry:
    """
    Service owning short link allocation and lookup.

    Generated codes and aliases share one namespace. A pre-check keeps the
    common path cheap, but the reservation insert is what decides: losing
    the insert race counts as a collision, never as success.
    """

    def __init__(
        self,
        link_repository: LinkRepository,
        code_generator: Optional[CodeGenerator] = None,
        max_attempts: Optional[int] = None,
    ):
        """
        Initialize the registry.

        Args:
            link_repository: Repository for link data access
            code_generator: Source of candidate short codes
            max_attempts: Allocation attempts before giving up
        """
        self.link_repository = link_repository
        self.code_generator = code_generator or CodeGenerator()
        self.max_attempts = max_attempts or settings.CODE_ALLOCATION_MAX_ATTEMPTS

    @db_transaction(db_param_name="db")
    async def create(
        self,
        db: AsyncSession,
        original_url: str,
        custom_alias: Optional[str] = None,
        owner_id: Optional[str] = None,
        expiration_days: Optional[int] = None,
    ) -> ShortLink:
        """
        Create a short link, claiming ``custom_alias`` or a generated code.

        Args:
            db: Database session
            original_url: Absolute URL to redirect to
            custom_alias: Optional alias; it becomes the short code
            owner_id: Owning user, None for anonymous links
            expiration_days: Days until the link stops resolving

        Returns:
            ShortLink: The created link

        Raises:
            InvalidURLError: If the URL is not absolute
            InvalidAliasError: If the alias format is invalid
            AliasTakenError: If the alias was ever claimed
            AllocationExhaustedError: If no free code was found
            PersistenceError: If the store failed or timed out twice
        """
        return await self._create(db, original_url, custom_alias, owner_id, expiration_days)

    @db_transaction(db_param_name="db")
    async def create_bulk(
        self,
        db: AsyncSession,
        items: Sequence[BulkShortenItem],
        owner_id: Optional[str] = None,
    ) -> List[BulkShortenResult]:
        """
        Create several links, each succeeding or failing on its own.

        Every item claims its code in its own SAVEPOINT, so a failed item
        leaves the others intact. Results follow the input order.
        """
        results = []
        for item in items:
            try:
                link = await self._create(
                    db, item.original_url, item.custom_alias, owner_id, item.expiration_days
                )
                results.append(BulkShortenResult(original_url=item.original_url, link=link))
            except ServiceError as e:
                logger.info(f"Bulk item rejected: {item.original_url!r}: {e}")
                results.append(BulkShortenResult(original_url=item.original_url, error=str(e)))
        return results

    async def resolve(self, db: AsyncSession, code_or_alias: str) -> ShortLink:
        """
        Find the active, unexpired link for a code or alias.

        Raises:
            LinkNotFoundError: If no active link matches
            PersistenceError: On repository failure (not retried)
        """
        try:
            link = await self.link_repository.get_active_by_code(db, code_or_alias)
        except RepositoryTimeoutError as e:
            raise PersistenceError(f"Timed out resolving '{code_or_alias}'", retryable=True) from e
        except RepositoryError as e:
            logger.error(f"Error resolving short link: {e}")
            raise PersistenceError(f"Failed to resolve '{code_or_alias}'") from e

        if link is None:
            raise LinkNotFoundError(f"Link '{code_or_alias}' not found")
        return link

    async def alias_available(self, db: AsyncSession, alias: str) -> bool:
        """
        Check whether an alias could be claimed right now.

        Malformed or reserved aliases are reported as unavailable.
        """
        try:
            self._validate_alias(alias)
        except InvalidAliasError:
            return False

        try:
            return not await self.link_repository.is_code_reserved(db, alias)
        except RepositoryError as e:
            logger.error(f"Error checking alias availability: {e}")
            raise PersistenceError(f"Failed to check alias '{alias}'") from e

    async def list_by_owner(self, db: AsyncSession, owner_id: str) -> List[ShortLink]:
        """Get an owner's active links, newest first."""
        try:
            return await self.link_repository.list_by_owner(db, owner_id)
        except RepositoryError as e:
            logger.error(f"Error listing links: {e}")
            raise PersistenceError(f"Failed to list links for owner '{owner_id}'") from e

    async def get_owned(self, db: AsyncSession, link_id: int, requester_id: str) -> ShortLink:
        """
        Load a link and verify the requester owns it.

        Anonymous links are owned by nobody.

        Raises:
            LinkNotFoundError: If the link does not exist
            LinkOwnershipError: If the requester is not the owner
        """
        try:
            link = await self.link_repository.get_by_id(db, link_id)
        except RepositoryError as e:
            logger.error(f"Error loading link {link_id}: {e}")
            raise PersistenceError(f"Failed to load link {link_id}") from e

        if link is None:
            raise LinkNotFoundError(f"Link {link_id} not found")
        if link.owner_id is None or link.owner_id != requester_id:
            raise LinkOwnershipError(f"Link {link_id} is not owned by the requester")
        return link

    @db_transaction(db_param_name="db")
    async def update(
        self,
        db: AsyncSession,
        link_id: int,
        requester_id: str,
        custom_alias: Optional[str],
    ) -> ShortLink:
        """
        Change a link's alias; None clears it.

        The link's own aliases, current or past, remain claimable by it.
        Released aliases stay reserved.

        Raises:
            LinkNotFoundError: If the link does not exist
            LinkOwnershipError: If the requester is not the owner
            InvalidAliasError: If the alias format is invalid
            AliasTakenError: If another link holds the alias
            PersistenceError: On repository failure
        """
        link = await self.get_owned(db, link_id, requester_id)

        if custom_alias is not None:
            self._validate_alias(custom_alias)
        if custom_alias == link.custom_alias:
            return link

        try:
            return await self.link_repository.change_alias(db, link, custom_alias)
        except DuplicateEntityError as e:
            raise AliasTakenError(custom_alias) from e
        except RepositoryError as e:
            logger.error(f"Error updating link {link_id}: {e}")
            raise PersistenceError(f"Failed to update link {link_id}") from e

    @db_transaction(db_param_name="db")
    async def soft_delete(self, db: AsyncSession, link_id: int, requester_id: str) -> ShortLink:
        """
        Deactivate a link. Deleting an already inactive link is a no-op.

        Raises:
            LinkNotFoundError: If the link does not exist
            LinkOwnershipError: If the requester is not the owner
        """
        link = await self.get_owned(db, link_id, requester_id)
        if not link.is_active:
            return link

        try:
            updated = await self.link_repository.deactivate(db, link.id)
        except EntityNotFoundError as e:
            raise LinkNotFoundError(f"Link {link_id} not found") from e
        except RepositoryError as e:
            logger.error(f"Error deactivating link {link_id}: {e}")
            raise PersistenceError(f"Failed to delete link {link_id}") from e

        logger.info(f"Deactivated link {link_id} ({link.short_code})")
        return updated

    async def _create(
        self,
        db: AsyncSession,
        original_url: str,
        custom_alias: Optional[str] = None,
        owner_id: Optional[str] = None,
        expiration_days: Optional[int] = None,
    ) -> ShortLink:
        original_url = self._validate_url(original_url)
        self._validate_expiration(expiration_days)

        data: Dict[str, Any] = {
            "original_url": original_url,
            "owner_id": owner_id,
            "expires_at": ShortLink.generate_expiration(expiration_days),
        }

        try:
            if custom_alias is not None:
                self._validate_alias(custom_alias)
                return await self._claim_alias(db, custom_alias, data)
            return await self._allocate(db, data)
        except DuplicateEntityError as e:
            raise AliasTakenError(custom_alias) from e
        except RepositoryError as e:
            logger.error(f"Error creating short link: {e}")
            raise PersistenceError(f"Failed to create short link: {e}") from e

    async def _claim_alias(self, db: AsyncSession, alias: str, data: Dict[str, Any]) -> ShortLink:
        if await self._retry_on_timeout(lambda: self.link_repository.is_code_reserved(db, alias)):
            raise AliasTakenError(alias)

        return await self._retry_on_timeout(
            lambda: self.link_repository.create_link(
                db, {**data, "short_code": alias, "custom_alias": alias}
            )
        )

    async def _allocate(self, db: AsyncSession, data: Dict[str, Any]) -> ShortLink:
        for attempt in range(1, self.max_attempts + 1):
            code = self.code_generator.generate()

            if await self._retry_on_timeout(lambda: self.link_repository.is_code_reserved(db, code)):
                logger.debug(f"Short code collision on attempt {attempt}: {code}")
                continue

            try:
                return await self._retry_on_timeout(
                    lambda: self.link_repository.create_link(db, {**data, "short_code": code})
                )
            except DuplicateEntityError:
                logger.info(f"Lost the race for short code {code} on attempt {attempt}")

        logger.error(f"Short code allocation exhausted after {self.max_attempts} attempts")
        raise AllocationExhaustedError(self.max_attempts)

    async def _retry_on_timeout(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run a repository call, repeating it once if it times out."""
        try:
            return await operation()
        except RepositoryTimeoutError:
            logger.warning("Repository call timed out, retrying once")

        try:
            return await operation()
        except RepositoryTimeoutError as e:
            raise PersistenceError("Persistence timed out", retryable=True) from e

    @staticmethod
    def _validate_url(url: Any) -> str:
        """
        Validate that ``url`` is an absolute URL.

        Returns:
            The URL without surrounding whitespace, which is what gets stored

        Raises:
            InvalidURLError: If the URL is not absolute, or contains
                whitespace or control characters
        """
        if not isinstance(url, str) or not url.strip():
            raise InvalidURLError("URL must be a non-empty string")
        url = url.strip()
        if UNSAFE_URL_CHARS.search(url):
            raise InvalidURLError(f"URL must not contain whitespace or control characters: {url!r}")
        try:
            parsed = _url_adapter.validate_python(url)
        except ValidationError as e:
            raise InvalidURLError(f"Invalid URL format: {url}") from e
        if not parsed.scheme or not parsed.host:
            raise InvalidURLError(f"URL must be absolute: {url}")
        return url

    @staticmethod
    def _validate_expiration(days: Any) -> None:
        if days is None:
            return
        if isinstance(days, bool) or not isinstance(days, int) or days < 1:
            raise InvalidInputError("expiration_days must be a positive integer")

    @staticmethod
    def _validate_alias(alias: Any) -> None:
        if not isinstance(alias, str):
            raise InvalidAliasError("Alias must be a string")
        if not alias or len(alias) > settings.CUSTOM_ALIAS_MAX_LENGTH:
            raise InvalidAliasError(
                f"Alias must be 1 to {settings.CUSTOM_ALIAS_MAX_LENGTH} characters long"
            )
        if not ALIAS_PATTERN.fullmatch(alias):
            raise InvalidAliasError(
                f"Alias '{alias}' may only contain letters, numbers, hyphens and underscores"
            )
        if alias in settings.RESERVED_ALIASES:
            raise InvalidAliasError(f"Alias '{alias}' is reserved")

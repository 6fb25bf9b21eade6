"""Redirect dispatch for the shortlinks application.

This module contains the RedirectDispatcher, which resolves a visited code
and hands the click off for recording without waiting for it.
"""

import asyncio
import logging
from enum import Enum
from typing import AsyncContextManager, Callable, Optional, Set

from fastapi import BackgroundTasks
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from shortlinks.db.session import SessionManager
from shortlinks.models.click import ClickEvent
from shortlinks.services.exceptions import LinkNotFoundError
from shortlinks.services.recorder import AnalyticsRecorder, ClickContext
from shortlinks.services.registry import URLRegistry

logger = logging.getLogger(__name__)

SessionContextFactory = Callable[[], AsyncContextManager[AsyncSession]]


class RedirectState(str, Enum):
    RECEIVED = "received"
    RESOLVED = "resolved"
    DISPATCHED = "dispatched"
    NOT_FOUND = "not_found"


class RedirectOutcome(BaseModel):
    """Where to send the visitor, and how far the request got."""

    state: RedirectState
    link_id: int
    short_code: str
    original_url: str


class RedirectDispatcher:
    """
    Service turning a visited code into a redirect target.

    The target is returned as soon as the link is resolved. Recording the
    click happens afterwards in its own session, and a recording failure is
    logged and dropped: it never reaches the visitor.
    """

    def __init__(
        self,
        registry: URLRegistry,
        recorder: AnalyticsRecorder,
        session_factory: Optional[SessionContextFactory] = None,
    ):
        """
        Initialize the dispatcher.

        Args:
            registry: Registry used to resolve codes
            recorder: Recorder the click is handed to
            session_factory: Opens a committing session for background writes
        """
        self.registry = registry
        self.recorder = recorder
        self.session_factory = session_factory or SessionManager.transaction_context
        self._pending: Set[asyncio.Task] = set()

    async def resolve_and_redirect(
        self,
        db: AsyncSession,
        code_or_alias: str,
        context: ClickContext,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> RedirectOutcome:
        """
        Resolve a code or alias and schedule its click to be recorded.

        Args:
            db: Database session used for the lookup only
            code_or_alias: Path token from the visited URL
            context: Request details for the click event
            background_tasks: FastAPI tasks to run after the response; when
                omitted the click is recorded in a tracked asyncio task

        Returns:
            RedirectOutcome in the DISPATCHED state

        Raises:
            LinkNotFoundError: If no active link matches
            PersistenceError: If the lookup itself failed
        """
        state = RedirectState.RECEIVED
        try:
            link = await self.registry.resolve(db, code_or_alias)
        except LinkNotFoundError:
            logger.info(f"Redirect {code_or_alias!r}: {state.value} -> {RedirectState.NOT_FOUND.value}")
            raise

        state = RedirectState.RESOLVED
        self._dispatch(link.id, context, background_tasks)
        logger.debug(f"Redirect {code_or_alias!r}: {state.value} -> {RedirectState.DISPATCHED.value}")

        return RedirectOutcome(
            state=RedirectState.DISPATCHED,
            link_id=link.id,
            short_code=link.short_code,
            original_url=link.original_url,
        )

    async def record_click(self, link_id: int, context: ClickContext) -> Optional[ClickEvent]:
        """
        Record one click in a fresh session, swallowing any failure.

        Returns:
            The stored ClickEvent, or None if recording failed
        """
        try:
            async with self.session_factory() as db:
                return await self.recorder.record(db, link_id, context)
        except Exception as e:
            logger.error(f"Dropped click for link {link_id}: {e}")
            return None

    async def drain(self) -> None:
        """Wait for every click still being recorded in a tracked task."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _dispatch(
        self,
        link_id: int,
        context: ClickContext,
        background_tasks: Optional[BackgroundTasks],
    ) -> None:
        if background_tasks is not None:
            background_tasks.add_task(self.record_click, link_id, context)
            return

        task = asyncio.create_task(self.record_click(link_id, context))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

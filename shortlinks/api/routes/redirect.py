"""Short link redirection endpoint with click tracking."""

from typing import Optional

from fastapi import APIRouter, Depends, Request, BackgroundTasks, status
from starlette.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from shortlinks.api.dependencies import get_dispatcher
from shortlinks.api.errors import http_error
from shortlinks.db.session import get_db
from shortlinks.services.dispatcher import RedirectDispatcher
from shortlinks.services.exceptions import ServiceError
from shortlinks.services.recorder import ClickContext

# Create router with tags
router = APIRouter(tags=["redirect"])


def client_ip(request: Request) -> Optional[str]:
    """Visitor address, preferring the first hop of X-Forwarded-For."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return request.client.host if request.client else None


@router.get(
    "/{code}",
    response_class=RedirectResponse,
    status_code=status.HTTP_307_TEMPORARY_REDIRECT
)
async def redirect_to_original_url(
    request: Request,
    background_tasks: BackgroundTasks,
    code: str,
    db: AsyncSession = Depends(get_db),
    dispatcher: RedirectDispatcher = Depends(get_dispatcher)
):
    """Redirect to the original URL; the click is recorded after the response."""
    context = ClickContext(
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
        referer=request.headers.get("referer"),
    )
    try:
        outcome = await dispatcher.resolve_and_redirect(db, code, context, background_tasks)
    except ServiceError as e:
        logger.info(f"Redirect failed for {code}: {e}")
        raise http_error(e) from e

    return RedirectResponse(
        url=outcome.original_url,
        status_code=status.HTTP_307_TEMPORARY_REDIRECT
    )

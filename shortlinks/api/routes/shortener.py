"""Link creation and management endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from shortlinks.api import schemas
from shortlinks.api.dependencies import (
    get_aggregator,
    get_base_url,
    get_current_user_id,
    get_optional_user_id,
    get_registry,
)
from shortlinks.api.errors import http_error
from shortlinks.db.session import get_db
from shortlinks.models.link import ShortLink
from shortlinks.services.aggregator import AnalyticsAggregator
from shortlinks.services.exceptions import ServiceError
from shortlinks.services.registry import BulkShortenItem, URLRegistry

router = APIRouter(tags=["shortener"])


def to_link_response(link: ShortLink, base_url: str, click_count: Optional[int] = None) -> schemas.LinkResponse:
    return schemas.LinkResponse(
        id=link.id,
        original_url=link.original_url,
        short_code=link.short_code,
        custom_alias=link.custom_alias,
        short_url=f"{base_url.rstrip('/')}/{link.short_code}",
        is_active=link.is_active,
        created_at=link.created_at,
        expires_at=link.expires_at,
        click_count=click_count,
    )


@router.post(
    "/shorten",
    response_model=schemas.LinkResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": schemas.ErrorResponse, "description": "Invalid URL or alias"},
        409: {"model": schemas.ErrorResponse, "description": "Alias already taken"},
        503: {"model": schemas.ErrorResponse, "description": "Allocation or storage failure"},
    }
)
async def shorten(
    payload: schemas.ShortenRequest,
    db: AsyncSession = Depends(get_db),
    registry: URLRegistry = Depends(get_registry),
    owner_id: Optional[str] = Depends(get_optional_user_id),
    base_url: str = Depends(get_base_url)
):
    try:
        link = await registry.create(
            db,
            payload.original_url,
            custom_alias=payload.custom_alias,
            owner_id=owner_id,
            expiration_days=payload.expiration_days,
        )
    except ServiceError as e:
        raise http_error(e) from e

    logger.info(f"Created short link {link.short_code} for owner {owner_id}")
    return to_link_response(link, base_url)


@router.post(
    "/shorten/bulk",
    response_model=schemas.BulkShortenResponse,
    status_code=status.HTTP_200_OK,
)
async def shorten_bulk(
    payload: schemas.BulkShortenRequest,
    db: AsyncSession = Depends(get_db),
    registry: URLRegistry = Depends(get_registry),
    owner_id: Optional[str] = Depends(get_optional_user_id),
    base_url: str = Depends(get_base_url)
):
    items = [
        BulkShortenItem(
            original_url=item.original_url,
            custom_alias=item.custom_alias,
            expiration_days=item.expiration_days,
        )
        for item in payload.items
    ]
    try:
        results = await registry.create_bulk(db, items, owner_id=owner_id)
    except ServiceError as e:
        raise http_error(e) from e

    response = []
    for result in results:
        if result.ok:
            response.append(schemas.BulkItemSuccess(
                id=result.link.id,
                original_url=result.link.original_url,
                short_code=result.link.short_code,
                short_url=f"{base_url.rstrip('/')}/{result.link.short_code}",
            ))
        else:
            response.append(schemas.BulkItemFailure(original_url=result.original_url, error=result.error))
    return schemas.BulkShortenResponse(results=response)


@router.get(
    "/aliases/{alias}/available",
    response_model=schemas.AliasAvailabilityResponse
)
async def alias_available(
    alias: str = Path(..., description="Alias to check"),
    db: AsyncSession = Depends(get_db),
    registry: URLRegistry = Depends(get_registry)
):
    try:
        available = await registry.alias_available(db, alias)
    except ServiceError as e:
        raise http_error(e) from e
    return schemas.AliasAvailabilityResponse(alias=alias, available=available)


@router.get(
    "/links",
    response_model=schemas.LinkListResponse
)
async def list_links(
    db: AsyncSession = Depends(get_db),
    registry: URLRegistry = Depends(get_registry),
    aggregator: AnalyticsAggregator = Depends(get_aggregator),
    owner_id: str = Depends(get_current_user_id),
    base_url: str = Depends(get_base_url)
):
    try:
        links = await registry.list_by_owner(db, owner_id)
        counts = await aggregator.click_counts(db, [link.id for link in links])
    except ServiceError as e:
        raise http_error(e) from e

    return schemas.LinkListResponse(
        links=[to_link_response(link, base_url, counts[link.id]) for link in links]
    )


@router.patch(
    "/links/{link_id}",
    response_model=schemas.LinkResponse,
    responses={
        400: {"model": schemas.ErrorResponse, "description": "Invalid alias"},
        403: {"model": schemas.ErrorResponse, "description": "Not the link owner"},
        404: {"model": schemas.ErrorResponse, "description": "Link not found"},
        409: {"model": schemas.ErrorResponse, "description": "Alias already taken"},
    }
)
async def update_link(
    payload: schemas.LinkUpdateRequest,
    link_id: int = Path(..., ge=1),
    db: AsyncSession = Depends(get_db),
    registry: URLRegistry = Depends(get_registry),
    owner_id: str = Depends(get_current_user_id),
    base_url: str = Depends(get_base_url)
):
    try:
        if "custom_alias" in payload.model_fields_set:
            link = await registry.update(db, link_id, owner_id, payload.custom_alias)
        else:
            link = await registry.get_owned(db, link_id, owner_id)
    except ServiceError as e:
        raise http_error(e) from e
    return to_link_response(link, base_url)


@router.delete(
    "/links/{link_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={
        403: {"model": schemas.ErrorResponse, "description": "Not the link owner"},
        404: {"model": schemas.ErrorResponse, "description": "Link not found"},
    }
)
async def delete_link(
    link_id: int = Path(..., ge=1),
    db: AsyncSession = Depends(get_db),
    registry: URLRegistry = Depends(get_registry),
    owner_id: str = Depends(get_current_user_id)
):
    try:
        await registry.soft_delete(db, link_id, owner_id)
    except ServiceError as e:
        raise http_error(e) from e
    return None

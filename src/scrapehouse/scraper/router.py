"""Scraper definition and execution routes.

Routes (mounted at ``/scrapers``):
    POST   /scrapers/                      — create a scraper definition
    GET    /scrapers/                      — list (paginated, with client and owner)
    POST   /scrapers/dynamic/execute       — run an unsaved scraper
    GET    /scrapers/{scraper_id}          — detail
    PATCH  /scrapers/{scraper_id}          — update (owner or admin)
    DELETE /scrapers/{scraper_id}          — delete (owner or admin)
    POST   /scrapers/{scraper_id}/execute  — run a stored scraper

Both execute routes share the stricter ``execute_rate_limit`` and return an
``ExecutionResult``.  Fetch failures map to 503, extraction failures to 502.
"""

from __future__ import annotations

import uuid
from typing import Annotated, Optional

import structlog
from fastapi import APIRouter, Body, Depends, Request, status

from scrapehouse.api.dependencies import (
    PaginationParams,
    get_current_active_user,
    get_pagination,
    ownership_guard,
)
from scrapehouse.api.limiter import execute_rate_limit, limiter
from scrapehouse.core.models.scrapers import Scraper
from scrapehouse.core.models.users import User
from scrapehouse.core.schemas.execution import (
    DynamicExecuteRequest,
    ExecuteScraperRequest,
    ExecutionResult,
)
from scrapehouse.core.schemas.pagination import Page, PageMeta
from scrapehouse.core.schemas.scrapers import (
    ScraperCreate,
    ScraperListItem,
    ScraperRead,
    ScraperUpdate,
)
from scrapehouse.core.scraper_service import ScraperService, get_scraper_service
from scrapehouse.scraper.executor import ScraperExecutor, get_scraper_executor

logger = structlog.get_logger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Definitions
# ---------------------------------------------------------------------------


@router.post("/", response_model=ScraperRead, status_code=status.HTTP_201_CREATED)
async def create_scraper(
    payload: ScraperCreate,
    scrapers: Annotated[ScraperService, Depends(get_scraper_service)],
    current_user: Annotated[User, Depends(get_current_active_user)],
) -> Scraper:
    """Persist a new scraper definition owned by the caller.

    Raises:
        NotFoundError (404): If ``client_id`` does not reference a client.
    """
    return await scrapers.create(current_user.id, payload)


@router.get("/", response_model=Page[ScraperListItem])
async def list_scrapers(
    scrapers: Annotated[ScraperService, Depends(get_scraper_service)],
    pagination: Annotated[PaginationParams, Depends(get_pagination)],
    _user: Annotated[User, Depends(get_current_active_user)],
) -> Page[ScraperListItem]:
    rows, total = await scrapers.find_all(pagination.page, pagination.per_page)
    return Page[ScraperListItem](
        data=[ScraperListItem.model_validate(row) for row in rows],
        meta=PageMeta.build(total, pagination.page, pagination.per_page),
    )


# ---------------------------------------------------------------------------
# Dynamic execution (declared before /{scraper_id} so the path matches first)
# ---------------------------------------------------------------------------


@router.post("/dynamic/execute", response_model=ExecutionResult)
@limiter.limit(execute_rate_limit)
async def execute_dynamic_scraper(  # type: ignore[misc]
    request: Request,
    payload: DynamicExecuteRequest,
    executor: Annotated[ScraperExecutor, Depends(get_scraper_executor)],
    current_user: Annotated[User, Depends(get_current_active_user)],
) -> ExecutionResult:
    """Fetch ``url`` and apply ``parsing_model`` without saving anything.

    The client is either a stored one (``client_id``) or built on the fly
    from ``client.type``; a stored client wins when both are sent.
    """
    logger.info(
        "dynamic_execution_requested",
        user_id=str(current_user.id),
        url=str(payload.url),
    )
    return await executor.execute_dynamic(
        url=str(payload.url),
        parsing_model=payload.parsing_model,
        client_id=payload.client_id,
        client_type=payload.client_type,
    )


# ---------------------------------------------------------------------------
# Single scraper
# ---------------------------------------------------------------------------


@router.get("/{scraper_id}", response_model=ScraperRead)
async def get_scraper(
    scraper_id: uuid.UUID,
    scrapers: Annotated[ScraperService, Depends(get_scraper_service)],
    _user: Annotated[User, Depends(get_current_active_user)],
) -> Scraper:
    return await scrapers.find_one(scraper_id)


@router.patch("/{scraper_id}", response_model=ScraperRead)
async def update_scraper(
    scraper_id: uuid.UUID,
    payload: ScraperUpdate,
    scrapers: Annotated[ScraperService, Depends(get_scraper_service)],
    current_user: Annotated[User, Depends(get_current_active_user)],
) -> Scraper:
    scraper = await scrapers.find_one(scraper_id)
    ownership_guard(scraper.owner_id, current_user)
    return await scrapers.update(scraper_id, payload)


@router.delete("/{scraper_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_scraper(
    scraper_id: uuid.UUID,
    scrapers: Annotated[ScraperService, Depends(get_scraper_service)],
    current_user: Annotated[User, Depends(get_current_active_user)],
) -> None:
    scraper = await scrapers.find_one(scraper_id)
    ownership_guard(scraper.owner_id, current_user)
    await scrapers.remove(scraper_id)


@router.post("/{scraper_id}/execute", response_model=ExecutionResult)
@limiter.limit(execute_rate_limit)
async def execute_scraper(  # type: ignore[misc]
    request: Request,
    scraper_id: uuid.UUID,
    executor: Annotated[ScraperExecutor, Depends(get_scraper_executor)],
    current_user: Annotated[User, Depends(get_current_active_user)],
    payload: Annotated[Optional[ExecuteScraperRequest], Body()] = None,
) -> ExecutionResult:
    """Run a stored scraper, optionally against a different URL.

    Any active user may execute any scraper.

    Raises:
        NotFoundError (404): If the scraper does not exist.
        ValidationFailedError (400): If no URL is available or the stored
            parsing model is invalid.
        UpstreamUnreachableError (503): If the fetch fails.
        UpstreamUnparseableError (502): If extraction fails.
    """
    override_url = str(payload.url) if payload is not None and payload.url else None
    logger.info(
        "stored_execution_requested",
        user_id=str(current_user.id),
        scraper_id=str(scraper_id),
    )
    return await executor.execute_stored(scraper_id, override_url)

"""FastAPI dependency injection providers.

Provides reusable dependencies for authentication, authorisation and
pagination.  JWT handling delegates to FastAPI-Users via the
``fastapi_users`` instance defined in ``api/routes/auth.py``.

Dependency hierarchy::

    get_current_user          — JWT bearer token or X-API-Key header
    get_current_active_user   — additionally requires is_active=True
    require_admin             — additionally requires role='admin'

Note on import order:
    ``_current_user_dep`` imports from ``api.routes.auth`` inside its body to
    avoid a circular import.  The chain is ``auth.py`` → ``user_manager.py``
    → ``database.py``, with no back-edge to ``dependencies.py``.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import APIKeyHeader

from scrapehouse.config.settings import get_settings
from scrapehouse.core.models.users import User, UserRole
from scrapehouse.core.user_manager import ScrapehouseUserDatabase, get_user_db

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)
"""Reads the programmatic API key; ``auto_error=False`` so JWT-only
requests are not rejected before the bearer token is checked."""


# ---------------------------------------------------------------------------
# Internal helpers that resolve the FastAPIUsers instance at call time
# ---------------------------------------------------------------------------


def _current_user_dep(*, active: bool, optional: bool):  # type: ignore[return]
    """Return a FastAPI-Users ``current_user`` callable dependency.

    Args:
        active: If ``True``, reject inactive users.
        optional: If ``True``, return ``None`` instead of raising 401.
    """
    from scrapehouse.api.routes.auth import fastapi_users  # noqa: PLC0415

    return fastapi_users.current_user(active=active, optional=optional)


# ---------------------------------------------------------------------------
# Core auth dependencies
# ---------------------------------------------------------------------------


async def get_current_user(
    jwt_user: Annotated[
        Optional[User],
        Depends(_current_user_dep(active=False, optional=True)),
    ],
    api_key: Annotated[Optional[str], Security(api_key_header)],
    user_db: Annotated[ScrapehouseUserDatabase, Depends(get_user_db)],
) -> User:
    """Authenticate with a bearer JWT, falling back to the ``X-API-Key`` header.

    Returns:
        The authenticated ``User`` (may have ``is_active=False``).

    Raises:
        HTTPException 401: If neither credential identifies a user.
    """
    if jwt_user is not None:
        return jwt_user
    if api_key:
        user = await user_db.get_by_api_key(api_key)
        if user is not None:
            return user
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated.",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_active_user(
    user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Require an authenticated user with ``is_active=True``.

    Raises:
        HTTPException 403: If the user account is not active.
    """
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user.",
        )
    return user


async def require_admin(
    user: Annotated[User, Depends(get_current_active_user)],
) -> User:
    """Require an active user with ``role='admin'``.

    Raises:
        HTTPException 403: If the user's role is not ``'admin'``.
    """
    if user.role != UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin role required.",
        )
    return user


# ---------------------------------------------------------------------------
# Ownership guard
# ---------------------------------------------------------------------------


def ownership_guard(resource_owner_id: uuid.UUID, current_user: User) -> None:
    """Raise HTTP 403 if ``current_user`` is neither the owner nor an admin.

    Call this inside route handlers that mutate user-owned resources
    (clients, scrapers, user profiles)::

        scraper = await scrapers.find_one(scraper_id)
        ownership_guard(scraper.owner_id, current_user)

    Raises:
        HTTPException 403: If ``current_user.id != resource_owner_id``
            and ``current_user.role != 'admin'``.
    """
    if current_user.role == UserRole.ADMIN:
        return
    if current_user.id != resource_owner_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to access this resource.",
        )


# ---------------------------------------------------------------------------
# Pagination parameters
# ---------------------------------------------------------------------------


@dataclass
class PaginationParams:
    """Page-number pagination shared across list endpoints.

    Attributes:
        page: 1-based page number.
        per_page: Number of records per page.
    """

    page: int
    per_page: int


def get_pagination(
    page: Optional[int] = None,
    per_page: Optional[int] = None,
) -> PaginationParams:
    """Parse and validate ``?page&per_page`` query parameters.

    Defaults and bounds come from settings (page >= 1, 2 <= per_page <= 50
    unless configured otherwise).

    Raises:
        HTTPException 422: If either value is out of bounds.
    """
    settings = get_settings()
    page = settings.pagination_default_page if page is None else page
    per_page = settings.pagination_default_per_page if per_page is None else per_page

    if page < settings.pagination_min_page:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"page must be at least {settings.pagination_min_page}.",
        )
    if not settings.pagination_min_per_page <= per_page <= settings.pagination_max_per_page:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=(
                f"per_page must be between {settings.pagination_min_per_page} "
                f"and {settings.pagination_max_per_page}."
            ),
        )
    return PaginationParams(page=page, per_page=per_page)

"""User management routes: account CRUD and API key handling.

Routes (mounted at ``/users``):
    GET    /users/            — list accounts (admin, paginated)
    POST   /users/            — create an account (admin)
    GET    /users/me          — the calling user's profile
    PATCH  /users/me          — update the calling user's profile
    POST   /users/me/api-key  — generate a new API key (returned once)
    DELETE /users/me/api-key  — revoke the API key
    GET    /users/{user_id}   — detail (self or admin)
    PATCH  /users/{user_id}   — update (self or admin; role/is_active admin only)
    DELETE /users/{user_id}   — delete (admin)
"""

from __future__ import annotations

import uuid
from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from scrapehouse.api.dependencies import (
    PaginationParams,
    get_current_active_user,
    get_pagination,
    ownership_guard,
    require_admin,
)
from scrapehouse.core.models.users import User, UserRole
from scrapehouse.core.schemas.pagination import Page, PageMeta
from scrapehouse.core.user_manager import UserAdminUpdate, UserCreate, UserRead, UserUpdate
from scrapehouse.core.user_service import UserService, get_user_service

logger = structlog.get_logger(__name__)

router = APIRouter()


class ApiKeyResponse(BaseModel):
    """Response returned when a new API key is generated.

    Attributes:
        api_key: The plain-text API key.  This is the only time the raw key
            is returned; only its SHA-256 digest is stored.
    """

    api_key: str


# ---------------------------------------------------------------------------
# Collection
# ---------------------------------------------------------------------------


@router.get("/", response_model=Page[UserRead], summary="List all users (admin)")
async def list_users(
    users: Annotated[UserService, Depends(get_user_service)],
    pagination: Annotated[PaginationParams, Depends(get_pagination)],
    _admin: Annotated[User, Depends(require_admin)],
) -> Page[UserRead]:
    rows, total = await users.find_all(pagination.page, pagination.per_page)
    return Page[UserRead](
        data=[UserRead.from_user(user) for user in rows],
        meta=PageMeta.build(total, pagination.page, pagination.per_page),
    )


@router.post(
    "/",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a user account (admin)",
)
async def create_user(
    payload: UserCreate,
    users: Annotated[UserService, Depends(get_user_service)],
    admin: Annotated[User, Depends(require_admin)],
) -> UserRead:
    user = await users.create(payload)
    logger.info("user_created_by_admin", user_id=str(user.id), admin_id=str(admin.id))
    return UserRead.from_user(user)


# ---------------------------------------------------------------------------
# Self-service
# ---------------------------------------------------------------------------


@router.get("/me", response_model=UserRead)
async def read_me(
    current_user: Annotated[User, Depends(get_current_active_user)],
) -> UserRead:
    return UserRead.from_user(current_user)


@router.patch("/me", response_model=UserRead)
async def update_me(
    payload: UserUpdate,
    users: Annotated[UserService, Depends(get_user_service)],
    current_user: Annotated[User, Depends(get_current_active_user)],
) -> UserRead:
    user = await users.update(current_user.id, payload)
    return UserRead.from_user(user)


@router.post(
    "/me/api-key",
    response_model=ApiKeyResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Generate a new API key for the calling user",
)
async def generate_api_key(
    users: Annotated[UserService, Depends(get_user_service)],
    current_user: Annotated[User, Depends(get_current_active_user)],
) -> ApiKeyResponse:
    """Replace any existing API key and return the new one once.

    The key is sent on later requests in the ``X-API-Key`` header.
    """
    return ApiKeyResponse(api_key=await users.issue_api_key(current_user))


@router.delete(
    "/me/api-key",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Revoke the calling user's API key",
)
async def revoke_api_key(
    users: Annotated[UserService, Depends(get_user_service)],
    current_user: Annotated[User, Depends(get_current_active_user)],
) -> None:
    await users.revoke_api_key(current_user)


# ---------------------------------------------------------------------------
# Single user
# ---------------------------------------------------------------------------


@router.get("/{user_id}", response_model=UserRead)
async def get_user(
    user_id: uuid.UUID,
    users: Annotated[UserService, Depends(get_user_service)],
    current_user: Annotated[User, Depends(get_current_active_user)],
) -> UserRead:
    ownership_guard(user_id, current_user)
    return UserRead.from_user(await users.find_one(user_id))


@router.patch("/{user_id}", response_model=UserRead)
async def update_user(
    user_id: uuid.UUID,
    payload: UserAdminUpdate,
    users: Annotated[UserService, Depends(get_user_service)],
    current_user: Annotated[User, Depends(get_current_active_user)],
) -> UserRead:
    """Update a profile.  ``role`` and ``is_active`` may only be set by an admin.

    Raises:
        HTTPException 403: If the caller is neither the user nor an admin, or
            a non-admin tries to change ``role`` / ``is_active``.
    """
    ownership_guard(user_id, current_user)
    if current_user.role != UserRole.ADMIN and (
        payload.role is not None or payload.is_active is not None
    ):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only an admin may change role or activation.",
        )
    user = await users.update(user_id, payload)
    return UserRead.from_user(user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: uuid.UUID,
    users: Annotated[UserService, Depends(get_user_service)],
    _admin: Annotated[User, Depends(require_admin)],
) -> None:
    await users.remove(user_id)

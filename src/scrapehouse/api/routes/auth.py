"""Authentication routes: sign-up, sign-in, token refresh, bearer login/logout.

Sets up one FastAPI-Users authentication backend (``name="bearer"``):
clients pass ``Authorization: Bearer <token>`` headers carrying a JWT issued
by ``JWTStrategy``.  Programmatic clients may instead send an ``X-API-Key``
header (resolved in ``api/dependencies.py``).

Routes:
    POST /auth/sign-up         — create an account (409 on duplicate email/username)
    POST /auth/sign-in         — password login returning access + refresh tokens
    POST /auth/refresh-token   — rotate a refresh token, issue a new access token
    POST /auth/bearer/login    — FastAPI-Users bearer login (access token only)
    POST /auth/bearer/logout   — FastAPI-Users bearer logout

Exported names:
    fastapi_users: the ``FastAPIUsers`` instance.
    bearer_backend: the bearer ``AuthenticationBackend``.
    auth_router: combined APIRouter with all auth routes attached.
"""

from __future__ import annotations

import uuid
from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from fastapi_users import FastAPIUsers
from fastapi_users.authentication import (
    AuthenticationBackend,
    BearerTransport,
    JWTStrategy,
)
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from scrapehouse.config.settings import get_settings
from scrapehouse.core.auth_service import RefreshTokenService
from scrapehouse.core.database import get_db
from scrapehouse.core.models.users import User
from scrapehouse.core.user_manager import (
    UserCreate,
    UserManager,
    UserRead,
    get_user_manager,
)
from scrapehouse.core.user_service import UserService, get_user_service

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Transport, strategy, backend
# ---------------------------------------------------------------------------

bearer_transport = BearerTransport(tokenUrl="/auth/bearer/login")
"""Bearer token transport; the token URL is documented in the OpenAPI schema."""


def get_jwt_strategy() -> JWTStrategy:
    """Build a ``JWTStrategy`` from application settings.

    Not cached so that a settings reload (e.g. in tests) picks up a fresh secret.
    """
    settings = get_settings()
    return JWTStrategy(
        secret=settings.secret_key,
        lifetime_seconds=settings.access_token_expire_minutes * 60,
    )


bearer_backend: AuthenticationBackend = AuthenticationBackend(
    name="bearer",
    transport=bearer_transport,
    get_strategy=get_jwt_strategy,
)

fastapi_users: FastAPIUsers[User, uuid.UUID] = FastAPIUsers(
    get_user_manager,
    [bearer_backend],
)
"""Central FastAPI-Users instance, used by ``api/dependencies.py``."""


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class RefreshRequest(BaseModel):
    refresh_token: str


# ---------------------------------------------------------------------------
# Router assembly
# ---------------------------------------------------------------------------

auth_router = APIRouter()

auth_router.include_router(
    fastapi_users.get_auth_router(bearer_backend),
    prefix="/bearer",
    tags=["auth:bearer"],
)


async def _issue_token_pair(user: User, db: AsyncSession) -> TokenPair:
    access_token = await get_jwt_strategy().write_token(user)
    refresh_token = await RefreshTokenService(db).issue(user)
    return TokenPair(access_token=access_token, refresh_token=refresh_token)


@auth_router.post(
    "/sign-up",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    tags=["auth"],
)
async def sign_up(
    payload: UserCreate,
    users: Annotated[UserService, Depends(get_user_service)],
) -> UserRead:
    """Create a regular user account.

    Raises:
        ConflictError (409): If the email or username is already in use.
    """
    user = await users.create(payload)
    return UserRead.from_user(user)


@auth_router.post("/sign-in", response_model=TokenPair, tags=["auth"])
async def sign_in(
    credentials: Annotated[OAuth2PasswordRequestForm, Depends()],
    manager: Annotated[UserManager, Depends(get_user_manager)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> TokenPair:
    """Exchange email + password for an access token and a refresh token.

    The OAuth2 form's ``username`` field carries the email address.

    Raises:
        HTTPException 401: If the credentials are wrong or the account is inactive.
    """
    user = await manager.authenticate(credentials)
    if user is None or not user.is_active:
        logger.info("sign_in_rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    tokens = await _issue_token_pair(user, db)
    await manager.on_after_login(user)
    return tokens


@auth_router.post("/refresh-token", response_model=TokenPair, tags=["auth"])
async def refresh_token(
    payload: RefreshRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> TokenPair:
    """Rotate a refresh token and issue a new access token.

    Raises:
        AuthenticationFailedError (401): If the token is unknown, revoked or expired.
    """
    user, new_refresh = await RefreshTokenService(db).rotate(payload.refresh_token)
    access_token = await get_jwt_strategy().write_token(user)
    return TokenPair(access_token=access_token, refresh_token=new_refresh)

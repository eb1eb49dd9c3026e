"""FastAPI-Users integration: UserManager, Pydantic schemas, and database adapter.

This module wires the ``User`` SQLAlchemy model into FastAPI-Users, which
provides password hashing, the bearer login flow and JWT strategy.

The adapter maps our domain fields to the interface FastAPI-Users expects:

- ``is_superuser``: derived at runtime from ``user.role == 'admin'``
- ``is_verified``:  always ``True``; there is no email-verification step.

Exports:
    UserRead, UserCreate, UserUpdate, UserAdminUpdate: Pydantic schemas.
    UserManager: The FastAPI-Users manager class.
    ScrapehouseUserDatabase: SQLAlchemy adapter bridging our User model.
    get_user_db: FastAPI dependency yielding ScrapehouseUserDatabase.
    get_user_manager: FastAPI dependency yielding UserManager.
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator
from datetime import datetime
from typing import Any, Optional

import structlog
from fastapi import Depends, Request
from fastapi_users import BaseUserManager, UUIDIDMixin
from fastapi_users.db import SQLAlchemyUserDatabase
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from scrapehouse.config.settings import get_settings
from scrapehouse.core.database import get_db
from scrapehouse.core.models.users import User, UserRole
from scrapehouse.core.security import hash_token

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------


class UserRead(BaseModel):
    """Public user representation returned by API endpoints.

    Never includes the password hash or the API key hash.
    """

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: EmailStr
    username: str
    name: str
    role: str
    is_active: bool
    has_api_key: bool = False
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_user(cls, user: User) -> UserRead:
        read = cls.model_validate(user)
        read.has_api_key = user.api_key_hash is not None
        return read


class UserCreate(BaseModel):
    """Schema for sign-up and admin-initiated account creation."""

    email: EmailStr
    username: str = Field(min_length=3, max_length=64, pattern=r"^[A-Za-z0-9_.-]+$")
    name: str = Field(min_length=1, max_length=200)
    password: str = Field(min_length=8, max_length=128)


class UserUpdate(BaseModel):
    """Schema for self-service profile updates.

    ``role`` and ``is_active`` are admin-only and live on
    :class:`UserAdminUpdate`.
    """

    email: Optional[EmailStr] = None
    username: Optional[str] = Field(
        default=None, min_length=3, max_length=64, pattern=r"^[A-Za-z0-9_.-]+$"
    )
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    password: Optional[str] = Field(default=None, min_length=8, max_length=128)


class UserAdminUpdate(UserUpdate):
    """Profile update plus the fields only an admin may change."""

    role: Optional[str] = Field(default=None, pattern=r"^(user|admin)$")
    is_active: Optional[bool] = None


# ---------------------------------------------------------------------------
# Virtual-field helper
# ---------------------------------------------------------------------------


def _attach_virtual_fields(user: User) -> User:
    """Attach ``is_superuser`` and ``is_verified`` shims to a ``User`` row.

    FastAPI-Users expects these attributes.  Our model expresses the same
    concepts through ``role`` and ``is_active``.

    Args:
        user: The SQLAlchemy ``User`` instance to enrich in-place.

    Returns:
        The same ``user`` instance with virtual attributes set.
    """
    user.is_superuser = user.role == UserRole.ADMIN  # type: ignore[attr-defined]
    user.is_verified = True  # type: ignore[attr-defined]
    return user


# ---------------------------------------------------------------------------
# Custom SQLAlchemy user database adapter
# ---------------------------------------------------------------------------


class ScrapehouseUserDatabase(SQLAlchemyUserDatabase):
    """SQLAlchemy adapter that bridges our ``User`` model to FastAPI-Users.

    Overrides the read/write methods to:
    1. Strip ``is_superuser`` / ``is_verified`` from write dicts (those
       columns do not exist on our table).
    2. Attach virtual ``is_superuser`` and ``is_verified`` attributes to
       every returned ``User`` instance.
    """

    async def get(self, id: Any) -> Optional[User]:  # type: ignore[override]
        user = await super().get(id)
        return _attach_virtual_fields(user) if user else None

    async def get_by_email(self, email: str) -> Optional[User]:  # type: ignore[override]
        """Fetch a user by email address (case-insensitive)."""
        result = await self.session.execute(
            select(User).where(func.lower(User.email) == email.lower())
        )
        user = result.scalars().first()
        return _attach_virtual_fields(user) if user else None

    async def create(self, create_dict: dict[str, Any]) -> User:  # type: ignore[override]
        create_dict.pop("is_superuser", None)
        create_dict.pop("is_verified", None)
        user = await super().create(create_dict)
        return _attach_virtual_fields(user)

    async def update(self, user: User, update_dict: dict[str, Any]) -> User:  # type: ignore[override]
        update_dict.pop("is_superuser", None)
        update_dict.pop("is_verified", None)
        updated = await super().update(user, update_dict)
        return _attach_virtual_fields(updated)

    async def get_by_api_key(self, api_key: str) -> Optional[User]:
        """Fetch a user by their programmatic API key.

        Args:
            api_key: The plaintext key presented in the ``X-API-Key`` header.
                Only its SHA-256 digest is compared.

        Returns:
            Enriched ``User`` instance, or ``None`` if not found.
        """
        result = await self.session.execute(
            select(User).where(User.api_key_hash == hash_token(api_key))
        )
        user = result.scalars().first()
        return _attach_virtual_fields(user) if user else None


# ---------------------------------------------------------------------------
# UserManager
# ---------------------------------------------------------------------------


class UserManager(UUIDIDMixin, BaseUserManager[User, uuid.UUID]):
    """FastAPI-Users UserManager with project-specific lifecycle hooks.

    Uses ``secret_key`` from application settings for token signing.
    """

    @property
    def reset_password_token_secret(self) -> str:
        return get_settings().secret_key

    @property
    def verification_token_secret(self) -> str:
        return get_settings().secret_key

    async def on_after_login(
        self,
        user: User,
        request: Optional[Request] = None,
        response: Optional[Any] = None,
    ) -> None:
        logger.info("user_logged_in", user_id=str(user.id))

    async def on_after_forgot_password(
        self, user: User, token: str, request: Optional[Request] = None
    ) -> None:
        """Log password-reset token generation; mail delivery is not provided."""
        logger.info("password_reset_requested", user_id=str(user.id))


# ---------------------------------------------------------------------------
# FastAPI dependency factories
# ---------------------------------------------------------------------------


async def get_user_db(
    session: AsyncSession = Depends(get_db),
) -> AsyncGenerator[ScrapehouseUserDatabase, None]:
    """Provide a ``ScrapehouseUserDatabase`` bound to the request session."""
    yield ScrapehouseUserDatabase(session, User)


async def get_user_manager(
    user_db: ScrapehouseUserDatabase = Depends(get_user_db),
) -> AsyncGenerator[UserManager, None]:
    """Provide a ``UserManager`` instance for FastAPI-Users."""
    yield UserManager(user_db)

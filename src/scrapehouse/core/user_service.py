"""User account persistence and API key management.

Passwords are hashed with the FastAPI-Users :class:`PasswordHelper` so that
accounts created here can log in through the FastAPI-Users bearer flow.
Duplicate emails or usernames raise
:class:`~scrapehouse.core.exceptions.ConflictError`.
"""

from __future__ import annotations

import uuid
from typing import Optional, Union

import structlog
from fastapi import Depends
from fastapi_users.password import PasswordHelper
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from scrapehouse.config.settings import get_settings
from scrapehouse.core.database import get_db
from scrapehouse.core.exceptions import ConflictError, NotFoundError
from scrapehouse.core.models.users import User, UserRole
from scrapehouse.core.security import generate_api_key, hash_token
from scrapehouse.core.user_manager import UserAdminUpdate, UserCreate, UserUpdate

logger = structlog.get_logger(__name__)


class UserService:
    """CRUD for :class:`~scrapehouse.core.models.users.User` rows.

    Args:
        session: An open :class:`sqlalchemy.ext.asyncio.AsyncSession`.
        password_helper: Hasher shared with FastAPI-Users.
    """

    def __init__(
        self,
        session: AsyncSession,
        password_helper: Optional[PasswordHelper] = None,
    ) -> None:
        self.session = session
        self.password_helper = password_helper or PasswordHelper()

    # ------------------------------------------------------------------
    # Uniqueness
    # ------------------------------------------------------------------

    async def _ensure_unique(
        self,
        email: Optional[str],
        username: Optional[str],
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        clauses = []
        if email is not None:
            clauses.append(func.lower(User.email) == email.lower())
        if username is not None:
            clauses.append(User.username == username)
        if not clauses:
            return

        stmt = select(User.email, User.username).where(or_(*clauses))
        if exclude_id is not None:
            stmt = stmt.where(User.id != exclude_id)
        for existing_email, existing_username in (await self.session.execute(stmt)).all():
            if email is not None and existing_email.lower() == email.lower():
                raise ConflictError(f"Email '{email}' is already registered")
            if username is not None and existing_username == username:
                raise ConflictError(f"Username '{username}' is already taken")

    async def _commit_or_conflict(self) -> None:
        try:
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            raise ConflictError("Email or username is already in use") from exc

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    async def create(self, payload: UserCreate, role: str = UserRole.USER) -> User:
        """Create an account.

        Raises:
            ConflictError: If the email or username is already in use.
        """
        await self._ensure_unique(payload.email, payload.username)
        user = User(
            email=payload.email,
            username=payload.username,
            name=payload.name,
            hashed_password=self.password_helper.hash(payload.password),
            role=role,
            is_active=True,
        )
        self.session.add(user)
        await self._commit_or_conflict()
        await self.session.refresh(user)
        logger.info("user_created", user_id=str(user.id), role=role)
        return user

    async def find_all(self, page: int, per_page: int) -> tuple[list[User], int]:
        total = (await self.session.execute(select(func.count()).select_from(User))).scalar_one()
        result = await self.session.execute(
            select(User)
            .order_by(User.created_at.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        return list(result.scalars().all()), int(total)

    async def find_one(self, user_id: uuid.UUID) -> User:
        """Raises :class:`NotFoundError` if the user does not exist."""
        user = await self.session.get(User, user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    async def update(
        self,
        user_id: uuid.UUID,
        payload: Union[UserUpdate, UserAdminUpdate],
    ) -> User:
        user = await self.find_one(user_id)
        changes = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}

        await self._ensure_unique(
            changes.get("email"),
            changes.get("username"),
            exclude_id=user.id,
        )
        password = changes.pop("password", None)
        if password is not None:
            user.hashed_password = self.password_helper.hash(password)
        for key, value in changes.items():
            setattr(user, key, value)

        await self._commit_or_conflict()
        await self.session.refresh(user)
        logger.info("user_updated", user_id=str(user.id), fields=sorted(changes))
        return user

    async def remove(self, user_id: uuid.UUID) -> None:
        """Delete a user who owns no clients or scrapers.

        Raises:
            NotFoundError: If the user does not exist.
            ConflictError: If the user still owns clients or scrapers.
        """
        user = await self.find_one(user_id)
        await self.session.delete(user)
        try:
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            raise ConflictError(
                f"User '{user_id}' still owns clients or scrapers"
            ) from exc
        logger.info("user_deleted", user_id=str(user_id))

    # ------------------------------------------------------------------
    # API keys
    # ------------------------------------------------------------------

    async def issue_api_key(self, user: User) -> str:
        """Generate and store a new API key for ``user``, replacing any previous one.

        Returns:
            The plaintext key.  It cannot be retrieved again.
        """
        settings = get_settings()
        raw_key = generate_api_key(settings.api_key_prefix, settings.api_key_length)
        user.api_key_hash = hash_token(raw_key)
        await self.session.commit()
        logger.info("api_key_generated", user_id=str(user.id))
        return raw_key

    async def revoke_api_key(self, user: User) -> None:
        user.api_key_hash = None
        await self.session.commit()
        logger.info("api_key_revoked", user_id=str(user.id))


async def get_user_service(
    session: AsyncSession = Depends(get_db),
) -> UserService:
    """FastAPI dependency that provides a :class:`UserService`."""
    return UserService(session=session)

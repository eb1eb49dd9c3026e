"""Refresh token issuance and rotation.

Access tokens are short-lived JWTs produced by the FastAPI-Users
``JWTStrategy``.  Refresh tokens are opaque random strings; only their
SHA-256 digest is stored in ``refresh_tokens``.  Each refresh revokes the
presented token and issues a new one, so a stolen token stops working as
soon as its owner refreshes.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from scrapehouse.config.settings import get_settings
from scrapehouse.core.exceptions import AuthenticationFailedError
from scrapehouse.core.models.users import RefreshToken, User
from scrapehouse.core.security import generate_refresh_token, hash_token

logger = structlog.get_logger(__name__)


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


class RefreshTokenService:
    """Issues, rotates and revokes refresh tokens.

    Args:
        session: An open :class:`sqlalchemy.ext.asyncio.AsyncSession`.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def issue(self, user: User) -> str:
        """Store a new refresh token for ``user`` and return the raw value."""
        raw = generate_refresh_token()
        self.session.add(
            RefreshToken(
                user_id=user.id,
                token_hash=hash_token(raw),
                expires_at=_now() + timedelta(days=get_settings().refresh_token_expire_days),
            )
        )
        await self.session.commit()
        return raw

    async def rotate(self, raw: str) -> tuple[User, str]:
        """Revoke ``raw`` and issue a replacement.

        Returns:
            The token's owner and the new raw refresh token.

        Raises:
            AuthenticationFailedError: If the token is unknown, revoked,
                expired, or belongs to an inactive user.
        """
        result = await self.session.execute(
            select(RefreshToken).where(RefreshToken.token_hash == hash_token(raw))
        )
        stored = result.scalar_one_or_none()
        now = _now()
        if stored is None or stored.revoked_at is not None or stored.expires_at <= now:
            raise AuthenticationFailedError("Invalid or expired refresh token")

        user = await self.session.get(User, stored.user_id)
        if user is None or not user.is_active:
            raise AuthenticationFailedError("Invalid or expired refresh token")

        stored.revoked_at = now
        new_raw = await self.issue(user)
        logger.info("refresh_token_rotated", user_id=str(user.id))
        return user, new_raw

"""User management ORM models.

Covers:
- User: the core identity record, compatible with FastAPI-Users conventions.
- RefreshToken: opaque refresh token store supporting rotation and revocation.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from scrapehouse.core.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from scrapehouse.core.models.clients import Client
    from scrapehouse.core.models.scrapers import Scraper


class UserRole:
    """String constants for the ``users.role`` column."""

    USER = "user"
    ADMIN = "admin"


class User(TimestampMixin, Base):
    """An authenticated account that owns clients and scrapers.

    api_key_hash stores the SHA-256 hex digest of the user's API key.  The
    plaintext key is shown once when generated and never persisted.
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=sa.text("gen_random_uuid()"),
    )
    email: Mapped[str] = mapped_column(
        sa.String(320),
        unique=True,
        nullable=False,
        index=True,
    )
    username: Mapped[str] = mapped_column(
        sa.String(64),
        unique=True,
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(
        sa.String(200),
        nullable=False,
    )
    hashed_password: Mapped[str] = mapped_column(
        sa.String(1024),
        nullable=False,
    )
    role: Mapped[str] = mapped_column(
        sa.String(20),
        nullable=False,
        default=UserRole.USER,
        server_default=sa.text("'user'"),
    )
    is_active: Mapped[bool] = mapped_column(
        sa.Boolean,
        nullable=False,
        default=True,
        server_default=sa.text("true"),
    )
    api_key_hash: Mapped[Optional[str]] = mapped_column(
        sa.String(64),
        unique=True,
        nullable=True,
        index=True,
    )

    # Relationships
    refresh_tokens: Mapped[list[RefreshToken]] = relationship(
        "RefreshToken",
        back_populates="user",
        cascade="all, delete-orphan",
    )
    clients: Mapped[list[Client]] = relationship(
        "Client",
        back_populates="owner",
    )
    scrapers: Mapped[list[Scraper]] = relationship(
        "Scraper",
        back_populates="owner",
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r} role={self.role!r}>"


class RefreshToken(Base):
    """Stored refresh token supporting server-side revocation.

    Only the SHA-256 hash of the token string is persisted.  Revoked tokens
    have revoked_at set; expired tokens are identified by expires_at < NOW().
    """

    __tablename__ = "refresh_tokens"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=sa.text("gen_random_uuid()"),
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    token_hash: Mapped[str] = mapped_column(
        sa.String(64),
        nullable=False,
        unique=True,
        index=True,
    )
    expires_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
    )
    revoked_at: Mapped[Optional[datetime]] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=sa.text("NOW()"),
    )

    # Relationships
    user: Mapped[User] = relationship("User", back_populates="refresh_tokens")

    def __repr__(self) -> str:
        return (
            f"<RefreshToken id={self.id} user_id={self.user_id} "
            f"expires_at={self.expires_at}>"
        )

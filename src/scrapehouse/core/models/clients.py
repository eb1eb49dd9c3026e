"""SQLAlchemy ORM model for HTTP client definitions.

A ``Client`` row is a named, user-owned preset that selects which HTTP client
implementation family a scraper fetches through.  The ``type`` column holds a
:class:`~scrapehouse.scraper.http_client.ClientType` value; membership in the
registered set is enforced by the API schemas and by a CHECK constraint.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from scrapehouse.core.models.base import Base, TimestampMixin, UserOwnedMixin

if TYPE_CHECKING:
    from scrapehouse.core.models.scrapers import Scraper
    from scrapehouse.core.models.users import User


class Client(TimestampMixin, UserOwnedMixin, Base):
    """A stored HTTP client definition.

    Attributes:
        id: UUID primary key.
        name: Human-readable label.
        description: Optional free-text description.
        type: Client implementation family (``"httpx"`` or ``"playwright"``).
        owner_id: UUID of the owning user.
    """

    __tablename__ = "clients"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=sa.text("gen_random_uuid()"),
    )
    name: Mapped[str] = mapped_column(
        sa.String(200),
        nullable=False,
    )
    description: Mapped[Optional[str]] = mapped_column(
        sa.Text,
        nullable=True,
    )
    type: Mapped[str] = mapped_column(
        sa.String(32),
        nullable=False,
    )

    # Relationships
    owner: Mapped[User] = relationship("User", back_populates="clients")
    scrapers: Mapped[list[Scraper]] = relationship(
        "Scraper",
        back_populates="client",
    )

    __table_args__ = (
        sa.CheckConstraint(
            "type IN ('httpx', 'playwright')",
            name="ck_clients_type",
        ),
    )

    def __repr__(self) -> str:
        return f"<Client id={self.id} name={self.name!r} type={self.type!r}>"

"""SQLAlchemy ORM model for scraper definitions.

The parsing model is stored in a plain PostgreSQL ``JSON`` column rather than
``JSONB``: ``JSONB`` normalises object key order, and the declared field order
of a parsing model determines the key order of the extracted result.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Any, Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSON, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from scrapehouse.core.models.base import Base, TimestampMixin, UserOwnedMixin

if TYPE_CHECKING:
    from scrapehouse.core.models.clients import Client
    from scrapehouse.core.models.users import User


class Scraper(TimestampMixin, UserOwnedMixin, Base):
    """A persisted, reusable scraper definition.

    Attributes:
        id: UUID primary key.
        name: Human-readable label.
        description: Optional free-text description.
        default_url: URL fetched when an execution request supplies none.
        client_id: FK to the :class:`Client` used for fetching.  ``RESTRICT``
            so a referenced client cannot be deleted.
        parsing_model: ``{"type": ..., "model": {...}}`` document.
        request_config: Optional per-request overrides (``method``,
            ``user_agent``).
        owner_id: UUID of the owning user.
    """

    __tablename__ = "scrapers"

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
    default_url: Mapped[Optional[str]] = mapped_column(
        sa.String(2048),
        nullable=True,
    )
    client_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("clients.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    parsing_model: Mapped[dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
    )
    request_config: Mapped[Optional[dict[str, Any]]] = mapped_column(
        JSON,
        nullable=True,
    )

    # Relationships
    client: Mapped[Client] = relationship("Client", back_populates="scrapers")
    owner: Mapped[User] = relationship("User", back_populates="scrapers")

    __table_args__ = (
        sa.Index("idx_scrapers_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Scraper id={self.id} name={self.name!r} client_id={self.client_id}>"

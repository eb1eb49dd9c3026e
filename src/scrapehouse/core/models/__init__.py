"""SQLAlchemy ORM models for Scrapehouse.

All models are imported here so that:
1. Alembic autogenerate can discover them via Base.metadata.
2. Application code can do `from scrapehouse.core.models import User`
   without knowing which sub-module a model lives in.
3. SQLAlchemy's relationship resolution finds all mapper targets at
   import time, avoiding "mapper not yet configured" errors.
"""

from __future__ import annotations

from scrapehouse.core.models.base import Base, TimestampMixin, UserOwnedMixin
from scrapehouse.core.models.clients import Client
from scrapehouse.core.models.scrapers import Scraper
from scrapehouse.core.models.users import RefreshToken, User, UserRole

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "UserOwnedMixin",
    # Users
    "User",
    "UserRole",
    "RefreshToken",
    # Clients
    "Client",
    # Scrapers
    "Scraper",
]

"""Persistence for scraper definitions.

Integrity rules:

- ``create`` resolves the referenced client before writing the scraper row,
  so a scraper can never point at a missing client.  ``update`` repeats the
  check whenever ``client_id`` changes.
- ``update`` and ``remove`` load the target first and raise
  :class:`~scrapehouse.core.exceptions.NotFoundError` before mutating.
- Parsing models are stored via
  :meth:`~scrapehouse.core.schemas.parsing_model.ParsingModel.to_document`,
  which keeps the declared field order.
"""

from __future__ import annotations

import uuid

import structlog
from fastapi import Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from scrapehouse.core.client_service import ClientService
from scrapehouse.core.database import get_db
from scrapehouse.core.exceptions import NotFoundError
from scrapehouse.core.models.scrapers import Scraper
from scrapehouse.core.schemas.scrapers import ScraperCreate, ScraperUpdate

logger = structlog.get_logger(__name__)

#: Columns a PATCH may explicitly clear with ``null``.
_NULLABLE_FIELDS: frozenset[str] = frozenset({"description", "default_url", "request_config"})


class ScraperService:
    """CRUD for :class:`~scrapehouse.core.models.scrapers.Scraper` rows.

    Args:
        session: An open :class:`sqlalchemy.ext.asyncio.AsyncSession`.
        clients: Client store used to validate ``client_id`` references.
    """

    def __init__(self, session: AsyncSession, clients: ClientService) -> None:
        self.session = session
        self.clients = clients

    async def create(self, owner_id: uuid.UUID, payload: ScraperCreate) -> Scraper:
        """Insert a scraper after confirming its client exists.

        Raises:
            NotFoundError: If ``payload.client_id`` does not reference a client.
        """
        await self.clients.find_one(payload.client_id)

        scraper = Scraper(
            name=payload.name,
            description=payload.description,
            default_url=str(payload.default_url) if payload.default_url else None,
            client_id=payload.client_id,
            parsing_model=payload.parsing_model.to_document(),
            request_config=(
                payload.request_config.model_dump(exclude_none=True)
                if payload.request_config
                else None
            ),
            owner_id=owner_id,
        )
        self.session.add(scraper)
        await self.session.commit()
        await self.session.refresh(scraper)
        logger.info(
            "scraper_created",
            scraper_id=str(scraper.id),
            client_id=str(scraper.client_id),
            owner_id=str(owner_id),
        )
        return scraper

    async def find_all(self, page: int, per_page: int) -> tuple[list[Scraper], int]:
        """Return one page of scrapers (newest first) with client and owner loaded."""
        total = (await self.session.execute(select(func.count()).select_from(Scraper))).scalar_one()
        result = await self.session.execute(
            select(Scraper)
            .options(selectinload(Scraper.client), selectinload(Scraper.owner))
            .order_by(Scraper.created_at.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        return list(result.scalars().all()), int(total)

    async def find_one(self, scraper_id: uuid.UUID) -> Scraper:
        """Fetch a scraper by primary key.

        Raises:
            NotFoundError: If no scraper with ``scraper_id`` exists.
        """
        scraper = await self.session.get(Scraper, scraper_id)
        if scraper is None:
            raise NotFoundError("Scraper", scraper_id)
        return scraper

    async def update(self, scraper_id: uuid.UUID, payload: ScraperUpdate) -> Scraper:
        scraper = await self.find_one(scraper_id)
        changes = {
            key: value
            for key, value in payload.model_dump(exclude_unset=True).items()
            if value is not None or key in _NULLABLE_FIELDS
        }

        if "client_id" in changes and changes["client_id"] != scraper.client_id:
            await self.clients.find_one(changes["client_id"])
        if "parsing_model" in changes:
            changes["parsing_model"] = payload.parsing_model.to_document()
        if changes.get("request_config") is not None:
            changes["request_config"] = payload.request_config.model_dump(exclude_none=True)
        if changes.get("default_url") is not None:
            changes["default_url"] = str(payload.default_url)

        for key, value in changes.items():
            setattr(scraper, key, value)
        await self.session.commit()
        await self.session.refresh(scraper)
        logger.info("scraper_updated", scraper_id=str(scraper.id), fields=sorted(changes))
        return scraper

    async def remove(self, scraper_id: uuid.UUID) -> None:
        scraper = await self.find_one(scraper_id)
        await self.session.delete(scraper)
        await self.session.commit()
        logger.info("scraper_deleted", scraper_id=str(scraper_id))


async def get_scraper_service(
    session: AsyncSession = Depends(get_db),
) -> ScraperService:
    """FastAPI dependency that provides a :class:`ScraperService`."""
    return ScraperService(session=session, clients=ClientService(session))

"""Persistence for client definitions.

Every mutating operation is read-modify-write: the target row is loaded
first and :class:`~scrapehouse.core.exceptions.NotFoundError` is raised
before anything is changed.  A client still referenced by a scraper cannot
be deleted (:class:`~scrapehouse.core.exceptions.ConflictError`).
"""

from __future__ import annotations

import uuid

import structlog
from fastapi import Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from scrapehouse.core.database import get_db
from scrapehouse.core.exceptions import ConflictError, NotFoundError
from scrapehouse.core.models.clients import Client
from scrapehouse.core.models.scrapers import Scraper
from scrapehouse.core.schemas.clients import ClientCreate, ClientUpdate

logger = structlog.get_logger(__name__)


class ClientService:
    """CRUD for :class:`~scrapehouse.core.models.clients.Client` rows.

    Write methods commit immediately.

    Args:
        session: An open :class:`sqlalchemy.ext.asyncio.AsyncSession`.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(self, owner_id: uuid.UUID, payload: ClientCreate) -> Client:
        client = Client(
            name=payload.name,
            description=payload.description,
            type=payload.type.value,
            owner_id=owner_id,
        )
        self.session.add(client)
        await self.session.commit()
        await self.session.refresh(client)
        logger.info("client_created", client_id=str(client.id), type=client.type, owner_id=str(owner_id))
        return client

    async def find_all(self, page: int, per_page: int) -> tuple[list[Client], int]:
        """Return one page of clients (newest first) and the total row count."""
        total = (await self.session.execute(select(func.count()).select_from(Client))).scalar_one()
        result = await self.session.execute(
            select(Client)
            .order_by(Client.created_at.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        return list(result.scalars().all()), int(total)

    async def find_one(self, client_id: uuid.UUID) -> Client:
        """Fetch a client by primary key.

        Raises:
            NotFoundError: If no client with ``client_id`` exists.
        """
        client = await self.session.get(Client, client_id)
        if client is None:
            raise NotFoundError("Client", client_id)
        return client

    async def update(self, client_id: uuid.UUID, payload: ClientUpdate) -> Client:
        client = await self.find_one(client_id)
        changes = {
            key: value
            for key, value in payload.model_dump(exclude_unset=True).items()
            if value is not None or key == "description"
        }
        if "type" in changes:
            changes["type"] = payload.type.value
        for key, value in changes.items():
            setattr(client, key, value)
        await self.session.commit()
        await self.session.refresh(client)
        logger.info("client_updated", client_id=str(client.id), fields=sorted(changes))
        return client

    async def remove(self, client_id: uuid.UUID) -> None:
        """Delete a client that no scraper references.

        Raises:
            NotFoundError: If the client does not exist.
            ConflictError: If one or more scrapers still use the client.
        """
        client = await self.find_one(client_id)
        in_use = (
            await self.session.execute(
                select(func.count()).select_from(Scraper).where(Scraper.client_id == client_id)
            )
        ).scalar_one()
        if in_use:
            raise ConflictError(f"Client '{client_id}' is used by {in_use} scraper(s)")
        await self.session.delete(client)
        await self.session.commit()
        logger.info("client_deleted", client_id=str(client_id))


async def get_client_service(
    session: AsyncSession = Depends(get_db),
) -> ClientService:
    """FastAPI dependency that provides a :class:`ClientService`."""
    return ClientService(session=session)

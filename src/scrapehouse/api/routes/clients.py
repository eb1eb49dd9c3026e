"""Client definition routes.

Any active user may read client definitions; only the owner or an admin may
change or delete one.

Routes (mounted at ``/clients``):
    POST   /clients/              — create
    GET    /clients/              — list (paginated, newest first)
    GET    /clients/{client_id}   — detail
    PATCH  /clients/{client_id}   — update (owner or admin)
    DELETE /clients/{client_id}   — delete (owner or admin; 409 while in use)
"""

from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, status

from scrapehouse.api.dependencies import (
    PaginationParams,
    get_current_active_user,
    get_pagination,
    ownership_guard,
)
from scrapehouse.core.client_service import ClientService, get_client_service
from scrapehouse.core.models.clients import Client
from scrapehouse.core.models.users import User
from scrapehouse.core.schemas.clients import ClientCreate, ClientRead, ClientUpdate
from scrapehouse.core.schemas.pagination import Page, PageMeta

router = APIRouter()


@router.post("/", response_model=ClientRead, status_code=status.HTTP_201_CREATED)
async def create_client(
    payload: ClientCreate,
    clients: Annotated[ClientService, Depends(get_client_service)],
    current_user: Annotated[User, Depends(get_current_active_user)],
) -> Client:
    return await clients.create(current_user.id, payload)


@router.get("/", response_model=Page[ClientRead])
async def list_clients(
    clients: Annotated[ClientService, Depends(get_client_service)],
    pagination: Annotated[PaginationParams, Depends(get_pagination)],
    _user: Annotated[User, Depends(get_current_active_user)],
) -> Page[ClientRead]:
    rows, total = await clients.find_all(pagination.page, pagination.per_page)
    return Page[ClientRead](
        data=[ClientRead.model_validate(row) for row in rows],
        meta=PageMeta.build(total, pagination.page, pagination.per_page),
    )


@router.get("/{client_id}", response_model=ClientRead)
async def get_client(
    client_id: uuid.UUID,
    clients: Annotated[ClientService, Depends(get_client_service)],
    _user: Annotated[User, Depends(get_current_active_user)],
) -> Client:
    return await clients.find_one(client_id)


@router.patch("/{client_id}", response_model=ClientRead)
async def update_client(
    client_id: uuid.UUID,
    payload: ClientUpdate,
    clients: Annotated[ClientService, Depends(get_client_service)],
    current_user: Annotated[User, Depends(get_current_active_user)],
) -> Client:
    client = await clients.find_one(client_id)
    ownership_guard(client.owner_id, current_user)
    return await clients.update(client_id, payload)


@router.delete("/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_client(
    client_id: uuid.UUID,
    clients: Annotated[ClientService, Depends(get_client_service)],
    current_user: Annotated[User, Depends(get_current_active_user)],
) -> None:
    client = await clients.find_one(client_id)
    ownership_guard(client.owner_id, current_user)
    await clients.remove(client_id)

"""Pydantic request/response schemas for client definitions."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from scrapehouse.scraper.http_client import ClientType


class ClientCreate(BaseModel):
    """Payload for creating a client definition."""

    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    type: ClientType


class ClientUpdate(BaseModel):
    """Partial update; only supplied fields are changed."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    type: Optional[ClientType] = None


class ClientSummary(BaseModel):
    """Compact client representation embedded in scraper listings."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    type: ClientType


class ClientRead(BaseModel):
    """Full representation of a persisted client definition."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: Optional[str]
    type: ClientType
    owner_id: uuid.UUID
    created_at: datetime
    updated_at: datetime

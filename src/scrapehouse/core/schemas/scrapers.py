"""Pydantic request/response schemas for scraper definitions.

Used by the scraper API routes for validation, serialisation, and OpenAPI
documentation generation.  A malformed parsing model (unregistered type, or a
``nested`` field without ``query``) is rejected here, at definition-create
time, before any scraper referencing it can be executed.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, field_validator

from scrapehouse.core.schemas.clients import ClientSummary
from scrapehouse.core.schemas.parsing_model import ParsingModel
from scrapehouse.scraper.config import SUPPORTED_METHODS


class RequestConfig(BaseModel):
    """Per-request overrides applied when a scraper is executed.

    Attributes:
        method: HTTP method (defaults to ``GET``).
        user_agent: User-Agent sent instead of the global default.
    """

    model_config = ConfigDict(extra="forbid")

    method: Optional[str] = None
    user_agent: Optional[str] = Field(default=None, max_length=512)

    @field_validator("method")
    @classmethod
    def _supported_method(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        upper = value.upper()
        if upper not in SUPPORTED_METHODS:
            raise ValueError(f"Unsupported method: {value}")
        return upper


class ScraperCreate(BaseModel):
    """Payload for creating a scraper definition."""

    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    default_url: Optional[HttpUrl] = None
    client_id: uuid.UUID
    parsing_model: ParsingModel
    request_config: Optional[RequestConfig] = None


class ScraperUpdate(BaseModel):
    """Partial update; only supplied fields are changed."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    default_url: Optional[HttpUrl] = None
    client_id: Optional[uuid.UUID] = None
    parsing_model: Optional[ParsingModel] = None
    request_config: Optional[RequestConfig] = None


class OwnerSummary(BaseModel):
    """Compact owner representation embedded in scraper listings."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    username: str


class ScraperRead(BaseModel):
    """Full representation of a persisted scraper definition."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: Optional[str]
    default_url: Optional[str]
    client_id: uuid.UUID
    parsing_model: dict
    request_config: Optional[dict]
    owner_id: uuid.UUID
    created_at: datetime
    updated_at: datetime


class ScraperListItem(ScraperRead):
    """Scraper representation used by the paginated listing."""

    client: ClientSummary
    owner: OwnerSummary

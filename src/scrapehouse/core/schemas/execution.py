"""Pydantic schemas for scraper execution requests and results.

Timestamps in execution metadata are integer milliseconds since the Unix
epoch, and every phase satisfies ``duration == end_time - start_time``.
Metadata is serialised with camelCase keys (``startTime``, ``hadRetries``,
``statusText``, ...); Python code uses the snake_case attribute names.
"""

from __future__ import annotations

import uuid
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, model_validator
from pydantic.alias_generators import to_camel

from scrapehouse.core.schemas.parsing_model import ParsingModel
from scrapehouse.scraper.http_client import ClientType


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class ExecuteScraperRequest(BaseModel):
    """Body of ``POST /scrapers/{id}/execute``.

    Attributes:
        url: Overrides the scraper's ``default_url`` for this run.
    """

    url: Optional[HttpUrl] = None


class DynamicClientSpec(BaseModel):
    """Ad hoc client selection for a dynamic execution."""

    type: ClientType


class DynamicExecuteRequest(BaseModel):
    """Body of ``POST /scrapers/dynamic/execute``.

    At least one of ``client_id`` (a stored client) or ``client`` (an ad hoc
    client type) must be supplied; ``client_id`` wins when both are.
    """

    url: HttpUrl
    parsing_model: ParsingModel
    client_id: Optional[uuid.UUID] = None
    client: Optional[DynamicClientSpec] = None

    @property
    def client_type(self) -> Optional[ClientType]:
        """The ad hoc client type, unless a stored client takes precedence."""
        if self.client_id is not None or self.client is None:
            return None
        return self.client.type

    @model_validator(mode="after")
    def _one_client_source(self) -> DynamicExecuteRequest:
        if self.client_id is None and self.client is None:
            raise ValueError("Either `client_id` or `client.type` is required.")
        return self


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RequestMetadata(_CamelModel):
    url: str
    method: str
    start_time: int
    end_time: int
    duration: int
    had_retries: bool
    attempts: int
    user_agent: Optional[str]


class ResponseMetadata(_CamelModel):
    status: int
    status_text: str
    content_type: Optional[str]


class ParsingMetadata(_CamelModel):
    start_time: int
    end_time: int
    duration: int


class ExecutionMetadata(_CamelModel):
    request: RequestMetadata
    response: ResponseMetadata
    parsing: ParsingMetadata


class ExecutionResult(BaseModel):
    """Complete result of one scraper execution."""

    metadata: ExecutionMetadata
    data: Any = Field(default=None)

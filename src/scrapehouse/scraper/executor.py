"""Scraper execution orchestrator.

One execution is one sequential pipeline::

    resolve scraper (stored mode only)
      -> resolve URL                      ValidationFailedError (field "url")
      -> compile parsing model            NoParserRegisteredError / ValidationFailedError
      -> build HTTP client                NotFoundError / ValidationFailedError
      -> fetch (timed)                    UpstreamUnreachableError
      -> extract (timed)                  UpstreamUnparseableError
      -> ExecutionResult {metadata, data}

Every check that needs no I/O runs before the client is built, so a request
with a missing URL or an unregistered parsing model type never reaches the
network.  The orchestrator neither retries nor times out on its own; both
belong to the HTTP client.

Times are integer milliseconds since the Unix epoch.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from typing import Any, Mapping, Optional, Union

import structlog
from fastapi import Depends

from scrapehouse.config.settings import get_settings
from scrapehouse.core.exceptions import (
    ScrapehouseError,
    UpstreamUnparseableError,
    UpstreamUnreachableError,
    ValidationFailedError,
)
from scrapehouse.core.schemas.execution import (
    ExecutionMetadata,
    ExecutionResult,
    ParsingMetadata,
    RequestMetadata,
    ResponseMetadata,
)
from scrapehouse.core.schemas.parsing_model import ParsingModel, compile_parsing_model
from scrapehouse.core.scraper_service import ScraperService, get_scraper_service
from scrapehouse.scraper import extraction
from scrapehouse.scraper.client_registry import ClientRegistry, client_config_from_settings
from scrapehouse.scraper.http_client import ClientOptions, ClientType, HttpClient

logger = structlog.get_logger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


def _record_metrics(mode: str, outcome: str, result: Optional[ExecutionResult] = None) -> None:
    if not get_settings().metrics_enabled:
        return
    from scrapehouse.api.metrics import (  # noqa: PLC0415
        scraper_executions_total,
        scraper_phase_duration_seconds,
    )

    scraper_executions_total.labels(mode=mode, outcome=outcome).inc()
    if result is not None:
        scraper_phase_duration_seconds.labels(phase="request").observe(
            result.metadata.request.duration / 1000
        )
        scraper_phase_duration_seconds.labels(phase="parsing").observe(
            result.metadata.parsing.duration / 1000
        )


class ScraperExecutor:
    """Runs stored and dynamic scraper executions.

    Args:
        scrapers: Store used to load persisted scraper definitions.
        registry: Builds HTTP clients from stored or ad hoc client definitions.
        default_user_agent: Reported in metadata when the client declares none.
    """

    def __init__(
        self,
        scrapers: ScraperService,
        registry: ClientRegistry,
        default_user_agent: str,
    ) -> None:
        self.scrapers = scrapers
        self.registry = registry
        self.default_user_agent = default_user_agent

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def execute_stored(
        self,
        scraper_id: uuid.UUID,
        override_url: Optional[str] = None,
    ) -> ExecutionResult:
        """Execute a persisted scraper.

        Args:
            scraper_id: Primary key of the scraper to run.
            override_url: Fetched instead of the scraper's ``default_url``.

        Raises:
            NotFoundError: If the scraper (or its client) does not exist.
            ValidationFailedError: If no URL is available or the stored
                parsing model is invalid.
            UpstreamUnreachableError: If the fetch fails.
            UpstreamUnparseableError: If extraction fails.
        """
        try:
            scraper = await self.scrapers.find_one(scraper_id)

            url = override_url or scraper.default_url
            if not url:
                raise ValidationFailedError.required_field_missing("url")

            model = compile_parsing_model(scraper.parsing_model)
            options = ClientOptions.from_request_config(scraper.request_config)
            client = await self.registry.build_stored(scraper.client_id, options)

            result = await self._run(client, url, model, options)
        except ScrapehouseError as exc:
            _record_metrics("stored", exc.kind)
            raise

        _record_metrics("stored", "success", result)
        logger.info(
            "scraper_execution_completed",
            mode="stored",
            scraper_id=str(scraper_id),
            url=url,
            status=result.metadata.response.status,
            attempts=result.metadata.request.attempts,
        )
        return result

    async def execute_dynamic(
        self,
        url: Optional[str],
        parsing_model: Union[ParsingModel, Mapping[str, Any]],
        client_id: Optional[uuid.UUID] = None,
        client_type: Optional[Union[ClientType, str]] = None,
    ) -> ExecutionResult:
        """Execute a one-off scraper that is never persisted.

        The client comes from a stored definition when ``client_id`` is given
        (no ad hoc construction), otherwise it is built from ``client_type``
        (no stored lookup).

        Raises:
            ValidationFailedError: If ``url`` is missing, neither client
                source is given, or the parsing model is invalid.
            NotFoundError: If ``client_id`` does not reference a client.
            UpstreamUnreachableError: If the fetch fails.
            UpstreamUnparseableError: If extraction fails.
        """
        try:
            if not url:
                raise ValidationFailedError.required_field_missing("url")

            model = compile_parsing_model(parsing_model)
            options = ClientOptions()

            if client_id is not None:
                client = await self.registry.build_stored(client_id, options)
            elif client_type is not None:
                client = self.registry.build_dynamic(client_type, options)
            else:
                raise ValidationFailedError.required_field_missing("client")

            result = await self._run(client, url, model, options)
        except ScrapehouseError as exc:
            _record_metrics("dynamic", exc.kind)
            raise

        _record_metrics("dynamic", "success", result)
        logger.info(
            "scraper_execution_completed",
            mode="dynamic",
            client_id=str(client_id) if client_id else None,
            client_type=str(client_type) if client_type else None,
            url=url,
            status=result.metadata.response.status,
            attempts=result.metadata.request.attempts,
        )
        return result

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    async def _run(
        self,
        client: HttpClient,
        url: str,
        model: ParsingModel,
        options: ClientOptions,
    ) -> ExecutionResult:
        request_start = _now_ms()
        try:
            response = await client.fetch(url)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "scraper_fetch_failed",
                url=url,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            raise UpstreamUnreachableError(url) from exc
        request_end = _now_ms()

        parsing_start = _now_ms()
        try:
            data = await asyncio.to_thread(extraction.run_parser, response.text, model)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "scraper_parsing_failed",
                url=url,
                parsing_model_type=model.type.value,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            raise UpstreamUnparseableError(str(exc)) from exc
        parsing_end = _now_ms()

        return ExecutionResult(
            metadata=ExecutionMetadata(
                request=RequestMetadata(
                    url=url,
                    method=options.method,
                    start_time=request_start,
                    end_time=request_end,
                    duration=request_end - request_start,
                    had_retries=response.had_retries(),
                    attempts=response.attempts,
                    user_agent=client.user_agent or self.default_user_agent,
                ),
                response=ResponseMetadata(
                    status=response.status,
                    status_text=response.status_text,
                    content_type=response.get_header("content-type"),
                ),
                parsing=ParsingMetadata(
                    start_time=parsing_start,
                    end_time=parsing_end,
                    duration=parsing_end - parsing_start,
                ),
            ),
            data=data,
        )


async def get_scraper_executor(
    scrapers: ScraperService = Depends(get_scraper_service),
) -> ScraperExecutor:
    """FastAPI dependency that provides a :class:`ScraperExecutor`.

    Shares the request's database session through the scraper store.
    """
    settings = get_settings()
    registry = ClientRegistry(
        clients=scrapers.clients,
        config=client_config_from_settings(settings),
    )
    return ScraperExecutor(
        scrapers=scrapers,
        registry=registry,
        default_user_agent=settings.scraper_default_user_agent,
    )

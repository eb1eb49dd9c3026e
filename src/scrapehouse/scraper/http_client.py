"""HTTP client factory used by the scraper execution pipeline.

Every client exposes the same minimal contract::

    client = create_http_client(config, ClientType.HTTPX, options)
    response = await client.fetch("https://example.com")
    response.status, response.status_text, response.text
    response.get_header("content-type"), response.had_retries(), response.attempts
    client.user_agent

Two implementation families are registered:

- ``httpx``: plain async HTTP via :mod:`httpx`.
- ``playwright``: headless Chromium via Playwright, for pages that need
  JavaScript.  Playwright is an optional dependency; install it with::

      pip install "scrapehouse[playwright]"
      playwright install chromium

Both families share the retry loop in :class:`_RetryingClient`: transport
failures and retryable statuses (see
:data:`~scrapehouse.scraper.config.RETRYABLE_STATUS_CODES`) are retried up to
``max_retries`` extra times with a linear backoff.  When the budget is spent a
transport failure raises :class:`HttpClientError`, while a retryable status is
returned as the final response.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Protocol

import httpx

from scrapehouse.scraper.config import (
    DEFAULT_METHOD,
    PLAYWRIGHT_WAIT_UNTIL,
    RETRYABLE_STATUS_CODES,
)

logger = logging.getLogger(__name__)

# Guard import, playwright is an optional dependency
try:
    from playwright.async_api import Error as _PlaywrightError
    from playwright.async_api import async_playwright as _async_playwright

    _PLAYWRIGHT_AVAILABLE = True
except ImportError:
    _PLAYWRIGHT_AVAILABLE = False


class ClientType(str, Enum):
    """Registered HTTP client implementation families."""

    HTTPX = "httpx"
    PLAYWRIGHT = "playwright"


class HttpClientError(Exception):
    """Raised when a fetch fails after the retry budget is exhausted.

    Args:
        message: Human-readable description of the last failure.
        url: The URL being fetched.
        attempts: Number of attempts made.
    """

    def __init__(self, message: str, url: str, attempts: int = 1) -> None:
        super().__init__(message)
        self.url = url
        self.attempts = attempts


# ---------------------------------------------------------------------------
# Configuration and result types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ClientConfig:
    """Base configuration shared by every client the factory builds.

    Attributes:
        timeout: Per-attempt timeout in seconds.
        max_retries: Extra attempts allowed after the first one.
        retry_delay: Base backoff in seconds; attempt ``n`` waits ``n * retry_delay``.
        default_user_agent: User-Agent sent on the wire when the client
            declares none of its own.
    """

    timeout: float = 30.0
    max_retries: int = 2
    retry_delay: float = 1.0
    default_user_agent: Optional[str] = None


@dataclass(frozen=True)
class ClientOptions:
    """Per-request overrides taken from a scraper's ``request_config``."""

    method: str = DEFAULT_METHOD
    user_agent: Optional[str] = None

    @classmethod
    def from_request_config(cls, request_config: Optional[dict[str, Any]]) -> ClientOptions:
        """Build options from a stored ``request_config`` document (may be ``None``)."""
        if not request_config:
            return cls()
        return cls(
            method=(request_config.get("method") or DEFAULT_METHOD).upper(),
            user_agent=request_config.get("user_agent"),
        )


@dataclass
class HttpResponse:
    """The final response of a fetch, after any retries.

    Attributes:
        url: Final URL after redirects.
        status: HTTP status code.
        status_text: Reason phrase (``"OK"``, ``"Not Found"``, ...).
        text: Decoded response body.
        headers: Response headers with lower-cased names.
        attempts: Number of attempts made, including the successful one.
    """

    url: str
    status: int
    status_text: str
    text: str
    headers: dict[str, str] = field(default_factory=dict)
    attempts: int = 1

    def get_header(self, name: str) -> Optional[str]:
        return self.headers.get(name.lower())

    def had_retries(self) -> bool:
        return self.attempts > 1


class HttpClient(Protocol):
    """Contract every client returned by :func:`create_http_client` satisfies."""

    @property
    def user_agent(self) -> Optional[str]: ...

    async def fetch(self, url: str) -> HttpResponse: ...


# ---------------------------------------------------------------------------
# Shared retry loop
# ---------------------------------------------------------------------------


class _AttemptFailed(Exception):
    """Internal marker wrapping a library-specific transport failure."""


class _RetryingClient:
    """Base class implementing the retry loop around a single ``_attempt``."""

    def __init__(self, config: ClientConfig, options: Optional[ClientOptions] = None) -> None:
        self._config = config
        self._options = options or ClientOptions()

    @property
    def user_agent(self) -> Optional[str]:
        """The User-Agent declared by this client's options, if any."""
        return self._options.user_agent

    @property
    def _wire_user_agent(self) -> Optional[str]:
        return self._options.user_agent or self._config.default_user_agent

    async def _attempt(self, url: str) -> HttpResponse:
        raise NotImplementedError

    async def fetch(self, url: str) -> HttpResponse:
        """Fetch ``url``, retrying transient failures within the configured budget.

        Raises:
            HttpClientError: If every attempt failed at the transport level.
        """
        max_attempts = self._config.max_retries + 1
        last_error: Optional[BaseException] = None

        for attempt in range(1, max_attempts + 1):
            try:
                response = await self._attempt(url)
            except _AttemptFailed as exc:
                last_error = exc.__cause__ or exc
                logger.warning(
                    "http_client: attempt %d/%d for %s failed: %s",
                    attempt,
                    max_attempts,
                    url,
                    last_error,
                )
            else:
                response.attempts = attempt
                if response.status not in RETRYABLE_STATUS_CODES or attempt == max_attempts:
                    return response
                logger.info(
                    "http_client: retryable status %d for %s (attempt %d/%d)",
                    response.status,
                    url,
                    attempt,
                    max_attempts,
                )

            if attempt < max_attempts:
                await asyncio.sleep(self._config.retry_delay * attempt)

        raise HttpClientError(
            f"Fetching {url} failed after {max_attempts} attempt(s): {last_error}",
            url=url,
            attempts=max_attempts,
        )


# ---------------------------------------------------------------------------
# httpx
# ---------------------------------------------------------------------------


class HttpxClient(_RetryingClient):
    """Async HTTP client backed by :class:`httpx.AsyncClient`.

    Redirects are followed.  A fresh ``AsyncClient`` is opened per attempt so
    that no connection state leaks between executions.
    """

    async def _attempt(self, url: str) -> HttpResponse:
        headers: dict[str, str] = {}
        if self._wire_user_agent:
            headers["User-Agent"] = self._wire_user_agent

        try:
            async with httpx.AsyncClient(
                timeout=self._config.timeout,
                follow_redirects=True,
                headers=headers,
            ) as client:
                response = await client.request(self._options.method, url)
        except httpx.RequestError as exc:
            raise _AttemptFailed(str(exc)) from exc

        return HttpResponse(
            url=str(response.url),
            status=response.status_code,
            status_text=response.reason_phrase,
            text=response.text,
            headers={k.lower(): v for k, v in response.headers.items()},
        )


# ---------------------------------------------------------------------------
# Playwright
# ---------------------------------------------------------------------------


class PlaywrightClient(_RetryingClient):
    """Headless Chromium client for JavaScript-rendered pages.

    Only ``GET`` navigation is supported; ``options.method`` is ignored.  The
    browser is always closed before the attempt returns.
    """

    async def _attempt(self, url: str) -> HttpResponse:
        if not _PLAYWRIGHT_AVAILABLE:
            raise HttpClientError(
                "Playwright is not installed. "
                "Install it with: pip install 'scrapehouse[playwright]' && playwright install chromium",
                url=url,
                attempts=0,
            )

        timeout_ms = self._config.timeout * 1000

        try:
            async with _async_playwright() as p:
                browser = await p.chromium.launch(headless=True)
                try:
                    context = await browser.new_context(user_agent=self._wire_user_agent)
                    page = await context.new_page()
                    try:
                        response = await page.goto(
                            url,
                            timeout=timeout_ms,
                            wait_until=PLAYWRIGHT_WAIT_UNTIL,
                        )
                        html = await page.content()
                        if response is None:
                            return HttpResponse(url=page.url, status=200, status_text="OK", text=html)
                        headers = await response.all_headers()
                        return HttpResponse(
                            url=page.url,
                            status=response.status,
                            status_text=response.status_text,
                            text=html,
                            headers={k.lower(): v for k, v in headers.items()},
                        )
                    finally:
                        await page.close()
                        await context.close()
                finally:
                    await browser.close()
        except _PlaywrightError as exc:
            raise _AttemptFailed(str(exc)) from exc


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def create_http_client(
    config: ClientConfig,
    client_type: ClientType | str,
    options: Optional[ClientOptions] = None,
) -> HttpClient:
    """Construct a client of the requested family.

    Args:
        config: Base configuration shared by all clients.
        client_type: A :class:`ClientType` or its string value.
        options: Per-request overrides (method, user-agent).

    Returns:
        A fresh client instance; clients are never cached or shared.

    Raises:
        ValueError: If ``client_type`` is not a registered family.
    """
    client_type = ClientType(client_type)
    if client_type is ClientType.HTTPX:
        return HttpxClient(config, options)
    if client_type is ClientType.PLAYWRIGHT:
        return PlaywrightClient(config, options)
    raise ValueError(f"Unsupported client type: {client_type}")

"""Unit tests for the HTTP client factory and retry loop.

httpx traffic is intercepted with respx; no network access is needed.
"""

from __future__ import annotations

import httpx
import pytest
import respx

from scrapehouse.scraper import http_client
from scrapehouse.scraper.http_client import (
    ClientConfig,
    ClientOptions,
    ClientType,
    HttpClientError,
    HttpxClient,
    PlaywrightClient,
    create_http_client,
)

URL = "https://example.com/page"


def _config(**overrides) -> ClientConfig:
    values = {"timeout": 5.0, "max_retries": 2, "retry_delay": 0.0, "default_user_agent": "Default/1.0"}
    values.update(overrides)
    return ClientConfig(**values)


class TestCreateHttpClient:
    def test_builds_httpx_client(self) -> None:
        assert isinstance(create_http_client(_config(), ClientType.HTTPX), HttpxClient)

    def test_accepts_string_tag(self) -> None:
        assert isinstance(create_http_client(_config(), "playwright"), PlaywrightClient)

    def test_unknown_tag_raises_value_error(self) -> None:
        with pytest.raises(ValueError):
            create_http_client(_config(), "axios")

    def test_each_call_returns_a_fresh_client(self) -> None:
        config = _config()
        assert create_http_client(config, "httpx") is not create_http_client(config, "httpx")


class TestClientOptions:
    def test_defaults_when_request_config_empty(self) -> None:
        options = ClientOptions.from_request_config(None)
        assert options.method == "GET"
        assert options.user_agent is None

    def test_reads_method_and_user_agent(self) -> None:
        options = ClientOptions.from_request_config({"method": "post", "user_agent": "UA/1"})
        assert options.method == "POST"
        assert options.user_agent == "UA/1"


class TestHttpxClient:
    @respx.mock
    async def test_successful_fetch(self) -> None:
        route = respx.get(URL).mock(
            return_value=httpx.Response(200, text="<p>ok</p>", headers={"Content-Type": "text/html"})
        )
        client = create_http_client(_config(), ClientType.HTTPX)

        response = await client.fetch(URL)

        assert route.call_count == 1
        assert response.status == 200
        assert response.status_text == "OK"
        assert response.text == "<p>ok</p>"
        assert response.get_header("Content-Type") == "text/html"
        assert response.attempts == 1
        assert response.had_retries() is False

    @respx.mock
    async def test_sends_default_user_agent_on_the_wire(self) -> None:
        route = respx.get(URL).mock(return_value=httpx.Response(200, text="ok"))
        client = create_http_client(_config(), ClientType.HTTPX)

        await client.fetch(URL)

        assert route.calls.last.request.headers["User-Agent"] == "Default/1.0"
        assert client.user_agent is None

    @respx.mock
    async def test_options_override_user_agent_and_method(self) -> None:
        route = respx.post(URL).mock(return_value=httpx.Response(200, text="ok"))
        options = ClientOptions(method="POST", user_agent="Custom/2.0")
        client = create_http_client(_config(), ClientType.HTTPX, options)

        await client.fetch(URL)

        assert route.calls.last.request.headers["User-Agent"] == "Custom/2.0"
        assert client.user_agent == "Custom/2.0"

    @respx.mock
    async def test_retries_retryable_status_then_succeeds(self) -> None:
        route = respx.get(URL).mock(
            side_effect=[httpx.Response(503), httpx.Response(200, text="ok")]
        )
        client = create_http_client(_config(), ClientType.HTTPX)

        response = await client.fetch(URL)

        assert route.call_count == 2
        assert response.status == 200
        assert response.attempts == 2
        assert response.had_retries() is True

    @respx.mock
    async def test_returns_last_retryable_response_when_budget_spent(self) -> None:
        route = respx.get(URL).mock(return_value=httpx.Response(500))
        client = create_http_client(_config(max_retries=1), ClientType.HTTPX)

        response = await client.fetch(URL)

        assert route.call_count == 2
        assert response.status == 500
        assert response.attempts == 2

    @respx.mock
    async def test_non_retryable_status_is_returned_immediately(self) -> None:
        route = respx.get(URL).mock(return_value=httpx.Response(404))
        client = create_http_client(_config(), ClientType.HTTPX)

        response = await client.fetch(URL)

        assert route.call_count == 1
        assert response.status == 404
        assert response.status_text == "Not Found"

    @respx.mock
    async def test_transport_errors_exhaust_budget(self) -> None:
        route = respx.get(URL).mock(side_effect=httpx.ConnectError("refused"))
        client = create_http_client(_config(max_retries=2), ClientType.HTTPX)

        with pytest.raises(HttpClientError) as exc_info:
            await client.fetch(URL)

        assert route.call_count == 3
        assert exc_info.value.attempts == 3
        assert exc_info.value.url == URL

    @respx.mock
    async def test_transport_error_then_success(self) -> None:
        respx.get(URL).mock(
            side_effect=[httpx.ReadTimeout("slow"), httpx.Response(200, text="ok")]
        )
        client = create_http_client(_config(), ClientType.HTTPX)

        response = await client.fetch(URL)

        assert response.text == "ok"
        assert response.attempts == 2


class TestPlaywrightClient:
    async def test_missing_playwright_raises_client_error(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(http_client, "_PLAYWRIGHT_AVAILABLE", False)
        client = create_http_client(_config(), ClientType.PLAYWRIGHT)

        with pytest.raises(HttpClientError, match="Playwright is not installed"):
            await client.fetch(URL)

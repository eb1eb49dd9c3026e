"""Unit tests for the structured logging configuration.

Log output is captured by pointing the root stream handler installed by
``configure_logging()`` at an in-memory buffer.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from io import StringIO

import pytest
import structlog
from httpx import ASGITransport, AsyncClient

from scrapehouse.core.logging_config import configure_logging, request_id_var


class LogCapture:
    """Swaps the stream of every root handler for a buffer."""

    def __init__(self) -> None:
        self.buffer = StringIO()
        self._saved: list[tuple[logging.Handler, object]] = []

    def start(self) -> None:
        for handler in logging.getLogger().handlers:
            if hasattr(handler, "stream"):
                self._saved.append((handler, handler.stream))
                handler.stream = self.buffer

    def stop(self) -> None:
        for handler, stream in self._saved:
            handler.flush()
            handler.stream = stream
        self._saved.clear()

    def records(self) -> list[dict]:
        return [json.loads(line) for line in self.buffer.getvalue().splitlines() if line.strip()]

    def find(self, event: str) -> dict:
        matching = [r for r in self.records() if r.get("event") == event]
        assert matching, f"No record with event={event!r} in {self.buffer.getvalue()!r}"
        return matching[-1]


@pytest.fixture
def capture() -> Iterator[LogCapture]:
    configure_logging("INFO")
    cap = LogCapture()
    cap.start()
    yield cap
    cap.stop()


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


class TestJsonRendering:
    def test_structlog_event_has_standard_fields(self, capture: LogCapture) -> None:
        structlog.get_logger("scrapehouse.test").info("scraper_created", scraper_id="abc")

        record = capture.find("scraper_created")
        assert record["scraper_id"] == "abc"
        assert record["level"] == "info"
        assert record["logger"] == "scrapehouse.test"
        assert "timestamp" in record

    def test_stdlib_records_share_the_pipeline(self, capture: LogCapture) -> None:
        logging.getLogger("scrapehouse.api.routes.health").warning("database_probe_failed")

        record = capture.find("database_probe_failed")
        assert record["level"] == "warning"

    def test_debug_level_uses_console_renderer(self) -> None:
        configure_logging("DEBUG")
        cap = LogCapture()
        cap.start()
        try:
            structlog.get_logger("scrapehouse.test").debug("console_line")
        finally:
            cap.stop()

        output = cap.buffer.getvalue()
        assert "console_line" in output
        with pytest.raises(json.JSONDecodeError):
            json.loads(output.splitlines()[-1])

    def test_reconfiguring_keeps_a_single_handler(self) -> None:
        configure_logging("INFO")
        configure_logging("WARNING")

        assert len(logging.getLogger().handlers) == 1
        assert logging.getLogger().level == logging.WARNING

    def test_http_client_loggers_are_quietened(self) -> None:
        configure_logging("INFO")

        assert logging.getLogger("httpx").level == logging.WARNING


# ---------------------------------------------------------------------------
# Request correlation
# ---------------------------------------------------------------------------


class TestRequestId:
    def test_context_var_is_injected(self, capture: LogCapture) -> None:
        token = request_id_var.set("req-42")
        try:
            structlog.get_logger("scrapehouse.test").info("with_request")
        finally:
            request_id_var.reset(token)

        assert capture.find("with_request")["request_id"] == "req-42"

    def test_absent_outside_a_request(self, capture: LogCapture) -> None:
        request_id_var.set(None)
        structlog.contextvars.clear_contextvars()

        structlog.get_logger("scrapehouse.test").info("outside_request")

        assert "request_id" not in capture.find("outside_request")

    async def test_middleware_logs_and_echoes_the_same_id(self, capture: LogCapture) -> None:
        from scrapehouse.api.main import app  # noqa: PLC0415

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            response = await ac.get("/health")

        record = capture.find("request_complete")
        assert record["request_id"] == response.headers["X-Request-ID"]
        assert record["status_code"] == 200
        assert record["path"] == "/health"


# ---------------------------------------------------------------------------
# Redaction
# ---------------------------------------------------------------------------


class TestSecretRedaction:
    def test_secret_keys_are_redacted(self, capture: LogCapture) -> None:
        structlog.get_logger("scrapehouse.test").info(
            "sign_in_attempt",
            password="hunter2",
            refresh_token="abc",
            url="https://example.com",
        )

        record = capture.find("sign_in_attempt")
        assert record["password"] == "[REDACTED]"
        assert record["refresh_token"] == "[REDACTED]"
        assert record["url"] == "https://example.com"

    def test_nested_header_values_are_redacted(self, capture: LogCapture) -> None:
        structlog.get_logger("scrapehouse.test").info(
            "outbound_request",
            headers={"X-API-Key": "dev_abc", "Accept": "text/html"},
        )

        headers = capture.find("outbound_request")["headers"]
        assert headers["X-API-Key"] == "[REDACTED]"
        assert headers["Accept"] == "text/html"

    def test_api_key_and_refresh_token_keys_are_redacted(self, capture: LogCapture) -> None:
        structlog.get_logger("scrapehouse.test").info(
            "key_issued",
            api_key="dev_abc",
            headers={"Api-Key": "dev_abc", "Set-Cookie": "sid=1"},
            refresh_token_hash="deadbeef",
        )

        record = capture.find("key_issued")
        assert record["api_key"] == "[REDACTED]"
        assert record["refresh_token_hash"] == "[REDACTED]"
        assert record["headers"] == {"Api-Key": "[REDACTED]", "Set-Cookie": "[REDACTED]"}

    def test_credentials_in_urls_are_masked(self, capture: LogCapture) -> None:
        structlog.get_logger("scrapehouse.test").info(
            "scraper_execution_completed",
            url="https://bob:pw@example.com/feed?api_key=dev_abc&page=2",
            final_url="https://example.com/feed?page=2",
        )

        record = capture.find("scraper_execution_completed")
        assert record["url"] == "https://[REDACTED]@example.com/feed?api_key=[REDACTED]&page=2"
        assert record["final_url"] == "https://example.com/feed?page=2"

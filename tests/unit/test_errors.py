"""Unit tests for the exception hierarchy and its HTTP translation."""

from __future__ import annotations

import json
import uuid
from types import SimpleNamespace

import pytest
from fastapi.exceptions import RequestValidationError

from scrapehouse.api.errors import (
    STATUS_BY_KIND,
    request_validation_error_handler,
    scrapehouse_error_handler,
)
from scrapehouse.core.exceptions import (
    AuthenticationFailedError,
    ConflictError,
    NoParserRegisteredError,
    NotFoundError,
    ScrapehouseError,
    UpstreamUnparseableError,
    UpstreamUnreachableError,
    ValidationFailedError,
)


@pytest.mark.parametrize(
    ("exc", "status"),
    [
        (NotFoundError("Scraper", uuid.uuid4()), 404),
        (ValidationFailedError("bad"), 400),
        (NoParserRegisteredError("xml"), 400),
        (ConflictError("dup"), 409),
        (AuthenticationFailedError("nope"), 401),
        (UpstreamUnreachableError("https://x"), 503),
        (UpstreamUnparseableError("boom"), 502),
    ],
)
async def test_handler_maps_kind_to_status(exc: ScrapehouseError, status: int) -> None:
    response = await scrapehouse_error_handler(None, exc)  # type: ignore[arg-type]

    assert response.status_code == status
    body = json.loads(response.body)
    assert body["kind"] == exc.kind
    assert body["detail"] == exc.message


async def test_handler_includes_field() -> None:
    response = await scrapehouse_error_handler(
        None, ValidationFailedError.required_field_missing("url")  # type: ignore[arg-type]
    )

    body = json.loads(response.body)
    assert body == {"detail": "Required field missing: url", "kind": "validation_failed", "field": "url"}


async def test_unauthorized_carries_www_authenticate() -> None:
    response = await scrapehouse_error_handler(None, AuthenticationFailedError("x"))  # type: ignore[arg-type]

    assert response.headers["WWW-Authenticate"] == "Bearer"


def test_upstream_kinds_are_distinct() -> None:
    assert UpstreamUnreachableError.kind != UpstreamUnparseableError.kind
    assert STATUS_BY_KIND[UpstreamUnreachableError.kind] != STATUS_BY_KIND[UpstreamUnparseableError.kind]


def test_messages() -> None:
    client_id = uuid.uuid4()

    assert NotFoundError("Client", client_id).message == f"Client '{client_id}' not found"
    assert UpstreamUnparseableError("bad json").message == "Parsing failed: bad json"
    assert UpstreamUnreachableError("https://x").message == "Request to 'https://x' failed"


async def test_request_validation_errors_become_validation_failed() -> None:
    exc = RequestValidationError(
        [
            {
                "type": "missing",
                "loc": ("body", "url"),
                "msg": "Field required",
                "input": {},
            }
        ]
    )
    request = SimpleNamespace(url=SimpleNamespace(path="/scrapers/dynamic/execute"))

    response = await request_validation_error_handler(request, exc)  # type: ignore[arg-type]

    assert response.status_code == 400
    body = json.loads(response.body)
    assert body["kind"] == "validation_failed"
    assert body["field"] == "url"
    assert body["detail"] == "Field required"
    assert len(body["errors"]) == 1


async def test_request_validation_strips_value_error_prefix() -> None:
    exc = RequestValidationError(
        [
            {
                "type": "value_error",
                "loc": ("body", "parsing_model"),
                "msg": "Value error, No parser found for type: xml",
                "input": {"type": "xml"},
            }
        ]
    )
    request = SimpleNamespace(url=SimpleNamespace(path="/scrapers/"))

    response = await request_validation_error_handler(request, exc)  # type: ignore[arg-type]

    body = json.loads(response.body)
    assert body["detail"] == "No parser found for type: xml"
    assert body["field"] == "parsing_model"

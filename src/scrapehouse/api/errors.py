"""Translation of domain exceptions into HTTP responses.

Services raise :class:`~scrapehouse.core.exceptions.ScrapehouseError`
subclasses; the handler registered here turns each into a JSON body of the
form ``{"detail": <message>, "kind": <kind>}`` with the status code mapped
from its ``kind``. Request validation errors raised by FastAPI are reported
the same way, as ``validation_failed``.
"""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from scrapehouse.core.exceptions import ScrapehouseError, ValidationFailedError

logger = structlog.get_logger(__name__)

STATUS_BY_KIND: dict[str, int] = {
    "not_found": status.HTTP_404_NOT_FOUND,
    "validation_failed": status.HTTP_400_BAD_REQUEST,
    "conflict": status.HTTP_409_CONFLICT,
    "unauthorized": status.HTTP_401_UNAUTHORIZED,
    "upstream_unreachable": status.HTTP_503_SERVICE_UNAVAILABLE,
    "upstream_unparseable": status.HTTP_502_BAD_GATEWAY,
}


async def scrapehouse_error_handler(request: Request, exc: ScrapehouseError) -> JSONResponse:
    status_code = STATUS_BY_KIND.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)
    logger.info(
        "domain_error",
        kind=exc.kind,
        status_code=status_code,
        message=exc.message,
    )
    body = {"detail": exc.message, "kind": exc.kind}
    field = getattr(exc, "field", None)
    if field is not None:
        body["field"] = field
    headers = {"WWW-Authenticate": "Bearer"} if status_code == status.HTTP_401_UNAUTHORIZED else None
    return JSONResponse(status_code=status_code, content=body, headers=headers)


async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed request input as ``validation_failed`` (400).

    The first error supplies ``detail`` and ``field``; the full pydantic error
    list is kept under ``errors``.
    """
    errors = exc.errors()
    first = errors[0] if errors else {}
    message = str(first.get("msg", "Invalid request"))
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    location = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
    body: dict = {"detail": message, "kind": ValidationFailedError.kind, "errors": jsonable_encoder(errors)}
    if location:
        body["field"] = ".".join(location)
    logger.info("request_validation_failed", path=request.url.path, field=body.get("field"))
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body)


def register_exception_handlers(application: FastAPI) -> None:
    """Attach the domain and request-validation handlers to ``application``."""
    application.add_exception_handler(ScrapehouseError, scrapehouse_error_handler)  # type: ignore[arg-type]
    application.add_exception_handler(RequestValidationError, request_validation_error_handler)  # type: ignore[arg-type]

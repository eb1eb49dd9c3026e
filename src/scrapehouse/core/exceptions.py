"""Application-wide exception hierarchy for Scrapehouse.

All custom exceptions subclass ``ScrapehouseError`` and carry a stable
``kind`` string.  Services raise them at the point of failure; the FastAPI
exception handlers in ``api/errors.py`` translate them into JSON responses
of the form ``{"detail": <message>, "kind": <kind>}``.

Hierarchy::

    ScrapehouseError
    ├── NotFoundError              (kind="not_found",            404)
    ├── ValidationFailedError      (kind="validation_failed",    400)
    │   └── NoParserRegisteredError
    ├── ConflictError              (kind="conflict",             409)
    ├── AuthenticationFailedError  (kind="unauthorized",         401)
    ├── UpstreamUnreachableError   (kind="upstream_unreachable", 503)
    └── UpstreamUnparseableError   (kind="upstream_unparseable", 502)
"""

from __future__ import annotations


class ScrapehouseError(Exception):
    """Base class for all Scrapehouse exceptions.

    Attributes:
        kind: Machine-readable error category, stable across releases.
        message: Human-readable description of the failure.
    """

    kind: str = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


# ---------------------------------------------------------------------------
# Lookup / input errors
# ---------------------------------------------------------------------------


class NotFoundError(ScrapehouseError):
    """Raised when a referenced entity (scraper, client, user) does not exist.

    Args:
        entity: Entity name used in the message (e.g. ``"Scraper"``).
        entity_id: The identifier that was looked up.
    """

    kind = "not_found"

    def __init__(self, entity: str, entity_id: object) -> None:
        super().__init__(f"{entity} '{entity_id}' not found")
        self.entity = entity
        self.entity_id = entity_id


class ValidationFailedError(ScrapehouseError):
    """Raised when input is rejected before any I/O takes place.

    Args:
        message: Human-readable description of the failure.
        field: Name of the offending field, when a single field is at fault.
    """

    kind = "validation_failed"

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field

    @classmethod
    def required_field_missing(cls, field: str) -> ValidationFailedError:
        """Build the error raised when a required field is absent."""
        return cls(f"Required field missing: {field}", field=field)


class NoParserRegisteredError(ValidationFailedError):
    """Raised when a parsing model declares a type with no parser front-end.

    Args:
        parser_type: The unsupported type tag (e.g. ``"xml"``).
    """

    def __init__(self, parser_type: str) -> None:
        super().__init__(f"No parser found for type: {parser_type}", field="type")
        self.parser_type = parser_type


class ConflictError(ScrapehouseError):
    """Raised on duplicate unique fields or when a referenced row blocks a delete."""

    kind = "conflict"


class AuthenticationFailedError(ScrapehouseError):
    """Raised when credentials or a refresh token are rejected."""

    kind = "unauthorized"


# ---------------------------------------------------------------------------
# Execution errors
# ---------------------------------------------------------------------------


class UpstreamUnreachableError(ScrapehouseError):
    """Raised when the fetch step of a scraper execution fails.

    The underlying transport exception is logged at the origin and never
    included in the message returned to the caller.

    Args:
        url: The URL that could not be fetched.
    """

    kind = "upstream_unreachable"

    def __init__(self, url: str) -> None:
        super().__init__(f"Request to '{url}' failed")
        self.url = url


class UpstreamUnparseableError(ScrapehouseError):
    """Raised when the fetched document cannot be evaluated against the parsing model.

    Args:
        message: Description of the extraction failure.
    """

    kind = "upstream_unparseable"

    def __init__(self, message: str) -> None:
        super().__init__(f"Parsing failed: {message}")

"""Structured JSON logging configuration using structlog.

Call ``configure_logging()`` once at application startup in ``api/main.py``.
Modules then use structlog directly::

    import structlog
    logger = structlog.get_logger(__name__)
    logger.info("scraper_created", scraper_id=str(scraper.id))

A ``request_id`` context variable is populated by the request-logging
middleware in ``api/main.py`` and merged into every log record emitted
during that request's lifetime.
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import structlog
from structlog.types import EventDict, WrappedLogger

# ---------------------------------------------------------------------------
# Context variable, set by the HTTP middleware and read by the log processor
# ---------------------------------------------------------------------------

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
"""Per-request ID propagated from the HTTP middleware to log processors."""


# ---------------------------------------------------------------------------
# Custom processors
# ---------------------------------------------------------------------------


_SECRET_SUBSTRINGS: frozenset[str] = frozenset({
    "api_key",
    "password",
    "secret",
    "token",
    "bearer",
    "authorization",
    "api-key",
    "cookie",
})
"""Lower-cased substrings that identify log event-dict keys whose values
must be redacted before the record reaches any renderer."""


_REDACTED = "[REDACTED]"


def _is_secret(key: object) -> bool:
    lowered = str(key).lower()
    return any(secret in lowered for secret in _SECRET_SUBSTRINGS)


def _scrub_url(value: str) -> str:
    """Mask userinfo and secret query parameters in a logged URL.

    Scrape targets are user supplied and may embed credentials, e.g.
    ``https://user:pw@host/feed?api_key=...``.  URLs without either are
    returned unchanged.
    """
    try:
        parts = urlsplit(value)
    except ValueError:
        return value
    query = parse_qsl(parts.query, keep_blank_values=True)
    has_userinfo = "@" in parts.netloc
    if not has_userinfo and not any(_is_secret(name) for name, _ in query):
        return value

    netloc = parts.netloc.rpartition("@")[2]
    if has_userinfo:
        netloc = f"{_REDACTED}@{netloc}"
    masked = [(name, _REDACTED if _is_secret(name) else v) for name, v in query]
    return urlunsplit(parts._replace(netloc=netloc, query=urlencode(masked, safe="[]")))


def _redact_secrets(
    logger: WrappedLogger,  # noqa: ARG001
    method_name: str,  # noqa: ARG001
    event_dict: EventDict,
) -> EventDict:
    """Replace values of secret-bearing keys with a redaction marker.

    Keys are matched case-insensitively against :data:`_SECRET_SUBSTRINGS`,
    at the top level and one level into nested ``dict`` values (headers).
    String values under keys ending in ``url`` are passed through
    :func:`_scrub_url`.

    Args:
        logger: The wrapped logger instance (unused).
        method_name: The log method name (unused).
        event_dict: Mutable event dictionary being assembled.

    Returns:
        The event dict with sensitive values replaced by ``"[REDACTED]"``.
    """
    for key, val in list(event_dict.items()):
        if _is_secret(key):
            event_dict[key] = _REDACTED
        elif isinstance(val, str) and key.lower().endswith("url"):
            event_dict[key] = _scrub_url(val)
        elif isinstance(val, dict):
            for nested_key in list(val.keys()):
                if _is_secret(nested_key):
                    val[nested_key] = _REDACTED
    return event_dict


def _inject_request_id(
    logger: WrappedLogger,  # noqa: ARG001
    method_name: str,  # noqa: ARG001
    event_dict: EventDict,
) -> EventDict:
    """Inject the current request ID into the log event dict if set."""
    rid = request_id_var.get()
    if rid is not None and "request_id" not in event_dict:
        event_dict["request_id"] = rid
    return event_dict


# ---------------------------------------------------------------------------
# Public configuration entry-point
# ---------------------------------------------------------------------------


def configure_logging(log_level: str = "INFO") -> None:
    """Configure structlog with JSON output for production.

    With ``log_level != "DEBUG"`` records are rendered as newline-delimited
    JSON; with ``"DEBUG"`` structlog's ``ConsoleRenderer`` is used instead.

    Every record carries ``timestamp``, ``level``, ``logger``, ``event`` and,
    inside a request, ``request_id``.

    Calling this function more than once replaces the previous configuration.

    Args:
        log_level: Logging verbosity string.  One of ``"DEBUG"``, ``"INFO"``,
            ``"WARNING"``, ``"ERROR"``, ``"CRITICAL"``.  Case-insensitive.
    """
    level_upper = log_level.upper()
    numeric_level = getattr(logging, level_upper, logging.INFO)
    is_development = level_upper == "DEBUG"

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        _inject_request_id,
        _redact_secrets,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if is_development:
        final_renderer: structlog.types.Processor = structlog.dev.ConsoleRenderer(
            colors=True,
        )
    else:
        final_renderer = structlog.processors.JSONRenderer()

    # Route stdlib ``logging`` records (uvicorn, sqlalchemy, ...) through the
    # same processor chain.
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            final_renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(numeric_level)

    if not is_development:
        for noisy_logger in ("uvicorn.access", "httpx", "httpcore"):
            logging.getLogger(noisy_logger).setLevel(logging.WARNING)

    structlog.configure(
        processors=shared_processors
        + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

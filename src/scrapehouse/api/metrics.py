"""Prometheus metrics for Scrapehouse.

All metrics are module-level singletons registered on the default
``REGISTRY``.

Metrics defined here:

  scraper_executions_total{mode, outcome}
      Counter — scraper executions by mode (stored, dynamic) and outcome
      (success, or the error kind that ended the run).

  scraper_phase_duration_seconds{phase}
      Histogram — duration of the request and parsing phases of successful
      executions.

  http_requests_total{method, path, status}
      Counter — HTTP requests handled by the FastAPI application.

  http_request_duration_seconds{method, path}
      Histogram — HTTP request latency in seconds.

Usage::

    from scrapehouse.api.metrics import scraper_executions_total
    scraper_executions_total.labels(mode="stored", outcome="success").inc()
"""

from __future__ import annotations

from prometheus_client import Counter, Histogram

# ---------------------------------------------------------------------------
# Scraper execution metrics (populated in scraper/executor.py)
# ---------------------------------------------------------------------------

scraper_executions_total: Counter = Counter(
    "scraper_executions_total",
    "Scraper executions by mode and outcome.",
    labelnames=["mode", "outcome"],
)
"""Labels:
  mode:    stored or dynamic
  outcome: success, not_found, validation_failed, upstream_unreachable,
           upstream_unparseable
"""

scraper_phase_duration_seconds: Histogram = Histogram(
    "scraper_phase_duration_seconds",
    "Duration of scraper execution phases in seconds.",
    labelnames=["phase"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0],
)
"""Labels:
  phase: request or parsing
"""

# ---------------------------------------------------------------------------
# HTTP metrics (populated by middleware in main.py)
# ---------------------------------------------------------------------------

http_requests_total: Counter = Counter(
    "http_requests_total",
    "HTTP requests handled by the FastAPI application.",
    labelnames=["method", "path", "status"],
)
"""Labels:
  method: HTTP method (GET, POST, ...)
  path:   route template where available (``/scrapers/{scraper_id}``)
  status: HTTP response status code as string
"""

http_request_duration_seconds: Histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds.",
    labelnames=["method", "path"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)


# ---------------------------------------------------------------------------
# Response helper
# ---------------------------------------------------------------------------


def get_metrics_response() -> tuple[bytes, str]:
    """Generate a Prometheus text-format metrics response.

    Returns:
        A tuple of (body_bytes, content_type_string) suitable for constructing
        a FastAPI ``Response`` object.
    """
    from prometheus_client import CONTENT_TYPE_LATEST, generate_latest  # noqa: PLC0415

    return generate_latest(), CONTENT_TYPE_LATEST

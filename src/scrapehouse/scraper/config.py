"""Constants and tuning parameters for the scraper execution pipeline."""

from __future__ import annotations

# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------

#: HTTP method used when a scraper declares no ``request_config.method``.
DEFAULT_METHOD: str = "GET"

#: Methods a scraper may declare in its ``request_config``.
SUPPORTED_METHODS: frozenset[str] = frozenset({"GET", "POST", "HEAD", "OPTIONS"})

#: Response status codes that trigger another attempt while the retry budget
#: lasts.  The final response is returned as-is once the budget is spent.
RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({429, 500, 502, 503, 504})

# ---------------------------------------------------------------------------
# Playwright
# ---------------------------------------------------------------------------

#: Navigation milestone awaited before the page source is captured.
PLAYWRIGHT_WAIT_UNTIL: str = "networkidle"

# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------

#: Extractor applied to a matched node when a field declares none.
DEFAULT_EXTRACTOR: str = "text"

#: Prefix of the attribute extractor, e.g. ``"attribute:href"``.
ATTRIBUTE_EXTRACTOR_PREFIX: str = "attribute:"

#: Python-Markdown extensions enabled when rendering markdown documents.
MARKDOWN_EXTENSIONS: tuple[str, ...] = ("tables", "fenced_code")

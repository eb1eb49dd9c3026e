"""Shared slowapi rate-limiter singleton.

Keeping the ``Limiter`` instance in its own module avoids the circular
import that would arise if route modules imported from ``main.py``.

Usage in route modules::

    from scrapehouse.api.limiter import execute_rate_limit, limiter

    @router.post("/{scraper_id}/execute")
    @limiter.limit(execute_rate_limit)
    async def execute_scraper(request: Request, ...):
        ...

The ``request`` parameter **must** be present in the route function
signature for slowapi to resolve the rate-limit key.

``main.create_app()`` attaches the limiter to ``app.state`` and registers
``SlowAPIMiddleware`` plus the 429 handler.
"""

from __future__ import annotations

from slowapi import Limiter
from slowapi.util import get_remote_address

from scrapehouse.config.settings import get_settings

limiter: Limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["100/minute"],
    enabled=get_settings().rate_limit_enabled,
)
"""Global rate-limiter instance.

Default limit: 100 requests/minute per IP address.  The execute endpoints
apply the stricter :func:`execute_rate_limit`.
"""


def execute_rate_limit() -> str:
    """Limit string for the scraper execute endpoints, read from settings."""
    return get_settings().execute_rate_limit

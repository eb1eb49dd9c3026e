"""FastAPI application factory and entry point.

Creates the application instance, registers middleware and exception
handlers, and mounts the route routers.

Usage::

    # Development server (from project root)
    uvicorn scrapehouse.api.main:app --reload

    # Production
    gunicorn scrapehouse.api.main:app -k uvicorn.workers.UvicornWorker
"""

from __future__ import annotations

import time
import uuid
from typing import Callable

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from scrapehouse.api.errors import register_exception_handlers
from scrapehouse.api.limiter import limiter
from scrapehouse.config.settings import get_settings
from scrapehouse.core.logging_config import configure_logging, request_id_var

# ---------------------------------------------------------------------------
# Logging configuration, applied once at import time so that records emitted
# during app construction are captured.  create_app() re-applies the level.
# ---------------------------------------------------------------------------

configure_logging("INFO")

logger = structlog.get_logger(__name__)


def _route_template(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Build and configure the FastAPI application.

    Separated from the module-level ``app`` singleton so that tests can
    call ``create_app()`` with a patched settings environment.

    Returns:
        A fully configured ``FastAPI`` instance.
    """
    settings = get_settings()

    configure_logging(settings.log_level)

    application = FastAPI(
        title=settings.app_name,
        description=(
            "Multi-tenant scraping backend: reusable HTTP client presets, "
            "declarative parsing models and on-demand scraper execution."
        ),
        version="0.1.0",
        debug=settings.debug,
    )

    # ---- Middleware --------------------------------------------------------

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.state.limiter = limiter
    application.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)  # type: ignore[arg-type]
    application.add_middleware(SlowAPIMiddleware)

    register_exception_handlers(application)

    # ---- Request logging middleware ----------------------------------------

    @application.middleware("http")
    async def request_logging_middleware(
        request: Request, call_next: Callable
    ) -> Response:
        """Log every request with its status and duration.

        Binds a unique ``request_id`` to the structlog context so that all
        log lines emitted during a request can be correlated, and echoes it
        back in the ``X-Request-ID`` response header.
        """
        request_id = str(uuid.uuid4())
        request_id_var.set(request_id)
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        start = time.perf_counter()
        response = None
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error("unhandled_exception", exc_info=exc)
            raise
        finally:
            elapsed = time.perf_counter() - start
            status_code = getattr(response, "status_code", 500)
            log_fn = logger.warning if status_code >= 400 else logger.info
            log_fn(
                "request_complete",
                status_code=status_code,
                elapsed_ms=round(elapsed * 1000, 2),
            )
            if settings.metrics_enabled:
                from scrapehouse.api.metrics import (  # noqa: PLC0415
                    http_request_duration_seconds,
                    http_requests_total,
                )

                path = _route_template(request)
                http_requests_total.labels(
                    method=request.method, path=path, status=str(status_code)
                ).inc()
                http_request_duration_seconds.labels(
                    method=request.method, path=path
                ).observe(elapsed)

        response.headers["X-Request-ID"] = request_id
        return response

    # ---- Routers ------------------------------------------------------------

    from scrapehouse.api.routes import (  # noqa: PLC0415
        clients,
        health as health_routes,
        users,
    )
    from scrapehouse.api.routes.auth import auth_router  # noqa: PLC0415
    from scrapehouse.scraper.router import router as scrapers_router  # noqa: PLC0415

    application.include_router(auth_router, prefix="/auth")
    application.include_router(users.router, prefix="/users", tags=["users"])
    application.include_router(clients.router, prefix="/clients", tags=["clients"])
    application.include_router(scrapers_router, prefix="/scrapers", tags=["scrapers"])
    application.include_router(health_routes.router)

    # ---- Lifecycle events -------------------------------------------------

    @application.on_event("startup")
    async def on_startup() -> None:
        logger.info(
            "application_startup",
            app_name=settings.app_name,
            debug=settings.debug,
            log_level=settings.log_level,
        )

    @application.on_event("shutdown")
    async def on_shutdown() -> None:
        logger.info("application_shutdown")

    # ---- System endpoints -------------------------------------------------

    @application.get("/health", tags=["system"])
    async def health() -> JSONResponse:
        """Minimal liveness status; ``/api/health`` also checks the database."""
        return JSONResponse({"status": "ok"})

    if settings.metrics_enabled:

        @application.get("/metrics", tags=["system"], include_in_schema=False)
        async def metrics() -> Response:
            from scrapehouse.api.metrics import get_metrics_response  # noqa: PLC0415

            body, content_type = get_metrics_response()
            return Response(content=body, media_type=content_type)

    return application


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

app = create_app()
"""The FastAPI application instance passed to Uvicorn / Gunicorn."""

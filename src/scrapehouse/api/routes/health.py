"""Health check route handlers for the Scrapehouse API.

``GET /api/health``
    Shallow liveness check: verifies the process is alive and can reach the
    database (``SELECT 1``).  Always returns HTTP 200; the ``status`` field
    distinguishes ``"ok"`` from ``"degraded"``.

This endpoint is diagnostic and never raises HTTP 5xx errors.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

import sqlalchemy as sa
from fastapi import APIRouter
from fastapi.responses import JSONResponse

from scrapehouse.core.database import AsyncSessionLocal

logger = logging.getLogger(__name__)

router = APIRouter(tags=["system"])


async def _check_database() -> str:
    """Run ``SELECT 1`` against the configured database.

    Returns:
        ``"ok"`` if the query succeeds, ``"error"`` otherwise.
    """
    try:
        async with AsyncSessionLocal() as session:
            await session.execute(sa.text("SELECT 1"))
        return "ok"
    except Exception:
        logger.exception("Health check: database unreachable")
        return "error"


@router.get("/api/health", include_in_schema=True)
async def system_health() -> JSONResponse:
    """Return process-level health including database connectivity.

    Returns:
        JSON with keys: ``status``, ``version``, ``database``, ``timestamp``.
    """
    db_status = await _check_database()
    payload = {
        "status": "ok" if db_status == "ok" else "degraded",
        "version": "0.1.0",
        "database": db_status,
        "timestamp": datetime.now(UTC).isoformat(),
    }
    logger.info("system_health_check", extra={"health": payload})
    return JSONResponse(payload)

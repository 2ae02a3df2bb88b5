"""Health check endpoints for the scanner API v1.

Provides liveness and readiness probes for container deployments.  The
readiness check reports whether the scanner and its store were wired up
at startup.
"""

from __future__ import annotations

import time

import structlog
from fastapi import APIRouter, Request
from pydantic import BaseModel

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float
    store_backend: str | None = None


class ReadinessResponse(BaseModel):
    """Readiness check response with individual component statuses."""

    status: str
    checks: dict[str, str]


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Liveness probe.

    Always 200 while the process serves requests; reports which store
    backend was selected at startup without contacting it.
    """
    start_time: float = getattr(request.app.state, "start_time", time.time())
    uptime = time.time() - start_time

    return HealthResponse(
        status="healthy",
        version=request.app.version,
        uptime_seconds=round(uptime, 2),
        store_backend=getattr(request.app.state, "store_backend", None),
    )


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check(request: Request) -> ReadinessResponse:
    """Readiness probe: scanner, store backend and trusted-source list."""
    checks: dict[str, str] = {}

    scanner = getattr(request.app.state, "scanner", None)
    checks["scanner"] = "ok" if scanner is not None else "not_initialised"

    backend = getattr(request.app.state, "store_backend", None)
    checks["store"] = backend or "not_configured"

    fetcher = getattr(request.app.state, "fetcher", None)
    if fetcher is not None:
        checks["trusted_domains"] = str(len(fetcher.trusted_domains))
    else:
        checks["trusted_domains"] = "not_configured"

    status = "ready" if scanner is not None and backend else "degraded"

    logger.info("health.readiness_check", status=status, checks=checks)

    return ReadinessResponse(status=status, checks=checks)

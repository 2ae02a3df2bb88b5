"""Politica AI scanner endpoint.

``POST /api/v1/politica-ai-scanner`` runs one verification scan of a
politician or political party and returns the scan result together with
the id of its log entry.

Every failure -- unknown target, persistence error, malformed body --
comes back as ``500 {"error": message}`` without a partial result.
Callers must treat any non-200 response as "no update applied"; the
scan log may still hold a ``pending`` entry for the attempt.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import ORJSONResponse
from pydantic import BaseModel, ValidationError

from src.models.verification import ScanResult, TargetType

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

router = APIRouter(tags=["scanner"])


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------


class ScanRequest(BaseModel):
    target_type: TargetType
    target_id: str
    manual_scan: bool = False


class ScanResponse(BaseModel):
    success: bool = True
    scan_results: ScanResult
    log_id: str


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _error(message: str) -> ORJSONResponse:
    return ORJSONResponse(status_code=500, content={"error": message})


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("/politica-ai-scanner", response_model=ScanResponse)
async def run_scan(request: Request) -> Any:
    """Scan one target record and return the result and log id."""
    try:
        payload = ScanRequest.model_validate(await request.json())
    except ValidationError as exc:
        logger.warning("api.scanner.invalid_request", errors=exc.errors(include_url=False))
        return _error(f"Invalid request: {exc.error_count()} validation error(s)")
    except ValueError:
        return _error("Invalid request: body is not valid JSON")

    scanner = getattr(request.app.state, "scanner", None)
    if scanner is None:
        return _error("Scanner not initialised.")

    try:
        outcome = await scanner.scan(
            payload.target_type,
            payload.target_id,
            manual_scan=payload.manual_scan,
        )
    except Exception as exc:
        logger.error(
            "api.scanner.failed",
            target_type=payload.target_type,
            target_id=payload.target_id,
            error=str(exc),
            exc_info=True,
        )
        return _error(str(exc))

    logger.info(
        "api.scanner.complete",
        target_id=payload.target_id,
        status=outcome.result.status,
        log_id=outcome.log_id,
    )
    return ScanResponse(scan_results=outcome.result, log_id=outcome.log_id)

"""Politica scanner FastAPI application entry point.

Creates the FastAPI app, configures CORS, includes routers, and manages
the lifecycle of the scanner's collaborators (store, document fetcher,
scan orchestrator).
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from config.settings import Settings, settings
from src.api.router import api_router

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Structured logging configuration
# ---------------------------------------------------------------------------


def _configure_logging() -> None:
    """Set up structlog with JSON or console rendering based on settings."""
    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.log_format == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            structlog.get_level_from_name(settings.log_level),
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Service wiring
# ---------------------------------------------------------------------------


def build_store(config: Settings):
    """Create the persistence backend selected by ``store_backend``."""
    if config.store_backend == "supabase":
        if not config.supabase_url or not config.supabase_service_role_key:
            raise RuntimeError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required for the supabase store")
        from src.services.store import SupabaseVerificationStore

        return SupabaseVerificationStore(
            url=config.supabase_url,
            service_role_key=config.supabase_service_role_key,
            retry_attempts=config.store_retry_attempts,
        )

    from src.services.store import InMemoryVerificationStore

    return InMemoryVerificationStore()


# ---------------------------------------------------------------------------
# Application lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage startup and shutdown of the scanner services.

    On startup:
      1. Configure logging
      2. Initialise the store backend
      3. Initialise the document fetcher with the trusted domains
      4. Create the ScanOrchestrator and store everything on ``app.state``

    On shutdown:
      - Close the HTTP clients held by the fetcher and the store.
    """
    _configure_logging()
    logger.info("app.startup", env=settings.env, store_backend=settings.store_backend)

    app.state.start_time = time.time()

    # -- 1. Store -----------------------------------------------------------
    store = build_store(settings)
    app.state.store = store
    app.state.store_backend = settings.store_backend
    logger.info("app.store_initialised", backend=settings.store_backend)

    # -- 2. Document fetcher ------------------------------------------------
    from src.services.verification.fetcher import DocumentFetcher

    fetcher = DocumentFetcher(
        trusted_domains=settings.trusted_domains,
        search_url_templates=settings.search_url_templates,
        timeout=settings.fetch_timeout_seconds,
        max_relevant_sentences=settings.max_relevant_sentences,
    )
    app.state.fetcher = fetcher
    logger.info("app.fetcher_initialised", trusted_domains=sorted(fetcher.trusted_domains))

    # -- 3. Scan orchestrator -----------------------------------------------
    from src.services.verification.engine import ScanOrchestrator, ScanThresholds

    app.state.scanner = ScanOrchestrator(
        store=store,
        fetcher=fetcher,
        thresholds=ScanThresholds(
            auto_apply=settings.auto_apply_threshold,
            dispute=settings.dispute_threshold,
            verified=settings.verified_threshold,
            name_match=settings.name_match_threshold,
        ),
    )
    logger.info("app.startup_complete")

    yield

    # -- Shutdown -----------------------------------------------------------
    logger.info("app.shutdown_start")
    await fetcher.close()
    close = getattr(store, "close", None)
    if close is not None:
        await close()
    logger.info("app.shutdown_complete")


# ---------------------------------------------------------------------------
# FastAPI application
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Politica Scanner API",
    description=(
        "Verifies politician and political-party records against trusted "
        "government sources and keeps a verification audit trail."
    ),
    version="0.1.0",
    lifespan=lifespan,
    default_response_class=ORJSONResponse,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
)

# -- CORS middleware --------------------------------------------------------
# allow_credentials must stay False while allow_origins is ["*"].
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)

# -- Include routers -------------------------------------------------------
app.include_router(api_router)


@app.get("/api", response_class=ORJSONResponse)
async def api_info() -> dict:
    """API information endpoint."""
    return {
        "name": "Politica Scanner API",
        "version": app.version,
        "docs": "/docs",
        "health": "/api/v1/health",
        "trusted_domains": list(settings.trusted_domains),
        "endpoints": {
            "scanner": "/api/v1/politica-ai-scanner",
            "health": "/api/v1/health",
        },
    }

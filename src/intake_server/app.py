"""Application factory and CLI entry point.

``create_app()`` builds the FastAPI application with:
  - Lifespan handler that loads the rule tables and wires the SDK once
  - A background task that drains the offline queue periodically
  - CORS middleware
  - Global exception handlers (SDK errors → 422/503/502, KeyError → 404)
  - All API routes mounted under ``/api/v1``
  - A ``/health`` endpoint for readiness probes

The ``cli()`` function is the ``intake-server`` console-script entry point.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from intake_db.engine import check_connection, dispose_engine
from intake_forms.config import load_settings as load_intake_settings
from intake_forms.errors import IntakeError
from intake_forms.orchestrator import SubmissionOrchestrator

from intake_server.components import build_components
from intake_server.config import ServerSettings, load_settings
from intake_server.errors import (
    generic_error_handler,
    intake_error_handler,
    key_error_handler,
)
from intake_server.routes import register_routes

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Background retrier
# ------------------------------------------------------------------

async def retry_loop(orchestrator: SubmissionOrchestrator, interval: float) -> None:
    """Drain the offline queue every ``interval`` seconds until cancelled."""
    while True:
        await asyncio.sleep(interval)
        try:
            report = await orchestrator.retry_pending()
        except IntakeError as exc:
            logger.warning("Offline queue pass failed: %s", exc)
            continue
        if report.delivered or report.failed:
            logger.info(
                "Offline queue pass: delivered=%d failed=%d remaining=%d",
                len(report.delivered), len(report.failed), report.remaining,
            )


# ------------------------------------------------------------------
# Lifespan — runs once at startup/shutdown
# ------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Initialise shared resources at startup, tear down on shutdown.

    Startup:
      1. Load the YAML rule tables and build the SDK components
      2. Stash them on ``app.state`` for dependency injection
      3. Start the offline-queue retrier (unless disabled)

    Shutdown:
      1. Stop the retrier
      2. Wait for in-flight submissions to finish dispatching
      3. Dispose the database engine's connection pool
    """
    settings: ServerSettings = app.state.settings
    intake_settings = load_intake_settings()

    components = build_components(intake_settings, ruleset_dir=settings.ruleset_dir)
    logger.info("Intake components ready (state file: %s)", intake_settings.state_path)
    app.state.components = components

    retrier: asyncio.Task | None = None
    if settings.background_retry:
        retrier = asyncio.create_task(
            retry_loop(components.orchestrator, intake_settings.retry_interval)
        )

    yield

    # --- Shutdown ---
    if retrier is not None:
        retrier.cancel()
        with suppress(asyncio.CancelledError):
            await retrier
    await components.orchestrator.aclose()
    await dispose_engine()
    logger.info("Database engine disposed")


# ------------------------------------------------------------------
# Factory
# ------------------------------------------------------------------

def create_app(settings: ServerSettings | None = None) -> FastAPI:
    """Build and return the configured FastAPI application."""
    if settings is None:
        settings = load_settings()

    # --- Configure logging ---
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = FastAPI(
        title="Intake API Server",
        description="REST API for the TMS clinic intake forms",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Store settings so the lifespan handler can read them
    app.state.settings = settings

    # --- CORS ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --- Exception handlers ---
    app.add_exception_handler(IntakeError, intake_error_handler)
    app.add_exception_handler(KeyError, key_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)

    # --- Health check (outside /api/v1 prefix) ---
    @app.get("/health")
    async def health() -> dict:
        """Readiness probe — verifies DB connectivity."""
        try:
            await check_connection()
            return {"status": "ok"}
        except Exception as exc:
            logger.error("Health check failed: %s", exc)
            return {"status": "error", "detail": "database unavailable"}

    # --- Mount all API routes ---
    register_routes(app)

    return app


# ------------------------------------------------------------------
# Module-level ASGI export (for uvicorn intake_server.app:app)
# ------------------------------------------------------------------
app = create_app()


# ------------------------------------------------------------------
# CLI entry point
# ------------------------------------------------------------------

def cli() -> None:
    """Console-script entry point: ``intake-server``."""
    import uvicorn

    settings = load_settings()
    uvicorn.run(
        "intake_server.app:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=False,
    )

"""FastAPI application entry point for the Tron facilitator.

Lifecycle:
    1. Startup: Initialize logging, the facilitator (node clients) and the
       settled-transaction registry.
    2. Running: Serve /verify, /settle, /supported and /health.
    3. Shutdown: Close node and Redis connections gracefully.

Run with:
    uvicorn tron_facilitator.main:app --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

from tron_facilitator import __version__
from tron_facilitator.config import get_settings
from tron_facilitator.logging_config import get_logger, setup_logging

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown lifecycle."""
    settings = get_settings()

    # 1. Setup structured logging
    setup_logging(
        log_level=settings.app_log_level,
        json_logs=not settings.is_development,
    )
    logger = get_logger(__name__)
    logger.info(
        "app.starting",
        env=settings.app_env,
        debug=settings.app_debug,
        networks=settings.facilitator_network_list,
    )

    # 2. Initialize the facilitator
    from tron_facilitator.services.facilitator_service import (
        close_facilitator,
        init_facilitator,
    )

    init_facilitator()

    # 3. Initialize the settled-transaction registry
    from tron_facilitator.infrastructure.settlement_registry import (
        InMemorySettlementRegistry,
        close_registry,
        init_registry,
        use_registry,
    )

    try:
        await init_registry()
    except Exception as exc:
        # Replay protection degrades to this process only
        logger.warning("app.redis_unavailable", error=str(exc), fallback="memory")
        use_registry(InMemorySettlementRegistry(settings.redis_settlement_ttl_seconds))

    logger.info("app.started", host=settings.app_host, port=settings.app_port)

    yield

    # Shutdown
    logger.info("app.shutting_down")
    await close_facilitator()
    await close_registry()
    logger.info("app.stopped")


def create_app() -> FastAPI:
    """Application factory — creates and configures the FastAPI app."""
    settings = get_settings()

    app = FastAPI(
        title="Tron Facilitator",
        description=(
            "x402 exact-scheme facilitator for TRC-20 payments on Tron: "
            "verify signed transfers and settle them on-chain."
        ),
        version=__version__,
        lifespan=lifespan,
        debug=settings.app_debug,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    # --- Middleware ---
    from tron_facilitator.api.middleware import setup_middleware

    setup_middleware(app)

    # --- REST API Routes ---
    from tron_facilitator.api.routes.facilitator import router as facilitator_router
    from tron_facilitator.api.routes.health import router as health_router

    app.include_router(health_router)
    app.include_router(facilitator_router)

    return app


# The app instance used by Uvicorn
app = create_app()

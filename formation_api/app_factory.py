"""Application factory and context for the Formation API.

All runtime state lives in an ``AppContext`` rather than module globals, so
each test (or app instance) gets its own compute host.

Usage:
------
    # Production (settings from environment)
    app = create_app()

    # Tests
    app = create_app(compute_mode="inline", production_mode=False)
"""

import logging
import os
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from formation.compute import BaseComputeHost, create_compute_host
from formation.config.compute import ComputeConfig
from formation_api import __version__
from formation_api.logging_config import configure_logging

DEFAULT_API_PORT = 8000


@dataclass
class AppContext:
    """Runtime context holding all application state."""

    # Configuration
    compute_config: ComputeConfig = field(default_factory=ComputeConfig)
    api_port: int = field(
        default_factory=lambda: int(os.getenv("FORMATION_API_PORT", str(DEFAULT_API_PORT)))
    )
    production_mode: bool = field(
        default_factory=lambda: os.getenv("PRODUCTION", "false").lower() == "true"
    )
    allowed_origins: list = field(
        default_factory=lambda: os.getenv("ALLOWED_ORIGINS", "*").split(",")
    )

    # Runtime state (initialized during lifespan)
    compute_host: Optional[BaseComputeHost] = None

    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("formation.api"))

    def require_compute_host(self) -> BaseComputeHost:
        if self.compute_host is None or not self.compute_host.healthy:
            raise HTTPException(status_code=503, detail="Compute host is not running")
        return self.compute_host


def create_app(
    *,
    compute_mode: Optional[str] = None,
    production_mode: Optional[bool] = None,
    context: Optional[AppContext] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        compute_mode: Override compute mode (default: FORMATION_COMPUTE_MODE env var)
        production_mode: Override production mode (default: PRODUCTION env var)
        context: Pre-configured AppContext (for testing). If None, creates a new one.

    Returns:
        Configured FastAPI application with context attached as app.state.context
    """
    logger = configure_logging()

    if context is None:
        context = AppContext()

    if compute_mode is not None:
        context.compute_config = ComputeConfig(
            mode=compute_mode,
            timeout_seconds=context.compute_config.timeout_seconds,
            start_method=context.compute_config.start_method,
        )
    if production_mode is not None:
        context.production_mode = production_mode

    context.logger = logger

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Start the compute host on startup and tear it down on shutdown."""
        ctx = app.state.context
        try:
            ctx.compute_host = create_compute_host(config=ctx.compute_config)
            ctx.logger.info(
                "Compute host ready (mode=%s, timeout=%gs)",
                ctx.compute_host.mode,
                ctx.compute_host.timeout_seconds,
            )
            yield
            ctx.logger.info("LIFESPAN: Received shutdown signal")
        except Exception as e:
            ctx.logger.error(f"Exception in lifespan startup: {e}", exc_info=True)
            raise
        finally:
            if ctx.compute_host is not None:
                ctx.compute_host.terminate()
                ctx.compute_host = None

    app = FastAPI(
        title="Formation Assignment API",
        version=__version__,
        lifespan=lifespan,
        docs_url=None if context.production_mode else "/docs",
        redoc_url=None if context.production_mode else "/redoc",
    )

    app.state.context = context

    app.add_middleware(
        CORSMiddleware,
        allow_origins=context.allowed_origins if context.production_mode else ["*"],
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    _setup_routers(app, context)
    return app


def _setup_routers(app: FastAPI, ctx: AppContext) -> None:
    """Include all API routers."""
    from formation_api.routers import health
    from formation_api.routers.formations import create_formations_router

    app.include_router(health.setup_router(ctx))
    app.include_router(create_formations_router(ctx))

    ctx.logger.info("All API routers configured successfully")

"""FastAPI application entry point for CertAnchor."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from certanchor import __version__
from certanchor.api.middleware.logging_middleware import LoggingMiddleware
from certanchor.api.middleware.metrics_middleware import MetricsMiddleware
from certanchor.api.routes.certificates import router as certificates_router
from certanchor.api.routes.health import router as health_router
from certanchor.api.routes.metrics import router as metrics_router
from certanchor.api.startup import (
    configure_logging,
    record_service_startup,
    start_services,
    stop_services,
)
from certanchor.bootstrap.anchoring import get_app_config, set_app_config
from certanchor.config.app_config import AppConfig


def create_app(config: Optional[AppConfig] = None) -> FastAPI:
    """Build the application.

    Args:
        config: Explicit configuration; read from the environment otherwise.
    """
    if config is not None:
        set_app_config(config)
    config = get_app_config()

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        configure_logging(config)
        await start_services(config)
        record_service_startup()
        try:
            yield
        finally:
            await stop_services()

    application = FastAPI(
        title="CertAnchor API",
        description="Anchors certificate fingerprints on a public ledger",
        version=__version__,
        lifespan=lifespan,
    )

    # Added last runs first: correlation id is set before metrics and routes
    application.add_middleware(MetricsMiddleware)
    application.add_middleware(LoggingMiddleware)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.cors_allow_origins),
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        expose_headers=["X-Correlation-ID", "Retry-After"],
    )

    application.include_router(certificates_router)
    application.include_router(health_router)
    application.include_router(metrics_router)
    return application


load_dotenv()
app = create_app()

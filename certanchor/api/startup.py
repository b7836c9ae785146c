"""Startup hooks for the CertAnchor API.

1. Configure structured logging from ENVIRONMENT and LOG_LEVEL
2. Build the services and start the nonce sequencer
3. Record service startup for uptime metrics

A misconfigured backend (ConfigurationError) or an unreachable ledger at
startup stops the application from serving requests.
"""

from structlog import get_logger

from certanchor.bootstrap.anchoring import start_anchoring, stop_anchoring
from certanchor.bootstrap.logging import configure_structlog
from certanchor.bootstrap.metrics import get_metrics_collector
from certanchor.config.app_config import AppConfig

SERVICE_NAME = "api"

logger = get_logger()


def configure_logging(config: AppConfig) -> None:
    """Configure structlog: JSON in production, console otherwise."""
    configure_structlog(environment=config.environment, log_level=config.log_level)
    logger.info(
        "logging_configured",
        environment=config.environment,
        log_level=config.log_level,
    )


def record_service_startup() -> None:
    get_metrics_collector().record_startup(SERVICE_NAME)
    logger.info("service_startup_recorded", service=SERVICE_NAME)


async def start_services(config: AppConfig) -> None:
    """Start the anchoring pipeline.

    Raises:
        ConfigurationError: A selected backend is missing settings.
        LedgerUnavailableError: The signer's position could not be read.
    """
    await start_anchoring()
    logger.info(
        "anchoring_started",
        ledger_backend=config.ledger.backend,
        storage_backend=config.storage.backend,
    )


async def stop_services() -> None:
    await stop_anchoring()
    logger.info("anchoring_stopped")

"""structlog configuration.

Production emits one JSON object per line:

    {
        "timestamp": "2026-01-01T00:00:00.000000Z",
        "level": "info",
        "event": "anchor_confirmed",
        "correlation_id": "uuid",
        "component": "anchoring",
        "fingerprint": "...",
        ...
    }

Any other environment gets the colored console renderer.

Usage:
    from certanchor.infrastructure.observability import configure_structlog

    configure_structlog(environment="production", log_level="INFO")
"""

import logging
import os
from typing import Optional, cast

import structlog
from structlog.typing import Processor

from certanchor.application.observability.correlation import correlation_id_processor

LOG_LEVEL_ENV = "LOG_LEVEL"
DEFAULT_LOG_LEVEL = "INFO"


def _resolve_log_level(level_name: Optional[str]) -> int:
    name = (level_name or os.getenv(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL)).upper()
    return getattr(logging, name, logging.INFO)


def configure_structlog(
    environment: str = "production", log_level: Optional[str] = None
) -> None:
    """Configure structlog once at application startup.

    Args:
        environment: 'production' for JSON output, anything else for console.
        log_level: Level name; falls back to LOG_LEVEL, then INFO.
    """
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        cast(Processor, correlation_id_processor),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if environment == "production":
        final_processor: Processor = structlog.processors.JSONRenderer()
    else:
        final_processor = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors + [final_processor],
        wrapper_class=structlog.make_filtering_bound_logger(_resolve_log_level(log_level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

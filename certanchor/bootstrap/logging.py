"""Bootstrap wiring for logging configuration."""

from __future__ import annotations

from typing import Optional

from certanchor.infrastructure.observability import configure_structlog as _configure_structlog


def configure_structlog(environment: str, log_level: Optional[str] = None) -> None:
    """Configure structlog for the given environment."""
    _configure_structlog(environment=environment, log_level=log_level)


__all__ = ["configure_structlog"]

"""Observability infrastructure: structured logging setup.

Correlation ids live in certanchor.application.observability so services
can bind them without importing infrastructure; they are re-exported here
for the API layer.
"""

from certanchor.application.observability.correlation import (
    adopt_correlation_id,
    correlation_id_processor,
    generate_correlation_id,
    get_correlation_id,
    set_correlation_id,
)
from certanchor.infrastructure.observability.logging import configure_structlog

__all__: list[str] = [
    "adopt_correlation_id",
    "configure_structlog",
    "correlation_id_processor",
    "generate_correlation_id",
    "get_correlation_id",
    "set_correlation_id",
]

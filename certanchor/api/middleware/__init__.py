"""HTTP middleware."""

from certanchor.api.middleware.logging_middleware import LoggingMiddleware
from certanchor.api.middleware.metrics_middleware import MetricsMiddleware

__all__ = ["LoggingMiddleware", "MetricsMiddleware"]

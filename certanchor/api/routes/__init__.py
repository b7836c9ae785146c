"""API routers."""

from certanchor.api.routes.certificates import router as certificates_router
from certanchor.api.routes.health import router as health_router
from certanchor.api.routes.metrics import router as metrics_router

__all__ = ["certificates_router", "health_router", "metrics_router"]

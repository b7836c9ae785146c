"""API request/response models."""

from certanchor.api.models.certificates import (
    AnchorResponse,
    ProblemDetail,
    VerificationResponse,
)
from certanchor.api.models.health import HealthResponse, ReadinessResponse

__all__ = [
    "AnchorResponse",
    "HealthResponse",
    "ProblemDetail",
    "ReadinessResponse",
    "VerificationResponse",
]

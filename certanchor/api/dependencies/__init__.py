"""FastAPI dependencies."""

from certanchor.api.dependencies.certificates import (
    get_anchor_service,
    get_nonce_sequencer,
    get_verification_service,
)
from certanchor.api.dependencies.identity import get_caller_context

__all__ = [
    "get_anchor_service",
    "get_caller_context",
    "get_nonce_sequencer",
    "get_verification_service",
]

"""Certificate API dependencies.

Thin FastAPI-facing getters over the bootstrap singletons, so tests can
swap services with app.dependency_overrides.
"""

from certanchor.application.services.anchor_service import AnchorService
from certanchor.application.services.nonce_sequencer import NonceSequencer
from certanchor.application.services.verification_service import VerificationService
from certanchor.bootstrap.anchoring import (
    get_anchor_service as _get_anchor_service,
    get_nonce_sequencer as _get_nonce_sequencer,
    get_verification_service as _get_verification_service,
)


def get_anchor_service() -> AnchorService:
    return _get_anchor_service()


def get_verification_service() -> VerificationService:
    return _get_verification_service()


def get_nonce_sequencer() -> NonceSequencer:
    return _get_nonce_sequencer()

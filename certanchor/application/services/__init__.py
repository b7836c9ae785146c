"""Application services for CertAnchor."""

from certanchor.application.services.access_gate import AccessGate
from certanchor.application.services.anchor_service import AnchorService
from certanchor.application.services.fingerprint_service import (
    Sha256FingerprintService,
)
from certanchor.application.services.nonce_sequencer import NonceSequencer
from certanchor.application.services.verification_service import VerificationService

__all__: list[str] = [
    "AccessGate",
    "AnchorService",
    "NonceSequencer",
    "Sha256FingerprintService",
    "VerificationService",
]

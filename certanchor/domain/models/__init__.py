"""Domain models for CertAnchor."""

from certanchor.domain.models.access import AccessDecision
from certanchor.domain.models.anchor import (
    AnchorRecord,
    AnchorResult,
    LedgerReference,
    PendingSubmission,
)
from certanchor.domain.models.caller_context import CallerContext, Operation
from certanchor.domain.models.fingerprint import ContentFingerprint
from certanchor.domain.models.verification import VerificationResult

__all__: list[str] = [
    "AccessDecision",
    "AnchorRecord",
    "AnchorResult",
    "CallerContext",
    "ContentFingerprint",
    "LedgerReference",
    "Operation",
    "PendingSubmission",
    "VerificationResult",
]

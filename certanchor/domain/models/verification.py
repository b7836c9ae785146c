"""Verification result model."""

from dataclasses import dataclass

from certanchor.domain.models.fingerprint import ContentFingerprint


@dataclass(frozen=True)
class VerificationResult:
    """Answer to "was this document anchored?".

    Only produced when the ledger actually answered. An unreachable ledger
    raises LedgerUnavailableError instead of yielding anchored=False.

    Attributes:
        fingerprint: Fingerprint of the checked document.
        anchored: True if the ledger holds an anchor for the fingerprint.
    """

    fingerprint: ContentFingerprint
    anchored: bool

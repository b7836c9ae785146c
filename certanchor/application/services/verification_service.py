"""Verification service: does this document match an anchored fingerprint?

No identity is required. The only failure mode is an unreachable ledger,
which surfaces as LedgerUnavailableError and never as anchored=False.
Verification never enters the nonce sequencer, so it is never held up by
anchoring traffic.
"""

from __future__ import annotations

from certanchor.application.ports.fingerprint_computer import (
    FingerprintComputerProtocol,
)
from certanchor.application.ports.ledger_client import LedgerClientProtocol
from certanchor.application.services.base import LoggingMixin
from certanchor.domain.errors.ledger import LedgerUnavailableError
from certanchor.domain.models.fingerprint import ContentFingerprint
from certanchor.domain.models.verification import VerificationResult


class VerificationService(LoggingMixin):
    """Answers verification queries against the ledger's read path."""

    def __init__(
        self,
        fingerprint_computer: FingerprintComputerProtocol,
        ledger: LedgerClientProtocol,
    ) -> None:
        self._fingerprints = fingerprint_computer
        self._ledger = ledger
        self._init_logger(component="verification")

    async def verify(self, content: bytes) -> VerificationResult:
        """Fingerprint content and check the ledger for it.

        Raises:
            LedgerUnavailableError: The ledger could not answer.
        """
        return await self.verify_fingerprint(self._fingerprints.fingerprint(content))

    async def verify_fingerprint(self, fingerprint: ContentFingerprint) -> VerificationResult:
        """Check the ledger for a fingerprint the caller already holds.

        Raises:
            LedgerUnavailableError: The ledger could not answer.
        """
        log = self._log_operation("verify", fingerprint=fingerprint.hex())
        try:
            anchored = await self._ledger.query(fingerprint)
        except LedgerUnavailableError:
            log.warning("verification_unavailable")
            raise
        except Exception as exc:
            log.exception("verification_failed", error_type=type(exc).__name__)
            raise LedgerUnavailableError(
                "Ledger read failed", fingerprint=fingerprint.hex()
            ) from exc

        log.info("verification_completed", anchored=anchored)
        return VerificationResult(fingerprint=fingerprint, anchored=anchored)

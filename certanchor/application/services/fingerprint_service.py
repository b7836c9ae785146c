"""SHA-256 fingerprint service.

The digest algorithm and its hex encoding are part of the wire contract:
any other implementation hashing the same bytes with SHA-256 must produce
the same 64-character lowercase hex string that this service writes to the
ledger.

Usage:
    from certanchor.application.services.fingerprint_service import (
        Sha256FingerprintService,
    )

    service = Sha256FingerprintService()
    fp = service.fingerprint(b"CERT-A")
"""

from __future__ import annotations

import hashlib
import hmac

from certanchor.domain.models.fingerprint import FINGERPRINT_SIZE, ContentFingerprint


class Sha256FingerprintService:
    """SHA-256 implementation of FingerprintComputerProtocol.

    Stateless and pure; safe to share across requests and threads.

    Attributes:
        HASH_SIZE: Fixed output size in bytes (32).
    """

    HASH_SIZE: int = FINGERPRINT_SIZE

    def fingerprint(self, content: bytes) -> ContentFingerprint:
        """Hash raw document bytes to a ContentFingerprint.

        Args:
            content: Raw bytes; the empty sequence is valid input.

        Returns:
            32-byte SHA-256 fingerprint.
        """
        return ContentFingerprint(hashlib.sha256(content).digest())

    def fingerprint_hex(self, content: bytes) -> str:
        """Hash raw document bytes and return the hex wire form."""
        return self.fingerprint(content).hex()

    def matches(self, content: bytes, expected: ContentFingerprint) -> bool:
        """Constant-time check that content hashes to the expected fingerprint."""
        return hmac.compare_digest(self.fingerprint(content).digest, expected.digest)

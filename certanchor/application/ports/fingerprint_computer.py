"""Fingerprint computer port.

Developer Golden Rules:
1. DETERMINISM - Same bytes always produce the same fingerprint
2. 32 BYTES - SHA-256, no truncation, no keying
3. RAW BYTES - No normalization of the document before hashing
4. TOTAL - Every finite byte sequence (including empty) has a fingerprint
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from certanchor.domain.models.fingerprint import ContentFingerprint


@runtime_checkable
class FingerprintComputerProtocol(Protocol):
    """Protocol for computing content fingerprints."""

    def fingerprint(self, content: bytes) -> ContentFingerprint:
        """Compute the fingerprint of raw document bytes."""
        ...

    def fingerprint_hex(self, content: bytes) -> str:
        """Compute the fingerprint and return its hex wire form."""
        ...

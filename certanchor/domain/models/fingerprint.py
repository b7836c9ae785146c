"""Content fingerprint value object.

A fingerprint is the SHA-256 digest of a document's raw bytes. Equality is
byte equality. The wire representation is 64 lowercase hex characters, the
same string that is written to the ledger contract.

Usage:
    from certanchor.domain.models.fingerprint import ContentFingerprint

    fp = ContentFingerprint.from_hex("e3b0c442...")
    fp.hex()        # "e3b0c442..."
    fp.digest       # 32 raw bytes
"""

from __future__ import annotations

import re
from dataclasses import dataclass

FINGERPRINT_ALGORITHM = "sha256"
FINGERPRINT_SIZE = 32

_HEX_PATTERN = re.compile(r"^[0-9a-f]{64}$")


@dataclass(frozen=True)
class ContentFingerprint:
    """Fixed-length 256-bit digest of document bytes.

    Attributes:
        digest: The 32 raw digest bytes.
    """

    digest: bytes

    def __post_init__(self) -> None:
        """Validate digest length."""
        if not isinstance(self.digest, bytes):
            raise TypeError(f"digest must be bytes, got {type(self.digest).__name__}")
        if len(self.digest) != FINGERPRINT_SIZE:
            raise ValueError(
                f"digest must be {FINGERPRINT_SIZE} bytes, got {len(self.digest)}"
            )

    @classmethod
    def from_hex(cls, value: str) -> ContentFingerprint:
        """Parse a fingerprint from its hex wire form.

        Uppercase input and an optional ``0x`` prefix are accepted; the
        canonical form is always lowercase without prefix.

        Raises:
            ValueError: If value is not 64 hex characters.
        """
        normalized = value.strip().lower()
        if normalized.startswith("0x"):
            normalized = normalized[2:]
        if not _HEX_PATTERN.match(normalized):
            raise ValueError("fingerprint must be 64 hex characters")
        return cls(bytes.fromhex(normalized))

    def hex(self) -> str:
        """Return the canonical lowercase hex form."""
        return self.digest.hex()

    def __str__(self) -> str:
        return self.hex()

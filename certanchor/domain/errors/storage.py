"""Object store errors.

A store failure before any ledger write aborts the anchor (no orphaned
ledger entry for unpersisted content). A deferred store write that fails
after the ledger confirmed is a partial anchor and is reported as such.
"""

from __future__ import annotations

from certanchor.domain.exceptions import CertAnchorError


class ObjectStoreError(CertAnchorError):
    """Raised when the object store fails to persist a document.

    Attributes:
        key: Object key that was being written.
    """

    def __init__(self, message: str, key: str | None = None) -> None:
        self.key = key
        super().__init__(message)


class PartialAnchorError(CertAnchorError):
    """The ledger confirmed the fingerprint but the document was not stored.

    Never a clean success: the fingerprint is anchored, but the original
    bytes are missing from the object store and need reconciliation.

    Attributes:
        fingerprint: Hex fingerprint that was anchored.
        ledger_reference: Ledger transaction identifier of the anchor.
        key: Object key whose write failed.
    """

    def __init__(self, fingerprint: str, ledger_reference: str, key: str) -> None:
        self.fingerprint = fingerprint
        self.ledger_reference = ledger_reference
        self.key = key
        super().__init__(
            f"Fingerprint {fingerprint} anchored in {ledger_reference} "
            f"but document write to {key!r} failed"
        )

"""Ledger errors.

The taxonomy separates what the sequencer may retry from what it must
surface immediately:

- LedgerTransientError: network partition, congestion, not yet final.
  Retried on the same sequence number, then surfaced.
- LedgerRejectedError: the ledger refused the submission. Never retried
  with the same payload; a nonce mismatch (NONCE_MISMATCH_REASON) only
  means the sequence number was stale and is resolved by the sequencer;
  ALREADY_ANCHORED_REASON and REVERTED_REASON are checked against the
  ledger, since the fingerprint may have been stored by an earlier write.
- LedgerUnavailableError: the read path is down. Verification surfaces it
  instead of answering "not anchored".
"""

from __future__ import annotations

from certanchor.domain.exceptions import CertAnchorError

NONCE_MISMATCH_REASON = "nonce_mismatch"
ALREADY_ANCHORED_REASON = "already_anchored"
REVERTED_REASON = "reverted"


class LedgerError(CertAnchorError):
    """Base class for ledger errors."""

    pass


class LedgerTransientError(LedgerError):
    """Retryable ledger failure.

    Attributes:
        fingerprint: Hex fingerprint of the affected submission, if any.
        sequence: Sequence number that was in use, if any.
        attempts: Number of submission attempts made before surfacing.
    """

    def __init__(
        self,
        message: str,
        fingerprint: str | None = None,
        sequence: int | None = None,
        attempts: int = 1,
    ) -> None:
        self.fingerprint = fingerprint
        self.sequence = sequence
        self.attempts = attempts
        super().__init__(message)


class LedgerRejectedError(LedgerError):
    """Non-retryable ledger rejection (revert, malformed call, bad nonce).

    Attributes:
        fingerprint: Hex fingerprint of the rejected submission, if any.
        sequence: Sequence number used for the rejected submission, if any.
        reason: Short machine-oriented reason string.
    """

    def __init__(
        self,
        message: str,
        fingerprint: str | None = None,
        sequence: int | None = None,
        reason: str = "rejected",
    ) -> None:
        self.fingerprint = fingerprint
        self.sequence = sequence
        self.reason = reason
        super().__init__(message)


class LedgerUnavailableError(LedgerError):
    """The ledger read path could not answer.

    Distinct from a negative answer: callers must never map this to
    "not anchored".
    """

    def __init__(self, message: str, fingerprint: str | None = None) -> None:
        self.fingerprint = fingerprint
        super().__init__(message)

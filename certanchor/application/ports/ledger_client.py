"""Ledger client port (read path, write path, sequence position).

Developer Golden Rules:
1. READS ARE FREE - query/lookup may run with unbounded concurrency
2. ONE WRITER - submit_and_confirm is only called by the NonceSequencer
3. CALLER NUMBERS - the sequence number is always supplied by the caller;
   implementations never pick their own
4. TAXONOMY - transient faults raise LedgerTransientError, rejections raise
   LedgerRejectedError, read failures raise LedgerUnavailableError
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from certanchor.domain.models.anchor import LedgerReference
from certanchor.domain.models.fingerprint import ContentFingerprint


class LedgerClientProtocol(ABC):
    """Abstract interface to the anchoring ledger."""

    @abstractmethod
    async def query(self, fingerprint: ContentFingerprint) -> bool:
        """Return whether the fingerprint was ever anchored.

        Read-only and side-effect-free. Visibility of a just-confirmed
        write follows the ledger's own finality rules.

        Raises:
            LedgerUnavailableError: If the ledger could not answer.
        """
        ...

    @abstractmethod
    async def lookup(self, fingerprint: ContentFingerprint) -> Optional[LedgerReference]:
        """Return the reference of the existing anchor, or None.

        Raises:
            LedgerUnavailableError: If the ledger could not answer.
        """
        ...

    @abstractmethod
    async def submit_and_confirm(
        self,
        fingerprint: ContentFingerprint,
        sequence: int,
        timeout_seconds: float,
    ) -> LedgerReference:
        """Submit an anchor with the given sequence number and wait for finality.

        Suspends the calling task (not the process) until the ledger
        acknowledges finality or the timeout elapses.

        Args:
            fingerprint: Fingerprint to anchor.
            sequence: Caller-assigned sequence number (nonce).
            timeout_seconds: Bound on the confirmation wait.

        Returns:
            Reference of the confirmed anchor.

        Raises:
            LedgerTransientError: Retryable failure, including timeout.
            LedgerRejectedError: The ledger refused the submission.
        """
        ...

    @abstractmethod
    async def consumed_sequence(self) -> int:
        """Return the number of confirmed sequence numbers of the signing identity.

        This is also the next sequence number the ledger will accept.

        Raises:
            LedgerUnavailableError: If the ledger could not answer.
        """
        ...

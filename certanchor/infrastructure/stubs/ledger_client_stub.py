"""In-memory ledger stub.

This module provides an in-memory implementation of LedgerClientProtocol for
development and testing. It behaves like a single-account chain with a
registry contract:

- Sequence numbers must be used in order; a wrong number is rejected
- Anchoring an already-anchored fingerprint reverts, and a revert still
  consumes the sequence number (as on an EVM chain)
- Confirmed anchors can be held back from reads to model a finality window

Testing Features:
- Queue transient/rejection faults for upcoming submissions
- Faults that fire after the transaction landed (lost confirmation)
- Hold submissions mid-flight to observe queueing
- Take the read path down
- Consume sequence numbers from outside the sequencer
"""

from __future__ import annotations

import asyncio
import hashlib
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from certanchor.application.ports.ledger_client import LedgerClientProtocol
from certanchor.domain.errors.ledger import (
    ALREADY_ANCHORED_REASON,
    NONCE_MISMATCH_REASON,
    LedgerError,
    LedgerRejectedError,
    LedgerTransientError,
    LedgerUnavailableError,
)
from certanchor.domain.models.anchor import AnchorRecord, LedgerReference
from certanchor.domain.models.fingerprint import ContentFingerprint

STUB_SUBMITTER = "0x000000000000000000000000000000000000a11c"


@dataclass(frozen=True)
class _QueuedFault:
    error: LedgerError
    landed: bool


class LedgerClientStub(LedgerClientProtocol):
    """In-memory LedgerClientProtocol implementation.

    NOT suitable for production use: state lives only in this process.

    Attributes:
        commits: (sequence, fingerprint) pairs in commit order.
        submit_calls: Number of submit_and_confirm invocations.
        query_calls: Number of query invocations.
    """

    def __init__(self, submitter: str = STUB_SUBMITTER, start_sequence: int = 0) -> None:
        self._submitter = submitter
        self._consumed = start_sequence
        self._block = 0
        self._records: dict[ContentFingerprint, AnchorRecord] = {}
        self._unfinalized: set[ContentFingerprint] = set()
        self._faults: list[_QueuedFault] = []
        self._read_available = True
        self._hide_until_finalized = False
        self._hold: Optional[asyncio.Event] = None
        self.submission_started = asyncio.Event()
        self.commits: list[tuple[int, ContentFingerprint]] = []
        self.submit_calls = 0
        self.query_calls = 0

    async def query(self, fingerprint: ContentFingerprint) -> bool:
        self.query_calls += 1
        self._check_read_path(fingerprint)
        return self._visible(fingerprint)

    async def lookup(self, fingerprint: ContentFingerprint) -> Optional[LedgerReference]:
        self._check_read_path(fingerprint)
        if not self._visible(fingerprint):
            return None
        return self._records[fingerprint].reference

    async def submit_and_confirm(
        self,
        fingerprint: ContentFingerprint,
        sequence: int,
        timeout_seconds: float,
    ) -> LedgerReference:
        self.submit_calls += 1
        self.submission_started.set()
        if self._hold is not None:
            await self._hold.wait()

        fault = self._faults.pop(0) if self._faults else None
        if fault is not None and not fault.landed:
            raise fault.error

        if sequence != self._consumed:
            raise LedgerRejectedError(
                f"nonce {sequence} does not match expected {self._consumed}",
                fingerprint=fingerprint.hex(),
                sequence=sequence,
                reason=NONCE_MISMATCH_REASON,
            )

        if fingerprint in self._records:
            # Revert: the transaction is mined and the nonce is spent
            self._consumed += 1
            self._block += 1
            raise LedgerRejectedError(
                "registry reverted: fingerprint already stored",
                fingerprint=fingerprint.hex(),
                sequence=sequence,
                reason=ALREADY_ANCHORED_REASON,
            )

        reference = self._commit(fingerprint, sequence)
        if fault is not None:
            raise fault.error
        return reference

    async def consumed_sequence(self) -> int:
        if not self._read_available:
            raise LedgerUnavailableError("stub ledger read path is down")
        return self._consumed

    def _commit(self, fingerprint: ContentFingerprint, sequence: int) -> LedgerReference:
        self._block += 1
        transaction_id = "0x" + hashlib.sha256(
            f"{self._submitter}:{sequence}:{fingerprint.hex()}".encode("utf-8")
        ).hexdigest()
        reference = LedgerReference(
            transaction_id=transaction_id,
            sequence=sequence,
            block_number=self._block,
        )
        self._records[fingerprint] = AnchorRecord(
            fingerprint=fingerprint,
            submitter=self._submitter,
            reference=reference,
            anchored_at=datetime.now(timezone.utc),
        )
        if self._hide_until_finalized:
            self._unfinalized.add(fingerprint)
        self._consumed = sequence + 1
        self.commits.append((sequence, fingerprint))
        return reference

    def _visible(self, fingerprint: ContentFingerprint) -> bool:
        return fingerprint in self._records and fingerprint not in self._unfinalized

    def _check_read_path(self, fingerprint: ContentFingerprint) -> None:
        if not self._read_available:
            raise LedgerUnavailableError(
                "stub ledger read path is down", fingerprint=fingerprint.hex()
            )

    # Test helper methods

    def fail_next_submission(self, error: LedgerError, landed: bool = False) -> None:
        """Queue a fault for the next submission attempt.

        Args:
            error: Error to raise.
            landed: If True the transaction is committed before the error is
                raised (confirmation lost in transit).
        """
        self._faults.append(_QueuedFault(error=error, landed=landed))

    def fail_transiently(self, times: int) -> None:
        """Queue ``times`` plain transient faults."""
        for _ in range(times):
            self.fail_next_submission(LedgerTransientError("stub: network partition"))

    def set_read_available(self, available: bool) -> None:
        self._read_available = available

    def hide_until_finalized(self, hidden: bool = True) -> None:
        """Keep new anchors invisible to reads until finalize() is called."""
        self._hide_until_finalized = hidden

    def finalize(self) -> None:
        """Make every committed anchor visible to reads."""
        self._unfinalized.clear()

    def hold_submissions(self) -> None:
        """Block submissions mid-flight until release_submissions()."""
        self._hold = asyncio.Event()
        self.submission_started.clear()

    def release_submissions(self) -> None:
        if self._hold is not None:
            self._hold.set()
            self._hold = None

    def consume_externally(self, count: int = 1) -> None:
        """Spend sequence numbers as if another signer used the identity."""
        self._consumed += count

    def seed_anchor(self, fingerprint: ContentFingerprint) -> LedgerReference:
        """Record an anchor directly, consuming the next sequence number."""
        return self._commit(fingerprint, self._consumed)

    def record_for(self, fingerprint: ContentFingerprint) -> Optional[AnchorRecord]:
        return self._records.get(fingerprint)

    @property
    def anchored_count(self) -> int:
        return len(self._records)

"""Anchoring models: ledger references, pending submissions, results.

Lifecycle:
- PendingSubmission exists only while a write sits in the sequencer
  (accepted -> sequence assigned -> terminal outcome delivered).
- AnchorRecord mirrors the on-ledger entry; it is created once per
  fingerprint and never changes.
- AnchorResult is what the anchor operation hands back to the caller.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from certanchor.domain.models.fingerprint import ContentFingerprint


@dataclass(frozen=True)
class LedgerReference:
    """Where an anchor lives on the ledger.

    Attributes:
        transaction_id: Ledger transaction identifier (wire ledgerReference).
        sequence: Signing-identity sequence number (nonce) that carried it.
        block_number: Block containing the transaction, when known.
    """

    transaction_id: str
    sequence: int
    block_number: Optional[int] = None

    def __post_init__(self) -> None:
        if not self.transaction_id:
            raise ValueError("transaction_id cannot be empty")
        if self.sequence < 0:
            raise ValueError(f"sequence must be non-negative, got {self.sequence}")

    def __str__(self) -> str:
        return self.transaction_id


@dataclass(frozen=True)
class AnchorRecord:
    """On-ledger anchor entry.

    Attributes:
        fingerprint: The anchored fingerprint.
        submitter: Address or identifier of the signing identity.
        reference: Ledger location of the anchoring transaction.
        anchored_at: Ledger timestamp of the anchor, when known.
    """

    fingerprint: ContentFingerprint
    submitter: str
    reference: LedgerReference
    anchored_at: Optional[datetime] = None


@dataclass
class PendingSubmission:
    """A ledger write waiting in (or being processed by) the sequencer.

    Attributes:
        fingerprint: Fingerprint to anchor.
        ticket: Acceptance order into the sequencer queue (1-based).
        completion: Future resolved with the terminal outcome.
        sequence: Sequence number assigned when dequeued, None until then.
        attempts: Submission attempts made so far.
    """

    fingerprint: ContentFingerprint
    ticket: int
    completion: asyncio.Future[LedgerReference]
    sequence: Optional[int] = None
    attempts: int = 0

    def resolve(self, reference: LedgerReference) -> bool:
        """Deliver success. Returns False when nobody is waiting any more."""
        if self.completion.done():
            return False
        self.completion.set_result(reference)
        return True

    def fail(self, error: BaseException) -> bool:
        """Deliver failure. Returns False when nobody is waiting any more."""
        if self.completion.done():
            return False
        self.completion.set_exception(error)
        return True


@dataclass(frozen=True)
class AnchorResult:
    """Outcome of a successful anchor operation.

    Attributes:
        fingerprint: Fingerprint of the uploaded document.
        ledger_reference: Reference of the (new or existing) anchor.
        already_anchored: True when the fingerprint was anchored before
            this request and no ledger write was made.
        storage_locator: Object store locator of the uploaded bytes.
    """

    fingerprint: ContentFingerprint
    ledger_reference: LedgerReference
    already_anchored: bool
    storage_locator: Optional[str] = None

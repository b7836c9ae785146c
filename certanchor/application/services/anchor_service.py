"""Anchor service: access gate, fingerprint, store, idempotency, sequenced write.

Developer Golden Rules:
1. GATE FIRST - the issuer check happens before hashing, storage or any
   ledger call; a denied request has no side effects
2. STORE BEFORE LEDGER - the document write is started first; a write that
   fails before the ledger is touched aborts the anchor (fail closed)
3. NEVER TWICE - an anchored fingerprint returns its existing reference
   without entering the sequencer
4. ONE WRITER - new anchors only reach the ledger through NonceSequencer
5. NO SILENT PARTIALS - a deferred store write that fails after the ledger
   confirmed raises PartialAnchorError, never a clean success

Store/ledger coupling:
    The store write gets ``store_timeout_seconds`` to finish. If it is still
    running after that, it is left to complete in the background and the
    anchor proceeds. Its outcome is checked once the ledger has confirmed.
    Exactly-once coupling across the two systems is left to reconciliation
    tooling outside this service.
"""

from __future__ import annotations

import asyncio
from collections import OrderedDict
from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import Callable, Optional

import structlog

from certanchor.application.ports.anchor_metrics import AnchorMetricsProtocol
from certanchor.application.ports.fingerprint_computer import (
    FingerprintComputerProtocol,
)
from certanchor.application.ports.ledger_client import LedgerClientProtocol
from certanchor.application.ports.object_store import ObjectStoreProtocol
from certanchor.application.services.access_gate import AccessGate
from certanchor.application.services.base import LoggingMixin
from certanchor.application.services.nonce_sequencer import NonceSequencer
from certanchor.domain.errors.access import ForbiddenError
from certanchor.domain.errors.ledger import (
    LedgerRejectedError,
    LedgerTransientError,
    LedgerUnavailableError,
)
from certanchor.domain.errors.sequencer import SequencerBusyError
from certanchor.domain.errors.storage import ObjectStoreError, PartialAnchorError
from certanchor.domain.models.anchor import AnchorResult, LedgerReference
from certanchor.domain.models.caller_context import CallerContext, Operation
from certanchor.domain.models.fingerprint import ContentFingerprint

DEFAULT_KEY_PREFIX = "certificates"
DEFAULT_FILENAME = "certificate"
DEFAULT_CONTENT_TYPE = "application/octet-stream"
DEFAULT_STORE_TIMEOUT_SECONDS = 10.0
RECENT_ANCHOR_CACHE_SIZE = 10_000


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AnchorService(LoggingMixin):
    """Anchors document fingerprints on the ledger for issuers."""

    def __init__(
        self,
        access_gate: AccessGate,
        fingerprint_computer: FingerprintComputerProtocol,
        ledger: LedgerClientProtocol,
        sequencer: NonceSequencer,
        object_store: ObjectStoreProtocol,
        key_prefix: str = DEFAULT_KEY_PREFIX,
        store_timeout_seconds: float = DEFAULT_STORE_TIMEOUT_SECONDS,
        metrics: Optional[AnchorMetricsProtocol] = None,
        time_source: Callable[[], datetime] = _utc_now,
    ) -> None:
        """Initialize the anchor service.

        Args:
            access_gate: Issuer role check.
            fingerprint_computer: Content hashing.
            ledger: Ledger client, used here for reads only.
            sequencer: Single writer for ledger submissions.
            object_store: Store for the original document bytes.
            key_prefix: Object key prefix.
            store_timeout_seconds: Wait for the store write before deferring it.
            metrics: Optional metrics sink.
            time_source: Clock used for object keys.
        """
        self._gate = access_gate
        self._fingerprints = fingerprint_computer
        self._ledger = ledger
        self._sequencer = sequencer
        self._store = object_store
        self._key_prefix = key_prefix.strip("/")
        self._store_timeout = store_timeout_seconds
        self._metrics = metrics
        self._now = time_source
        self._recent: OrderedDict[ContentFingerprint, LedgerReference] = OrderedDict()
        self._background: set[asyncio.Task[str]] = set()
        self._init_logger(component="anchoring")

    async def anchor(
        self,
        content: bytes,
        caller: CallerContext,
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
    ) -> AnchorResult:
        """Anchor the fingerprint of content for an issuer.

        Args:
            content: Raw document bytes.
            caller: Already-validated caller context.
            filename: Original file name, used in the object key.
            content_type: MIME type recorded with the stored object.

        Returns:
            AnchorResult with the fingerprint and ledger reference.

        Raises:
            ForbiddenError: Caller is not an issuer.
            ObjectStoreError: Document could not be stored; no ledger write.
            SequencerBusyError: Anchor queue is full.
            LedgerTransientError: Ledger did not confirm in time.
            LedgerRejectedError: Ledger refused the submission.
            PartialAnchorError: Anchored, but the deferred store write failed.
        """
        log = self._log_operation("anchor", subject=caller.subject)

        try:
            self._gate.require(caller, Operation.ANCHOR)
        except ForbiddenError:
            self._record("forbidden")
            raise

        fingerprint = self._fingerprints.fingerprint(content)
        log = log.bind(fingerprint=fingerprint.hex())
        log.info("anchor_requested", size_bytes=len(content))

        key = self._object_key(caller.subject, filename)
        store_task = asyncio.create_task(
            self._store.put(key, content, content_type or DEFAULT_CONTENT_TYPE)
        )
        locator = await self._await_store(store_task, key, log)

        try:
            existing = await self._existing_reference(fingerprint)
            if existing is not None:
                log.info(
                    "anchor_already_present",
                    transaction_id=existing.transaction_id,
                )
                self._record("already_anchored")
                reference = existing
                already_anchored = True
            else:
                reference = await self._sequencer.submit(fingerprint)
                self._remember(fingerprint, reference)
                already_anchored = False
        except SequencerBusyError as exc:
            log.warning("anchor_busy", queue_depth=exc.queue_depth)
            self._record("busy")
            raise
        except LedgerRejectedError as exc:
            log.error("anchor_rejected", reason=exc.reason, sequence=exc.sequence)
            self._record("rejected")
            raise
        except LedgerTransientError as exc:
            log.error("anchor_transient_failure", attempts=exc.attempts, error=str(exc))
            self._record("transient")
            raise

        if locator is None:
            locator = await self._settle_deferred_store(
                store_task, key, fingerprint, reference, log
            )

        if not already_anchored:
            log.info(
                "anchor_confirmed",
                transaction_id=reference.transaction_id,
                sequence=reference.sequence,
            )
            self._record("anchored")

        return AnchorResult(
            fingerprint=fingerprint,
            ledger_reference=reference,
            already_anchored=already_anchored,
            storage_locator=locator,
        )

    async def _existing_reference(
        self, fingerprint: ContentFingerprint
    ) -> Optional[LedgerReference]:
        """Return the reference of an existing anchor, or None.

        Anchors this process confirmed are answered from memory, since the
        ledger may not show them to reads until its finality window passes.
        Memory is consulted again after the ledger read, because another
        request may have confirmed the same content while the read was
        suspended. No await separates that check from the submit.
        """
        recent = self._recent.get(fingerprint)
        if recent is not None:
            return recent

        try:
            if not await self._ledger.query(fingerprint):
                confirmed = self._sequencer.confirmed_reference(fingerprint)
                return self._recent.get(fingerprint) or confirmed
            reference = await self._ledger.lookup(fingerprint)
        except LedgerUnavailableError as exc:
            raise LedgerTransientError(
                "Ledger read path unavailable during anchor",
                fingerprint=fingerprint.hex(),
                attempts=0,
            ) from exc

        if reference is None:
            raise LedgerTransientError(
                "Fingerprint is anchored but its reference is not yet visible",
                fingerprint=fingerprint.hex(),
                attempts=0,
            )
        self._remember(fingerprint, reference)
        return reference

    async def _await_store(
        self, task: asyncio.Task[str], key: str, log: structlog.BoundLogger
    ) -> Optional[str]:
        """Wait for the store write; None means it was deferred."""
        done, _ = await asyncio.wait({task}, timeout=self._store_timeout)
        if task in done:
            try:
                return task.result()
            except ObjectStoreError:
                self._log_store_failure(key, log)
                raise
            except Exception as exc:
                self._log_store_failure(key, log)
                raise ObjectStoreError("Document could not be stored", key=key) from exc

        self._background.add(task)
        task.add_done_callback(self._background_done)
        log.warning(
            "store_write_deferred",
            key=key,
            timeout_seconds=self._store_timeout,
        )
        return None

    async def _settle_deferred_store(
        self,
        task: asyncio.Task[str],
        key: str,
        fingerprint: ContentFingerprint,
        reference: LedgerReference,
        log: structlog.BoundLogger,
    ) -> str:
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            log.error(
                "anchor_partial",
                transaction_id=reference.transaction_id,
                key=key,
                error_type=type(exc).__name__,
            )
            self._record("partial")
            raise PartialAnchorError(
                fingerprint=fingerprint.hex(),
                ledger_reference=reference.transaction_id,
                key=key,
            ) from exc

    def _log_store_failure(self, key: str, log: structlog.BoundLogger) -> None:
        log.error("anchor_store_failed", key=key)
        self._record("storage_failed")

    def _object_key(self, subject: str, filename: Optional[str]) -> str:
        name = PurePosixPath((filename or "").replace("\\", "/")).name or DEFAULT_FILENAME
        epoch_ms = int(self._now().timestamp() * 1000)
        return f"{self._key_prefix}/{subject}/{epoch_ms}-{name}"

    def _remember(self, fingerprint: ContentFingerprint, reference: LedgerReference) -> None:
        self._recent[fingerprint] = reference
        self._recent.move_to_end(fingerprint)
        while len(self._recent) > RECENT_ANCHOR_CACHE_SIZE:
            self._recent.popitem(last=False)

    def _record(self, outcome: str) -> None:
        if self._metrics is not None:
            self._metrics.record_anchor_outcome(outcome)

    def _background_done(self, task: asyncio.Task[str]) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self._log.warning(
                "deferred_store_write_failed", error_type=type(error).__name__
            )

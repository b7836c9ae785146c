"""Nonce sequencer: the single writer for the shared signing identity.

Every mutating ledger call is signed by one identity whose sequence numbers
(nonces) must be strictly increasing with no gaps and no duplicates. Two
submissions with the same number race and one is rejected; a skipped number
stalls every submission behind it.

The sequencer is an actor: one asyncio task owns the sequence counter and
processes a bounded FIFO queue. Nothing else calls the ledger's mutating
entry point and nothing else touches the counter.

Developer Golden Rules:
1. FIFO - submissions commit in the order they were accepted
2. ONE AT A TIME - the next submission starts only after the previous one
   reached a terminal outcome
3. NO GAPS - the counter advances past a number only when the ledger shows
   it consumed
4. FAIL FAST WHEN FULL - a full queue raises SequencerBusyError, it never
   grows without bound
5. NO ORPHAN REMOVAL - a caller that goes away leaves its entry in place;
   the submission completes and its outcome is dropped
6. STALE NONCE - a nonce mismatch re-reads the ledger position; a
   fingerprint that already landed resolves with its reference, otherwise
   the submission moves to the fresh number within its retry budget
7. NEVER TWICE - a fingerprint this process confirmed is answered from
   memory and never submitted again; a revert whose fingerprint is on the
   ledger resolves with the existing reference

Usage:
    sequencer = NonceSequencer(ledger=ledger_client, max_queue_depth=100)
    await sequencer.start()
    reference = await sequencer.submit(fingerprint)
    await sequencer.stop()
"""

from __future__ import annotations

import asyncio
from collections import OrderedDict
from typing import Awaitable, Callable, Optional

from certanchor.application.ports.anchor_metrics import AnchorMetricsProtocol
from certanchor.application.ports.ledger_client import LedgerClientProtocol
from certanchor.application.services.base import LoggingMixin
from certanchor.domain.errors.ledger import (
    ALREADY_ANCHORED_REASON,
    NONCE_MISMATCH_REASON,
    REVERTED_REASON,
    LedgerRejectedError,
    LedgerTransientError,
    LedgerUnavailableError,
)
from certanchor.domain.errors.sequencer import SequencerBusyError, SequencerStoppedError
from certanchor.domain.models.anchor import LedgerReference, PendingSubmission
from certanchor.domain.models.fingerprint import ContentFingerprint

DEFAULT_MAX_QUEUE_DEPTH = 100
DEFAULT_RETRY_COUNT = 3
DEFAULT_BACKOFF_BASE_SECONDS = 0.5
DEFAULT_BACKOFF_MAX_SECONDS = 8.0
DEFAULT_CONFIRMATION_TIMEOUT_SECONDS = 120.0
DEFAULT_RETRY_AFTER_SECONDS = 5
CONFIRMED_CACHE_SIZE = 10_000

# Rejections after which the fingerprint may already be on the ledger
_LANDED_CHECK_REASONS = frozenset(
    {NONCE_MISMATCH_REASON, ALREADY_ANCHORED_REASON, REVERTED_REASON}
)


def _consume_outcome(future: asyncio.Future[LedgerReference]) -> None:
    # Outcomes of abandoned requests are dropped without an asyncio warning
    if not future.cancelled():
        future.exception()


class NonceSequencer(LoggingMixin):
    """Single-writer FIFO queue in front of LedgerClient.submit_and_confirm.

    Attributes:
        queue_depth: Submissions accepted but not yet picked up by the worker.
        max_queue_depth: Bound on waiting submissions.
        consumed_count: Sequence numbers consumed by this process.
        next_sequence: Sequence number the next submission will use.
        running: Whether the worker task is active.
    """

    def __init__(
        self,
        ledger: LedgerClientProtocol,
        max_queue_depth: int = DEFAULT_MAX_QUEUE_DEPTH,
        retry_count: int = DEFAULT_RETRY_COUNT,
        backoff_base_seconds: float = DEFAULT_BACKOFF_BASE_SECONDS,
        backoff_max_seconds: float = DEFAULT_BACKOFF_MAX_SECONDS,
        confirmation_timeout_seconds: float = DEFAULT_CONFIRMATION_TIMEOUT_SECONDS,
        retry_after_seconds: int = DEFAULT_RETRY_AFTER_SECONDS,
        metrics: Optional[AnchorMetricsProtocol] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the sequencer.

        Args:
            ledger: Ledger client; only this sequencer may call its
                mutating entry point.
            max_queue_depth: Maximum number of waiting submissions.
            retry_count: Retries of the same sequence number on transient
                faults, after the first attempt.
            backoff_base_seconds: Delay before the first retry; doubles
                on each further retry.
            backoff_max_seconds: Cap on the retry delay.
            confirmation_timeout_seconds: Finality wait per attempt.
            retry_after_seconds: Hint returned with SequencerBusyError.
            metrics: Optional metrics sink.
            sleep: Backoff sleep function (injectable for tests).
        """
        if max_queue_depth < 1:
            raise ValueError(f"max_queue_depth must be positive, got {max_queue_depth}")
        if retry_count < 0:
            raise ValueError(f"retry_count must be non-negative, got {retry_count}")

        self._ledger = ledger
        self._max_queue_depth = max_queue_depth
        self._retry_count = retry_count
        self._backoff_base = backoff_base_seconds
        self._backoff_max = backoff_max_seconds
        self._confirmation_timeout = confirmation_timeout_seconds
        self._retry_after = retry_after_seconds
        self._metrics = metrics
        self._sleep = sleep

        self._queue: asyncio.Queue[PendingSubmission] = asyncio.Queue(
            maxsize=max_queue_depth
        )
        self._inflight: dict[ContentFingerprint, PendingSubmission] = {}
        self._confirmed: OrderedDict[ContentFingerprint, LedgerReference] = OrderedDict()
        self._next_sequence: Optional[int] = None
        self._last_ticket = 0
        self._consumed_count = 0
        self._running = False
        self._task: Optional[asyncio.Task[None]] = None
        self._init_logger(component="sequencer")

    @property
    def queue_depth(self) -> int:
        return self._queue.qsize()

    @property
    def max_queue_depth(self) -> int:
        return self._max_queue_depth

    @property
    def consumed_count(self) -> int:
        return self._consumed_count

    @property
    def next_sequence(self) -> Optional[int]:
        return self._next_sequence

    @property
    def running(self) -> bool:
        return self._running

    def confirmed_reference(
        self, fingerprint: ContentFingerprint
    ) -> Optional[LedgerReference]:
        """Reference of a fingerprint this sequencer already confirmed, if any."""
        return self._confirmed.get(fingerprint)

    async def start(self) -> None:
        """Seed the counter from the ledger and start the worker.

        Calling start on a running sequencer is a no-op.

        Raises:
            LedgerUnavailableError: If the ledger position cannot be read.
        """
        if self._running:
            return

        self._next_sequence = await self._ledger.consumed_sequence()
        self._running = True
        self._task = asyncio.create_task(self._run_loop(), name="nonce-sequencer")
        self._log.info(
            "sequencer_started",
            next_sequence=self._next_sequence,
            max_queue_depth=self._max_queue_depth,
        )

    async def stop(self) -> None:
        """Stop the worker and fail every submission it did not finish.

        A submission interrupted mid-flight may still land on the ledger;
        the counter is re-seeded from the ledger on the next start.
        """
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        # The in-flight entry was failed by the worker on cancellation
        abandoned: list[PendingSubmission] = []
        while not self._queue.empty():
            abandoned.append(self._queue.get_nowait())
            self._queue.task_done()
        for pending in abandoned:
            pending.fail(SequencerStoppedError(fingerprint=pending.fingerprint.hex()))
        self._inflight.clear()
        self._report_depth()
        self._log.info("sequencer_stopped", abandoned=len(abandoned))

    async def join(self) -> None:
        """Wait until every accepted submission reached a terminal outcome."""
        await self._queue.join()

    async def submit(self, fingerprint: ContentFingerprint) -> LedgerReference:
        """Queue a fingerprint for anchoring and wait for the outcome.

        A fingerprint already queued or in flight shares the existing
        entry, so concurrent requests for the same content produce a single
        ledger write. A fingerprint confirmed earlier returns its reference
        without touching the ledger.

        Returns:
            Reference of the confirmed anchor.

        Raises:
            SequencerBusyError: The queue is full; nothing was queued.
            SequencerStoppedError: The sequencer is not running.
            LedgerTransientError: Retries exhausted without confirmation.
            LedgerRejectedError: The ledger refused the submission.
        """
        if not self._running:
            raise SequencerStoppedError(fingerprint=fingerprint.hex())

        confirmed = self._confirmed.get(fingerprint)
        if confirmed is not None:
            self._log_operation("submit", fingerprint=fingerprint.hex()).info(
                "submission_already_confirmed",
                transaction_id=confirmed.transaction_id,
            )
            return confirmed

        pending = self._inflight.get(fingerprint)
        if pending is None:
            pending = self._accept(fingerprint)
        else:
            self._log_operation(
                "submit", fingerprint=fingerprint.hex(), ticket=pending.ticket
            ).info("submission_coalesced")

        # Shielded: a caller that goes away must not cancel the shared entry
        return await asyncio.shield(pending.completion)

    def _accept(self, fingerprint: ContentFingerprint) -> PendingSubmission:
        log = self._log_operation("submit", fingerprint=fingerprint.hex())
        if self._queue.full():
            log.warning(
                "sequencer_busy",
                queue_depth=self._queue.qsize(),
                max_queue_depth=self._max_queue_depth,
            )
            raise SequencerBusyError(
                queue_depth=self._queue.qsize(),
                max_queue_depth=self._max_queue_depth,
                retry_after_seconds=self._retry_after,
            )

        self._last_ticket += 1
        completion: asyncio.Future[LedgerReference] = (
            asyncio.get_running_loop().create_future()
        )
        completion.add_done_callback(_consume_outcome)
        pending = PendingSubmission(
            fingerprint=fingerprint,
            ticket=self._last_ticket,
            completion=completion,
        )
        self._queue.put_nowait(pending)
        self._inflight[fingerprint] = pending
        self._report_depth()
        log.info("submission_accepted", ticket=pending.ticket, queue_depth=self.queue_depth)
        return pending

    async def _run_loop(self) -> None:
        while True:
            pending = await self._queue.get()
            self._report_depth()
            try:
                await self._process(pending)
            except asyncio.CancelledError:
                pending.fail(SequencerStoppedError(fingerprint=pending.fingerprint.hex()))
                raise
            except Exception as exc:
                self._log_operation(
                    "process",
                    fingerprint=pending.fingerprint.hex(),
                    ticket=pending.ticket,
                ).exception("submission_crashed", error_type=type(exc).__name__)
                pending.fail(
                    LedgerTransientError(
                        "Ledger submission failed unexpectedly",
                        fingerprint=pending.fingerprint.hex(),
                        sequence=pending.sequence,
                        attempts=pending.attempts,
                    )
                )
            finally:
                if self._inflight.get(pending.fingerprint) is pending:
                    del self._inflight[pending.fingerprint]
                self._queue.task_done()

    async def _process(self, pending: PendingSubmission) -> None:
        sequence = self._position()
        pending.sequence = sequence
        log = self._log_operation(
            "process",
            fingerprint=pending.fingerprint.hex(),
            ticket=pending.ticket,
            sequence=sequence,
        )

        last_error: Optional[LedgerTransientError] = None
        for attempt in range(1, self._retry_count + 2):
            pending.attempts = attempt
            log.info("submission_attempt", attempt=attempt)
            try:
                reference = await self._ledger.submit_and_confirm(
                    pending.fingerprint,
                    sequence,
                    self._confirmation_timeout,
                )
            except LedgerRejectedError as exc:
                self._record_attempt("rejected")
                log.warning("submission_rejected", attempt=attempt, reason=exc.reason)
                await self._resync()
                if exc.reason in _LANDED_CHECK_REASONS:
                    # An earlier write may have stored the fingerprint already
                    landed = await self._find_landed(pending)
                    if landed is not None:
                        spent = (
                            exc.reason != NONCE_MISMATCH_REASON
                            and self._position() > sequence
                        )
                        self._settle_landed(pending, sequence, landed, spent=spent)
                        return
                if exc.reason == NONCE_MISMATCH_REASON:
                    fresh = self._position()
                    if attempt <= self._retry_count and fresh != sequence:
                        sequence = fresh
                        pending.sequence = sequence
                        log = log.bind(sequence=sequence)
                        log.info("submission_resequenced", attempt=attempt)
                        continue
                self._deliver(pending, error=exc)
                return
            except LedgerTransientError as exc:
                self._record_attempt("transient")
                last_error = exc
                if attempt <= self._retry_count:
                    delay = self._backoff(attempt)
                    log.warning(
                        "submission_transient_fault",
                        attempt=attempt,
                        retry_in_seconds=delay,
                        error=str(exc),
                    )
                    await self._sleep(delay)
                continue

            self._record_attempt("confirmed")
            self._next_sequence = sequence + 1
            self._consumed_count += 1
            log.info(
                "submission_confirmed",
                attempt=attempt,
                transaction_id=reference.transaction_id,
                block_number=reference.block_number,
            )
            self._deliver(pending, reference=reference)
            return

        await self._reconcile(pending, sequence, last_error)

    async def _reconcile(
        self,
        pending: PendingSubmission,
        sequence: int,
        last_error: Optional[LedgerTransientError],
    ) -> None:
        """Decide what happened to a sequence number after retries ran out.

        The number is skipped only when the ledger reports it consumed.
        Otherwise the counter stays put and the next submission reuses it.
        """
        log = self._log_operation(
            "reconcile", fingerprint=pending.fingerprint.hex(), sequence=sequence
        )
        try:
            consumed: Optional[int] = await self._ledger.consumed_sequence()
        except LedgerUnavailableError:
            consumed = None
            log.warning("reconcile_position_unknown")

        if consumed is not None and consumed > sequence:
            self._next_sequence = consumed
            landed = await self._find_landed(pending)
            if landed is not None:
                self._settle_landed(pending, sequence, landed)
                return
            log.warning("sequence_consumed_elsewhere", consumed=consumed)
        else:
            log.warning("sequence_retained", next_sequence=self._next_sequence)

        error = LedgerTransientError(
            f"Ledger did not confirm sequence {sequence} after "
            f"{pending.attempts} attempt(s)",
            fingerprint=pending.fingerprint.hex(),
            sequence=sequence,
            attempts=pending.attempts,
        )
        error.__cause__ = last_error
        self._deliver(pending, error=error)

    async def _find_landed(self, pending: PendingSubmission) -> Optional[LedgerReference]:
        try:
            return await self._ledger.lookup(pending.fingerprint)
        except LedgerUnavailableError:
            return None

    def _settle_landed(
        self,
        pending: PendingSubmission,
        sequence: int,
        landed: LedgerReference,
        spent: bool = False,
    ) -> None:
        # spent: the rejected write used up its number without storing anything
        if spent or landed.sequence == sequence:
            self._consumed_count += 1
        self._log_operation(
            "reconcile", fingerprint=pending.fingerprint.hex(), sequence=sequence
        ).info(
            "submission_landed_late",
            transaction_id=landed.transaction_id,
            landed_sequence=landed.sequence,
            next_sequence=self._next_sequence,
        )
        self._deliver(pending, reference=landed)

    async def _resync(self) -> None:
        try:
            self._next_sequence = await self._ledger.consumed_sequence()
        except LedgerUnavailableError:
            self._log.warning("resync_position_unknown", next_sequence=self._next_sequence)

    def _deliver(
        self,
        pending: PendingSubmission,
        reference: Optional[LedgerReference] = None,
        error: Optional[Exception] = None,
    ) -> None:
        if error is not None:
            pending.fail(error)
            return
        if reference is not None:
            self._confirmed[pending.fingerprint] = reference
            self._confirmed.move_to_end(pending.fingerprint)
            while len(self._confirmed) > CONFIRMED_CACHE_SIZE:
                self._confirmed.popitem(last=False)
            pending.resolve(reference)

    def _position(self) -> int:
        if self._next_sequence is None:
            raise RuntimeError("sequencer has no ledger position; call start() first")
        return self._next_sequence

    def _backoff(self, attempt: int) -> float:
        return min(self._backoff_base * (2 ** (attempt - 1)), self._backoff_max)

    def _report_depth(self) -> None:
        if self._metrics is not None:
            self._metrics.set_queue_depth(self._queue.qsize())

    def _record_attempt(self, result: str) -> None:
        if self._metrics is not None:
            self._metrics.record_submission_attempt(result)

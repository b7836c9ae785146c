"""Nonce sequencer errors."""

from certanchor.domain.errors.ledger import LedgerTransientError
from certanchor.domain.exceptions import CertAnchorError


class SequencerBusyError(CertAnchorError):
    """Raised when the sequencer queue is full.

    The request is rejected without being queued. The client should retry
    after the suggested delay.

    Attributes:
        queue_depth: Number of submissions waiting when the request arrived.
        max_queue_depth: Configured bound on waiting submissions.
        retry_after_seconds: Suggested retry delay.
    """

    def __init__(
        self,
        queue_depth: int,
        max_queue_depth: int,
        retry_after_seconds: int = 5,
    ) -> None:
        self.queue_depth = queue_depth
        self.max_queue_depth = max_queue_depth
        self.retry_after_seconds = retry_after_seconds
        super().__init__(
            f"Anchor queue at capacity ({queue_depth}/{max_queue_depth}). "
            f"Retry after {retry_after_seconds} seconds."
        )


class SequencerStoppedError(LedgerTransientError):
    """Raised for submissions the sequencer could not process before stopping."""

    def __init__(self, fingerprint: str | None = None) -> None:
        super().__init__(
            "Anchor sequencer is not running",
            fingerprint=fingerprint,
            attempts=0,
        )

"""Anchor metrics port.

Lets the sequencer and anchor service report operational numbers without
depending on the Prometheus implementation in infrastructure.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class AnchorMetricsProtocol(ABC):
    """Abstract interface for anchoring metrics."""

    @abstractmethod
    def set_queue_depth(self, depth: int) -> None:
        """Record the number of submissions waiting in the sequencer."""
        ...

    @abstractmethod
    def record_anchor_outcome(self, outcome: str) -> None:
        """Count one anchor request by outcome.

        Args:
            outcome: One of anchored, already_anchored, forbidden, busy,
                transient, rejected, storage_failed, partial.
        """
        ...

    @abstractmethod
    def record_submission_attempt(self, result: str) -> None:
        """Count one ledger submission attempt by result.

        Args:
            result: One of confirmed, transient, rejected.
        """
        ...

"""Domain errors for CertAnchor.

All exceptions inherit from CertAnchorError.
"""

from certanchor.domain.errors.access import ForbiddenError
from certanchor.domain.errors.configuration import ConfigurationError
from certanchor.domain.errors.ledger import (
    NONCE_MISMATCH_REASON,
    LedgerError,
    LedgerRejectedError,
    LedgerTransientError,
    LedgerUnavailableError,
)
from certanchor.domain.errors.sequencer import SequencerBusyError, SequencerStoppedError
from certanchor.domain.errors.storage import ObjectStoreError, PartialAnchorError

__all__: list[str] = [
    "NONCE_MISMATCH_REASON",
    "ConfigurationError",
    "ForbiddenError",
    "LedgerError",
    "LedgerRejectedError",
    "LedgerTransientError",
    "LedgerUnavailableError",
    "ObjectStoreError",
    "PartialAnchorError",
    "SequencerBusyError",
    "SequencerStoppedError",
]

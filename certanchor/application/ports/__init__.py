"""Application ports (interfaces implemented by infrastructure)."""

from certanchor.application.ports.anchor_metrics import AnchorMetricsProtocol
from certanchor.application.ports.fingerprint_computer import (
    FingerprintComputerProtocol,
)
from certanchor.application.ports.ledger_client import LedgerClientProtocol
from certanchor.application.ports.object_store import ObjectStoreProtocol

__all__: list[str] = [
    "AnchorMetricsProtocol",
    "FingerprintComputerProtocol",
    "LedgerClientProtocol",
    "ObjectStoreProtocol",
]

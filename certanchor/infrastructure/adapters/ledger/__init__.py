"""Ledger adapters."""

from certanchor.infrastructure.adapters.ledger.evm_ledger_client import (
    REGISTRY_ABI,
    EvmLedgerClient,
)

__all__ = ["EvmLedgerClient", "REGISTRY_ABI"]

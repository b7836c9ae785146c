"""In-memory stand-ins for external collaborators (development and tests)."""

from certanchor.infrastructure.stubs.ledger_client_stub import LedgerClientStub
from certanchor.infrastructure.stubs.object_store_stub import ObjectStoreStub

__all__: list[str] = ["LedgerClientStub", "ObjectStoreStub"]

"""
Infrastructure layer - adapters for the ledger, object store and observability.

IMPORT RULES:
- CAN import from: domain, application
- CANNOT import from: api
"""

__all__: list[str] = []

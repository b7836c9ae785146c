"""
Application layer - use cases and ports for CertAnchor.

This layer contains:
- Ports: interfaces the infrastructure layer implements
- Services: fingerprinting, access gate, sequencer, anchor and verify

IMPORT RULES:
- CAN import from: domain
- CANNOT import from: infrastructure, api
"""

__all__: list[str] = []

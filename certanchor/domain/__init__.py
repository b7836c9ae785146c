"""
Domain layer - value objects and errors for CertAnchor.

IMPORT RULES:
- CANNOT import from: application, infrastructure, api
- Standard library only
"""

__all__: list[str] = []

"""Object store port for the original document bytes.

The store is an opaque put service. Keys are chosen by the anchor service;
the returned locator is handed back to the caller as-is.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class ObjectStoreProtocol(Protocol):
    """Protocol for persisting uploaded documents."""

    async def put(self, key: str, content: bytes, content_type: str) -> str:
        """Persist content under key.

        Args:
            key: Object key.
            content: Raw document bytes.
            content_type: MIME type recorded with the object.

        Returns:
            Opaque locator of the stored object.

        Raises:
            ObjectStoreError: If the object could not be persisted.
        """
        ...

"""In-memory object store stub.

Testing Features:
- Stored objects are inspectable by key
- Next writes can be made to fail
- Writes can be delayed to exercise the deferred-write path
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional

from certanchor.domain.errors.storage import ObjectStoreError


@dataclass(frozen=True)
class StoredObject:
    """Object held by the stub."""

    key: str
    content: bytes
    content_type: str


class ObjectStoreStub:
    """In-memory ObjectStoreProtocol implementation.

    NOT suitable for production use.
    """

    def __init__(self, namespace: str = "stub-bucket") -> None:
        self._namespace = namespace
        self._objects: dict[str, StoredObject] = {}
        self._failures = 0
        self._delay_seconds = 0.0
        self._fail_after_delay = False
        self.put_calls = 0

    async def put(self, key: str, content: bytes, content_type: str) -> str:
        self.put_calls += 1
        if self._delay_seconds:
            await asyncio.sleep(self._delay_seconds)
            if self._fail_after_delay:
                self._fail_after_delay = False
                raise ObjectStoreError("stub store: delayed write failed", key=key)
        if self._failures:
            self._failures -= 1
            raise ObjectStoreError("stub store: write failed", key=key)
        self._objects[key] = StoredObject(key=key, content=content, content_type=content_type)
        return f"memory://{self._namespace}/{key}"

    # Test helper methods

    def fail_next(self, times: int = 1) -> None:
        self._failures += times

    def delay_writes(self, seconds: float, then_fail: bool = False) -> None:
        """Delay every write; optionally fail the next delayed write."""
        self._delay_seconds = seconds
        self._fail_after_delay = then_fail

    def get(self, key: str) -> Optional[StoredObject]:
        return self._objects.get(key)

    @property
    def keys(self) -> list[str]:
        return list(self._objects)

"""Store client contract used by the workload engine.

The engine only needs three data operations from a key-value backend:
a full key scan (to size the keyspace at boot), point reads and point
writes. Connection pooling, topology and authentication are the
adapter's concern.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class StoreError(Exception):
    """Base error raised by store adapters."""


class StoreUnavailableError(StoreError):
    """The store could not be reached at all (fatal during boot)."""


class StoreClient(ABC):
    """Abstract base class for key-value store backends."""

    @abstractmethod
    async def scan_all_keys(self) -> set[str]:
        """Return every key matching the adapter's scan pattern."""
        ...

    @abstractmethod
    async def get(self, key: str) -> bytes | None:
        """Read a value. Returns None when the key does not exist."""
        ...

    @abstractmethod
    async def set(self, key: str, value: bytes) -> None:
        """Write a value. Raises on failure."""
        ...

    @abstractmethod
    async def ping(self) -> bool:
        """Check connectivity."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release connections."""
        ...

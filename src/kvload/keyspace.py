"""Keyspace sizing and key generation for kvload.

Key format: {prefix}{uuid}

Where:
- prefix: configurable namespace (empty by default, matching a full SCAN)
- uuid: version-4 UUID drawn from a seedable random stream, so a fixed
  seed reproduces the same key sequence across runs
"""

from __future__ import annotations

import os
import random
import uuid
from collections.abc import Iterable


def compute_shortfall(target_size: int, observed_count: int) -> int:
    """Number of keys that must be created to reach ``target_size``."""
    return max(0, target_size - observed_count)


def make_payload(size: int) -> bytes:
    """Opaque value of exactly ``size`` bytes."""
    if size < 0:
        raise ValueError(f"payload size must be >= 0, got {size}")
    return os.urandom(size)


class KeyspaceManager:
    """Generates distinct, reproducible key identifiers.

    Identifiers handed out by one manager never repeat, and never collide
    with keys passed in ``exclude`` (typically the keys already in the store).
    """

    def __init__(self, prefix: str = "", seed: int | None = None) -> None:
        self.prefix = prefix
        self._rng = random.Random(seed)
        self._issued: set[str] = set()

    def generate_ids(self, count: int, exclude: Iterable[str] = ()) -> list[str]:
        """Generate ``count`` new distinct key identifiers.

        Args:
            count: Number of identifiers to generate
            exclude: Keys that must not be produced (e.g. already in the store)

        Returns:
            List of ``count`` unique keys, in generation order.
        """
        if count < 0:
            raise ValueError(f"count must be >= 0, got {count}")

        blocked = set(exclude)
        keys: list[str] = []
        while len(keys) < count:
            key = self._next_key()
            if key in self._issued or key in blocked:
                continue
            self._issued.add(key)
            keys.append(key)
        return keys

    def _next_key(self) -> str:
        return f"{self.prefix}{uuid.UUID(int=self._rng.getrandbits(128), version=4)}"

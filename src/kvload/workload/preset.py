"""Preset phase: bulk-populate missing keys before steady state.

A fixed number of writer tasks drain one shared iterator of keys, so at
most ``pool_size`` ``set`` calls are in flight at a time. The load is
best-effort: a failed write is logged and counted, and the batch goes on.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field

from kvload.keyspace import make_payload
from kvload.models import OperationKind, Outcome
from kvload.observability.logging import LogContext
from kvload.observability.metrics import MetricsSink
from kvload.store.base import StoreClient

logger = logging.getLogger(__name__)


@dataclass
class PresetResult:
    """Outcome of a preset batch."""

    attempted: int = 0
    written: int = 0
    failed: int = 0
    written_keys: list[str] = field(default_factory=list)
    duration_seconds: float = 0.0


class PresetCoordinator:
    """Bounded-concurrency bulk writer."""

    def __init__(
        self,
        store: StoreClient,
        metrics: MetricsSink,
        pool_size: int,
        data_size: int = 1024,
    ) -> None:
        if pool_size < 1:
            raise ValueError(f"pool_size must be >= 1, got {pool_size}")
        self.store = store
        self.metrics = metrics
        self.pool_size = pool_size
        self.data_size = data_size

    async def preset_all(
        self, keys: Sequence[str], stop_event: asyncio.Event | None = None
    ) -> PresetResult:
        """Write one value per key and wait for every write to finish.

        Once ``stop_event`` is set, writers finish their in-flight write and
        take no further keys.
        """
        result = PresetResult()
        if not keys:
            return result

        started = time.perf_counter()
        pending = iter(keys)
        writers = min(self.pool_size, len(keys))

        with LogContext(phase="preset"):
            logger.info(f"Presetting {len(keys)} keys with {writers} concurrent writers")
            await asyncio.gather(
                *(self._writer(pending, result, stop_event) for _ in range(writers))
            )

            result.duration_seconds = time.perf_counter() - started
            if stop_event is not None and stop_event.is_set():
                logger.info(f"Preset stopped early after {result.attempted}/{len(keys)} keys")
            log = logger.warning if result.failed else logger.info
            log(
                f"Preset finished: {result.written}/{result.attempted} written, "
                f"{result.failed} failed in {result.duration_seconds:.2f}s"
            )
        return result

    async def _writer(
        self,
        pending: Iterator[str],
        result: PresetResult,
        stop_event: asyncio.Event | None = None,
    ) -> None:
        # The shared iterator is only advanced between awaits, so each key
        # is handed to exactly one writer.
        for key in pending:
            if stop_event is not None and stop_event.is_set():
                break
            result.attempted += 1
            start = time.perf_counter()
            try:
                await self.store.set(key, make_payload(self.data_size))
            except Exception as e:
                result.failed += 1
                logger.error(f"Preset write failed for key {key}: {type(e).__name__}: {e}")
                self.metrics.record(
                    OperationKind.PRESET,
                    time.perf_counter() - start,
                    Outcome.FAILURE,
                    error_type=type(e).__name__,
                )
                continue

            result.written += 1
            result.written_keys.append(key)
            self.metrics.record(
                OperationKind.PRESET, time.perf_counter() - start, Outcome.SUCCESS
            )

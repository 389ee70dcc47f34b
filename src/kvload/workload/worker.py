"""Steady-state workload worker.

Each worker runs one sequential loop:

    Idle -> RateLimited (acquire) -> Executing (store call) -> Reporting -> Idle

until the shared stop event is set. The stop event is checked at the top
of every iteration and again right after a permit is granted, so once a
stop is observed no new store call is started; a call already in flight
always completes and is reported.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from collections.abc import Sequence
from dataclasses import dataclass

from kvload.keyspace import make_payload
from kvload.models import OperationKind, OperationRecord, Outcome
from kvload.observability.logging import LogContext
from kvload.observability.metrics import MetricsSink
from kvload.store.base import StoreClient
from kvload.workload.mix import OperationMix
from kvload.workload.rate_limit import RateLimiter

logger = logging.getLogger(__name__)


@dataclass
class WorkerStats:
    """Per-worker loop counters."""

    attempts: int = 0
    reads: int = 0
    updates: int = 0
    failures: int = 0
    throttled: int = 0
    idle: int = 0


class Worker:
    """Issues rate-limited reads and updates against a shared keyspace."""

    def __init__(
        self,
        worker_id: int,
        store: StoreClient,
        keys: Sequence[str],
        limiter: RateLimiter,
        mix: OperationMix,
        metrics: MetricsSink,
        *,
        data_size: int = 1024,
        rng: random.Random | None = None,
    ) -> None:
        self.worker_id = worker_id
        self.store = store
        self.keys = keys
        self.limiter = limiter
        self.mix = mix
        self.metrics = metrics
        self.data_size = data_size
        self.stats = WorkerStats()
        self._rng = rng or random.Random()

    async def run(self, stop_event: asyncio.Event) -> WorkerStats:
        """Loop until ``stop_event`` is set.

        Returns:
            The worker's counters at exit.
        """
        if not self.keys:
            raise ValueError("Worker requires a non-empty keyspace")

        with LogContext(phase="steady", worker_id=self.worker_id):
            logger.debug(f"Worker {self.worker_id} started with {len(self.keys)} keys")
            while not stop_event.is_set():
                await self.step(stop_event)
            logger.debug(f"Worker {self.worker_id} stopped after {self.stats.attempts} operations")
        return self.stats

    async def step(self, stop_event: asyncio.Event) -> OperationRecord | None:
        """Run one loop iteration.

        Returns:
            The reported record, or None when the iteration was throttled,
            idle, or cut short by a stop.
        """
        if not await self.limiter.acquire():
            self.stats.throttled += 1
            self.metrics.record_throttled()
            return None

        if stop_event.is_set():
            return None

        key = self._rng.choice(self.keys)
        kind = self.mix.choose()
        if kind is None:
            self.stats.idle += 1
            # Idle draws have no await of their own
            await asyncio.sleep(0)
            return None

        record = await self.execute(kind, key)
        self.metrics.record(
            record.kind,
            record.latency_seconds,
            record.outcome,
            error_type=record.error_type,
        )
        return record

    async def execute(self, kind: OperationKind, key: str) -> OperationRecord:
        """Perform one timed store call. Store errors are reported, not raised."""
        self.stats.attempts += 1
        if kind is OperationKind.READ:
            self.stats.reads += 1
        else:
            self.stats.updates += 1

        start = time.perf_counter()
        try:
            if kind is OperationKind.READ:
                await self.store.get(key)
            else:
                await self.store.set(key, make_payload(self.data_size))
        except Exception as e:
            latency = time.perf_counter() - start
            self.stats.failures += 1
            logger.warning(f"{kind.value} failed for key {key}: {type(e).__name__}: {e}")
            return OperationRecord(
                kind=kind,
                key=key,
                latency_seconds=latency,
                outcome=Outcome.FAILURE,
                error_type=type(e).__name__,
            )

        return OperationRecord(
            kind=kind,
            key=key,
            latency_seconds=time.perf_counter() - start,
            outcome=Outcome.SUCCESS,
        )

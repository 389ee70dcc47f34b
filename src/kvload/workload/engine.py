"""Workload engine: boot sequence and worker lifecycle.

Boot runs synchronously from the caller's point of view:

1. Scan the store for existing keys (failure here is fatal)
2. Compute the shortfall against the target dataset size
3. Generate and preset the missing keys (bounded fan-out)
4. Optionally re-scan to verify the preset landed
5. Freeze the keyspace and launch the steady-state workers

Example:
    engine = LoadEngine(store, metrics, settings)
    await engine.boot()
    await asyncio.sleep(60)
    await engine.stop()

    # Or in one call
    summary = await engine.run(duration_seconds=60)
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from dataclasses import dataclass, field, fields
from typing import Any

from kvload.config import Settings
from kvload.keyspace import KeyspaceManager, compute_shortfall
from kvload.observability.logging import LogContext
from kvload.observability.metrics import MetricsSink
from kvload.store.base import StoreClient, StoreUnavailableError
from kvload.workload.mix import OperationMix
from kvload.workload.preset import PresetCoordinator, PresetResult
from kvload.workload.rate_limit import RateLimiter
from kvload.workload.worker import Worker, WorkerStats

logger = logging.getLogger(__name__)


@dataclass
class BootReport:
    """What boot found and did."""

    observed_count: int
    target_size: int
    shortfall: int
    keyspace_size: int
    workers: int
    preset: PresetResult | None = None
    verified_count: int | None = None


@dataclass
class RunSummary:
    started_at_monotonic: float
    ended_at_monotonic: float
    boot: BootReport
    totals: WorkerStats = field(default_factory=WorkerStats)

    @property
    def duration_seconds(self) -> float:
        return max(0.0, self.ended_at_monotonic - self.started_at_monotonic)

    @property
    def throughput_ops(self) -> float:
        duration = self.duration_seconds
        return (self.totals.attempts / duration) if duration > 0 else 0.0

    def to_dict(self) -> dict[str, Any]:
        preset = self.boot.preset
        return {
            "boot": {
                "observed_count": self.boot.observed_count,
                "target_size": self.boot.target_size,
                "shortfall": self.boot.shortfall,
                "keyspace_size": self.boot.keyspace_size,
                "workers": self.boot.workers,
                "verified_count": self.boot.verified_count,
                "preset": None
                if preset is None
                else {
                    "attempted": preset.attempted,
                    "written": preset.written,
                    "failed": preset.failed,
                    "duration_seconds": preset.duration_seconds,
                },
            },
            "totals": {f.name: getattr(self.totals, f.name) for f in fields(self.totals)},
            "duration_seconds": self.duration_seconds,
            "throughput_ops": self.throughput_ops,
        }


class LoadEngine:
    """Boots the keyspace and drives the steady-state worker pool."""

    def __init__(
        self,
        store: StoreClient,
        metrics: MetricsSink,
        settings: Settings,
        *,
        keyspace_manager: KeyspaceManager | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.store = store
        self.metrics = metrics
        self.settings = settings
        self.keyspace_manager = keyspace_manager or KeyspaceManager(
            prefix=settings.key_prefix, seed=settings.key_seed
        )
        self._rng = rng or random.Random(settings.key_seed)
        self._keyspace: tuple[str, ...] = ()
        self._workers: list[Worker] = []
        self._tasks: list[asyncio.Task[WorkerStats]] = []
        self._stop_event = asyncio.Event()

    @property
    def keyspace(self) -> tuple[str, ...]:
        return self._keyspace

    @property
    def workers(self) -> list[Worker]:
        return list(self._workers)

    @property
    def is_running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    async def boot(self) -> BootReport:
        """Prepare the keyspace and launch ``thread_num`` workers.

        A stop requested before or during boot ends the preset after its
        in-flight writes and leaves the engine with no workers. The stop is
        not cleared, so an engine is single-use once stopped.

        Raises:
            StoreUnavailableError: The initial key scan failed; no workers start.
            RuntimeError: The engine is already running, or no keys exist
                to drive after preset.
        """
        if self.is_running:
            raise RuntimeError("Engine is already running")

        with LogContext(phase="boot"):
            try:
                observed = await self.store.scan_all_keys()
            except Exception as e:
                logger.error(f"Initial key scan failed: {type(e).__name__}: {e}")
                raise StoreUnavailableError(f"Cannot scan store keys: {e}") from e

            target = self.settings.dataset_size
            shortfall = compute_shortfall(target, len(observed))
            logger.info(
                f"Current key count is {len(observed)}, target is {target}, "
                f"shortfall is {shortfall}"
            )

            preset: PresetResult | None = None
            verified: int | None = None
            written: list[str] = []
            if shortfall > 0 and not self._stop_event.is_set():
                new_keys = self.keyspace_manager.generate_ids(shortfall, exclude=observed)
                coordinator = PresetCoordinator(
                    self.store,
                    self.metrics,
                    pool_size=self.settings.preset_thread_num,
                    data_size=self.settings.data_size,
                )
                preset = await coordinator.preset_all(new_keys, stop_event=self._stop_event)
                written = preset.written_keys
                if self.settings.verify_preset and not self._stop_event.is_set():
                    verified = await self._verify_preset(target)

            keyspace = tuple(sorted(observed.union(written)))
            self._keyspace = keyspace

            if self._stop_event.is_set():
                logger.info("Stop requested during boot, workers not started")
            else:
                if not keyspace:
                    raise RuntimeError("Keyspace is empty after boot, nothing to drive")

                self.metrics.set_keyspace_size(len(keyspace))
                logger.info(f"Key size now is {len(keyspace)}")

                self._start_workers()
                logger.info(f"Started {len(self._workers)} workers")

        return BootReport(
            observed_count=len(observed),
            target_size=target,
            shortfall=shortfall,
            keyspace_size=len(keyspace),
            workers=len(self._workers),
            preset=preset,
            verified_count=verified,
        )

    async def _verify_preset(self, target: int) -> int | None:
        """Re-scan after preset and warn when the store falls short."""
        try:
            count = len(await self.store.scan_all_keys())
        except Exception as e:
            logger.warning(f"Post-preset verification scan failed: {type(e).__name__}: {e}")
            return None

        if count < target:
            logger.warning(f"Store holds {count} keys after preset, expected at least {target}")
        return count

    def _build_limiters(self, count: int) -> list[RateLimiter]:
        def make() -> RateLimiter:
            return RateLimiter(
                self.settings.thread_rate_limit,
                window_seconds=self.settings.rate_limit_window_seconds,
                wait_timeout=self.settings.rate_limit_timeout_seconds,
            )

        if self.settings.rate_limit_scope == "global":
            shared = make()
            return [shared] * count
        return [make() for _ in range(count)]

    def _start_workers(self) -> None:
        count = self.settings.thread_num
        limiters = self._build_limiters(count)

        self._workers = []
        self._tasks = []
        for i in range(count):
            worker_rng = random.Random(self._rng.getrandbits(64))
            worker = Worker(
                worker_id=i,
                store=self.store,
                keys=self._keyspace,
                limiter=limiters[i],
                mix=OperationMix(
                    self.settings.read_rate_percent,
                    self.settings.update_rate_percent,
                    rng=random.Random(worker_rng.getrandbits(64)),
                ),
                metrics=self.metrics,
                data_size=self.settings.data_size,
                rng=worker_rng,
            )
            self._workers.append(worker)
            self._tasks.append(
                asyncio.create_task(worker.run(self._stop_event), name=f"kvload-worker-{i}")
            )

    def request_stop(self) -> None:
        """Signal workers to stop after their in-flight call (non-blocking)."""
        if not self._stop_event.is_set():
            logger.info("Stop requested")
        self._stop_event.set()

    async def stop(self) -> None:
        """Stop all workers and wait for them to exit."""
        self.request_stop()
        await self.wait()

    async def wait(self) -> None:
        """Wait for every worker task to finish."""
        if not self._tasks:
            return
        results = await asyncio.gather(*self._tasks, return_exceptions=True)
        for worker, result in zip(self._workers, results):
            if isinstance(result, BaseException) and not isinstance(result, asyncio.CancelledError):
                logger.error(
                    f"Worker {worker.worker_id} exited with {type(result).__name__}: {result}"
                )

    def totals(self) -> WorkerStats:
        """Sum of every worker's counters."""
        total = WorkerStats()
        for worker in self._workers:
            for f in fields(WorkerStats):
                setattr(total, f.name, getattr(total, f.name) + getattr(worker.stats, f.name))
        return total

    async def run(self, duration_seconds: float | None = None) -> RunSummary:
        """Boot, drive load until stopped or ``duration_seconds`` elapse, then stop."""
        started = time.monotonic()
        report = await self.boot()

        stop_waiter = asyncio.create_task(self._stop_event.wait())
        try:
            await asyncio.wait(
                [stop_waiter, *self._tasks],
                timeout=duration_seconds,
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            stop_waiter.cancel()
            await self.stop()

        summary = RunSummary(
            started_at_monotonic=started,
            ended_at_monotonic=time.monotonic(),
            boot=report,
            totals=self.totals(),
        )
        logger.info(
            f"Run finished: {summary.totals.attempts} operations in "
            f"{summary.duration_seconds:.2f}s ({summary.throughput_ops:.1f} ops/s), "
            f"{summary.totals.failures} failed, {summary.totals.throttled} throttled"
        )
        return summary

"""Global pytest configuration and fixtures.

Provides in-memory doubles for the store and metrics sink, a fake clock
for deterministic rate-limit tests, and a settings factory that ignores
any local .env file.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import pytest

from kvload.config import Settings
from kvload.models import OperationKind, OperationRecord, Outcome
from kvload.observability.metrics import MetricsSink
from kvload.store.base import StoreClient


class FakeStore(StoreClient):
    """Dict-backed StoreClient with failure injection and call tracking."""

    def __init__(self, initial: dict[str, bytes] | None = None) -> None:
        self.data: dict[str, bytes] = dict(initial or {})
        self.calls: list[tuple[str, str]] = []
        self.set_calls = 0
        self.get_calls = 0
        self.scan_calls = 0
        self.fail_next = 0
        self.fail_keys: set[str] = set()
        self.scan_error: Exception | None = None
        self.delay = 0.0
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed = False

    async def _call(self, op: str, key: str) -> None:
        self.calls.append((op, key))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if self.fail_next > 0:
                self.fail_next -= 1
                raise ConnectionError("injected failure")
            if key in self.fail_keys:
                raise TimeoutError(f"injected timeout for {key}")
        finally:
            self.in_flight -= 1

    async def scan_all_keys(self) -> set[str]:
        self.scan_calls += 1
        if self.scan_error is not None:
            raise self.scan_error
        return set(self.data)

    async def get(self, key: str) -> bytes | None:
        self.get_calls += 1
        await self._call("get", key)
        return self.data.get(key)

    async def set(self, key: str, value: bytes) -> None:
        self.set_calls += 1
        await self._call("set", key)
        self.data[key] = value

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        self.closed = True


class RecordingSink(MetricsSink):
    """MetricsSink that keeps every observation."""

    def __init__(self) -> None:
        self.records: list[OperationRecord] = []
        self.throttled = 0
        self.keyspace_size: int | None = None

    def record(
        self,
        kind: OperationKind,
        latency_seconds: float,
        outcome: Outcome,
        *,
        error_type: str | None = None,
    ) -> None:
        self.records.append(
            OperationRecord(
                kind=kind,
                key="",
                latency_seconds=latency_seconds,
                outcome=outcome,
                error_type=error_type,
            )
        )

    def record_throttled(self) -> None:
        self.throttled += 1

    def set_keyspace_size(self, size: int) -> None:
        self.keyspace_size = size

    def of_kind(self, kind: OperationKind) -> list[OperationRecord]:
        return [r for r in self.records if r.kind is kind]


class FakeClock:
    """Monotonic clock whose sleep advances time instantly."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def store_factory() -> Callable[..., FakeStore]:
    return FakeStore


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    """Build Settings from keyword overrides with small test defaults."""

    def _make(**overrides: Any) -> Settings:
        values: dict[str, Any] = {
            "dataset_size": 10,
            "data_size": 16,
            "thread_num": 2,
            "preset_thread_num": 2,
            "thread_rate_limit": 1000,
            "enable_metrics": False,
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make

"""Tests for the preset coordinator."""

import asyncio

import pytest

from kvload.models import OperationKind, Outcome
from kvload.workload.preset import PresetCoordinator


class TestPresetCoordinator:
    """Tests for PresetCoordinator.preset_all."""

    def test_invalid_pool_size(self, fake_store, sink) -> None:
        with pytest.raises(ValueError):
            PresetCoordinator(fake_store, sink, pool_size=0)

    @pytest.mark.asyncio
    async def test_empty_keys_is_noop(self, fake_store, sink) -> None:
        """No keys means no writes and no metrics."""
        result = await PresetCoordinator(fake_store, sink, pool_size=4).preset_all([])

        assert result.attempted == 0
        assert fake_store.set_calls == 0
        assert sink.records == []

    @pytest.mark.asyncio
    async def test_writes_every_key_once(self, fake_store, sink) -> None:
        """Each key is written exactly once with the configured payload size."""
        keys = [f"key-{i}" for i in range(37)]
        coordinator = PresetCoordinator(fake_store, sink, pool_size=5, data_size=32)

        result = await coordinator.preset_all(keys)

        assert result.attempted == result.written == 37
        assert sorted(result.written_keys) == sorted(keys)
        assert sorted(k for _, k in fake_store.calls) == sorted(keys)
        assert all(len(v) == 32 for v in fake_store.data.values())

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self, fake_store, sink) -> None:
        """No more than pool_size writes are in flight at once."""
        fake_store.delay = 0.001
        keys = [f"key-{i}" for i in range(40)]

        await PresetCoordinator(fake_store, sink, pool_size=3).preset_all(keys)

        assert fake_store.max_in_flight == 3

    @pytest.mark.asyncio
    async def test_failures_do_not_abort_batch(self, fake_store, sink) -> None:
        """Failed writes are counted and the rest still land."""
        keys = [f"key-{i}" for i in range(10)]
        fake_store.fail_keys = {"key-2", "key-7"}

        result = await PresetCoordinator(fake_store, sink, pool_size=2).preset_all(keys)

        assert result.attempted == 10
        assert result.written == 8
        assert result.failed == 2
        assert "key-2" not in result.written_keys
        assert len(fake_store.data) == 8

    @pytest.mark.asyncio
    async def test_each_write_reported_as_preset(self, fake_store, sink) -> None:
        """Every write produces one preset metric with its outcome."""
        keys = [f"key-{i}" for i in range(6)]
        fake_store.fail_keys = {"key-0"}

        await PresetCoordinator(fake_store, sink, pool_size=2).preset_all(keys)

        presets = sink.of_kind(OperationKind.PRESET)
        assert len(presets) == 6
        assert sum(r.outcome is Outcome.FAILURE for r in presets) == 1
        assert presets[0].latency_seconds >= 0

    @pytest.mark.asyncio
    async def test_stop_event_ends_batch_early(self, fake_store, sink) -> None:
        """Once stop is set no new key is taken; in-flight writes still land."""
        fake_store.delay = 0.005
        keys = [f"key-{i}" for i in range(30)]
        stop = asyncio.Event()
        coordinator = PresetCoordinator(fake_store, sink, pool_size=2)

        async def _stop_after_first_writes() -> None:
            while fake_store.set_calls < 2:
                await asyncio.sleep(0.001)
            stop.set()

        stopper = asyncio.create_task(_stop_after_first_writes())
        result = await coordinator.preset_all(keys, stop_event=stop)
        await stopper

        assert result.attempted < 30
        assert result.attempted == fake_store.set_calls
        assert result.written == len(fake_store.data)
        assert fake_store.in_flight == 0

    @pytest.mark.asyncio
    async def test_stop_event_already_set_writes_nothing(self, fake_store, sink) -> None:
        stop = asyncio.Event()
        stop.set()

        result = await PresetCoordinator(fake_store, sink, pool_size=3).preset_all(
            ["a", "b", "c"], stop_event=stop
        )

        assert result.attempted == 0
        assert fake_store.set_calls == 0

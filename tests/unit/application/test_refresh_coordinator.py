# nosec B101


import asyncio
import logging
from datetime import timedelta
from decimal import Decimal

import pytest

from domain.models.rates import CacheState
from infrastructure.cache.rate_store import LocalRateStore
from tests.conftest import NOW, FakeSource, build_engine, make_snapshot


class TestLazyRefresh:

    @pytest.mark.asyncio
    async def test_empty_cache_fetches_once(self, clock):
        source = FakeSource("primary", {"EGP": 30.5})
        _, coordinator = build_engine([source], clock)
        assert coordinator.state == CacheState.EMPTY

        snapshot = await coordinator.get_snapshot()

        assert snapshot.source == "primary"
        assert snapshot.rate_for("EGP") == Decimal("30.5")
        assert snapshot.fetched_at == NOW
        assert coordinator.state == CacheState.FRESH
        assert source.calls == 1

    @pytest.mark.asyncio
    async def test_fresh_snapshot_is_served_without_fetching(self, clock):
        source = FakeSource("primary", {"EGP": 30.5})
        _, coordinator = build_engine([source], clock)
        first = await coordinator.get_snapshot()
        clock.advance(minutes=59)

        second = await coordinator.get_snapshot()

        assert second is first
        assert source.calls == 1

    @pytest.mark.asyncio
    async def test_stale_snapshot_triggers_refresh(self, clock):
        source = FakeSource("primary", {"EGP": 30.5})
        _, coordinator = build_engine([source], clock)
        await coordinator.get_snapshot()
        clock.advance(hours=1)
        assert coordinator.state == CacheState.STALE
        source.rates = {"EGP": 31}

        snapshot = await coordinator.get_snapshot()

        assert snapshot.rate_for("EGP") == Decimal("31")
        assert source.calls == 2

    @pytest.mark.asyncio
    async def test_successful_refresh_is_saved_to_store(self, clock):
        store = LocalRateStore(clock=clock)
        _, coordinator = build_engine([FakeSource("primary", {"EGP": 30.5})], clock, store=store)

        snapshot = await coordinator.get_snapshot()
        await coordinator.flush()

        assert store.peek() is snapshot


class TestSingleFlight:

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_fetch(self, clock):
        source = FakeSource("primary", {"EGP": 30.5}, delay=0.05)
        _, coordinator = build_engine([source], clock)

        snapshots = await asyncio.gather(*(coordinator.get_snapshot() for _ in range(20)))

        assert source.calls == 1
        assert all(snapshot is snapshots[0] for snapshot in snapshots)

    @pytest.mark.asyncio
    async def test_state_is_refreshing_while_in_flight(self, clock):
        source = FakeSource("primary", {"EGP": 30.5}, delay=0.05)
        _, coordinator = build_engine([source], clock)

        task = asyncio.create_task(coordinator.get_snapshot())
        await asyncio.sleep(0.01)
        assert coordinator.state == CacheState.REFRESHING

        await task
        assert coordinator.state == CacheState.FRESH

    @pytest.mark.asyncio
    async def test_cancelled_waiter_does_not_cancel_refresh(self, clock):
        source = FakeSource("primary", {"EGP": 30.5}, delay=0.05)
        _, coordinator = build_engine([source], clock)

        first = asyncio.create_task(coordinator.get_snapshot())
        second = asyncio.create_task(coordinator.get_snapshot())
        await asyncio.sleep(0.01)
        first.cancel()

        snapshot = await second

        assert snapshot.source == "primary"
        assert source.calls == 1

    @pytest.mark.asyncio
    async def test_force_refresh_joins_in_flight_refresh(self, clock):
        source = FakeSource("primary", {"EGP": 30.5}, delay=0.05)
        _, coordinator = build_engine([source], clock)

        lazy, forced = await asyncio.gather(coordinator.get_snapshot(), coordinator.force_refresh())

        assert forced.snapshot is lazy
        assert source.calls == 1


class TestFailureHandling:

    @pytest.mark.asyncio
    async def test_stale_rates_served_when_refresh_fails(self, clock):
        source = FakeSource("primary", {"AED": 3.67})
        _, coordinator = build_engine([source], clock)
        original = await coordinator.get_snapshot()
        clock.advance(hours=2)
        source.error = RuntimeError("upstream down")

        snapshot = await coordinator.get_snapshot()

        assert snapshot is original
        assert coordinator.state == CacheState.STALE
        assert "All rate sources failed" in str(coordinator.last_error)

    @pytest.mark.asyncio
    async def test_failed_refresh_is_retried_on_next_read(self, clock):
        source = FakeSource("primary", {"AED": 3.67})
        _, coordinator = build_engine([source], clock)
        await coordinator.get_snapshot()
        clock.advance(hours=2)
        source.error = RuntimeError("upstream down")
        await coordinator.get_snapshot()

        source.error = None
        source.rates = {"AED": 3.68}
        snapshot = await coordinator.get_snapshot()

        assert snapshot.rate_for("AED") == Decimal("3.68")
        assert source.calls == 3
        assert coordinator.last_error is None

    @pytest.mark.asyncio
    async def test_identity_snapshot_when_nothing_was_ever_fetched(self, clock):
        source = FakeSource("primary", error=RuntimeError("upstream down"))
        _, coordinator = build_engine([source], clock)

        snapshot = await coordinator.get_snapshot()

        assert snapshot.is_synthetic is True
        assert dict(snapshot.rates) == {"USD": Decimal("1")}

    @pytest.mark.asyncio
    async def test_identity_snapshot_is_never_fresh_nor_saved(self, clock):
        store = LocalRateStore(clock=clock)
        source = FakeSource("primary", error=RuntimeError("upstream down"))
        _, coordinator = build_engine([source], clock, store=store)

        await coordinator.get_snapshot()
        await coordinator.get_snapshot()

        assert source.calls == 2
        assert coordinator.state == CacheState.STALE
        assert store.peek() is None

    @pytest.mark.asyncio
    async def test_recovers_from_identity_once_upstream_returns(self, clock):
        source = FakeSource("primary", error=RuntimeError("upstream down"))
        _, coordinator = build_engine([source], clock)
        await coordinator.get_snapshot()

        source.error = None
        source.rates = {"EGP": 30.5}
        snapshot = await coordinator.get_snapshot()

        assert snapshot.is_synthetic is False
        assert snapshot.rate_for("EGP") == Decimal("30.5")


class TestForceRefresh:

    @pytest.mark.asyncio
    async def test_force_refresh_ignores_freshness(self, clock):
        source = FakeSource("primary", {"EGP": 30.5})
        _, coordinator = build_engine([source], clock)
        await coordinator.get_snapshot()
        source.rates = {"EGP": 31}

        outcome = await coordinator.force_refresh()

        assert outcome.succeeded is True
        assert outcome.snapshot.rate_for("EGP") == Decimal("31")
        assert source.calls == 2

    @pytest.mark.asyncio
    async def test_failed_force_refresh_keeps_previous_snapshot(self, clock):
        source = FakeSource("primary", {"EGP": 30.5})
        _, coordinator = build_engine([source], clock)
        previous = await coordinator.get_snapshot()
        source.error = RuntimeError("upstream down")

        outcome = await coordinator.force_refresh()

        assert outcome.succeeded is False
        assert outcome.snapshot is previous
        assert coordinator.peek() is previous
        assert outcome.error is not None

    @pytest.mark.asyncio
    async def test_failed_force_refresh_falls_back_to_stored_snapshot(self, clock):
        store = LocalRateStore(clock=clock)
        stored = make_snapshot({"AED": 3.67}, fetched_at=NOW - timedelta(hours=2), source="other-instance")
        await store.save(stored)
        engine, coordinator = build_engine([FakeSource("primary", error=RuntimeError("down"))], clock, store=store)

        outcome = await coordinator.force_refresh()

        assert outcome.succeeded is False
        assert outcome.snapshot is stored
        assert coordinator.peek() is stored
        assert await engine.convert(10, "AED") == Decimal("36.70")

    @pytest.mark.asyncio
    async def test_failed_force_refresh_with_empty_store_uses_identity(self, clock):
        _, coordinator = build_engine([FakeSource("primary", error=RuntimeError("down"))], clock)

        outcome = await coordinator.force_refresh()

        assert outcome.snapshot.is_synthetic is True

    @pytest.mark.asyncio
    async def test_force_refresh_fetches_after_joining_refresh_served_from_store(self, clock, caplog):
        store = LocalRateStore(clock=clock)
        await store.save(make_snapshot({"EGP": 30.5}, fetched_at=NOW - timedelta(minutes=10), source="other-instance"))
        source = FakeSource("primary", {"EGP": 31})
        _, coordinator = build_engine([source], clock, store=store)

        with caplog.at_level(logging.INFO, logger="application.services.refresh_coordinator"):
            lazy, forced = await asyncio.gather(coordinator.get_snapshot(), coordinator.force_refresh())

        assert lazy.source == "other-instance"
        assert forced.from_store is False
        assert forced.snapshot.source == "primary"
        assert source.calls == 1
        assert "joined a refresh served from the store" in caplog.text


class TestBackgroundSave:

    class SlowSaveStore(LocalRateStore):
        async def save(self, snapshot):
            await asyncio.sleep(0.5)
            await super().save(snapshot)

    @pytest.mark.asyncio
    async def test_waiters_are_released_before_save_completes(self, clock):
        store = self.SlowSaveStore(clock=clock)
        _, coordinator = build_engine([FakeSource("primary", {"EGP": 30.5})], clock, store=store)

        snapshot = await asyncio.wait_for(coordinator.get_snapshot(), timeout=0.2)

        assert snapshot.source == "primary"
        assert store.peek() is None

        await coordinator.flush()
        assert store.peek() is snapshot

    @pytest.mark.asyncio
    async def test_failed_save_is_logged(self, clock, caplog):
        store = LocalRateStore(clock=clock)

        async def broken_save(snapshot):
            raise ConnectionError("store down")

        store.save = broken_save
        _, coordinator = build_engine([FakeSource("primary", {"EGP": 30.5})], clock, store=store)

        with caplog.at_level(logging.ERROR, logger="application.services.refresh_coordinator"):
            await coordinator.get_snapshot()
            await coordinator.flush()

        assert "Failed to save rates to local store: store down" in caplog.text


class TestSharedStoreAdoption:

    @pytest.mark.asyncio
    async def test_fresh_stored_snapshot_is_adopted_without_fetching(self, clock):
        store = LocalRateStore(clock=clock)
        stored = make_snapshot({"EGP": 30.5}, fetched_at=NOW - timedelta(minutes=10), source="other-instance")
        await store.save(stored)
        source = FakeSource("primary", {"EGP": 31})
        _, coordinator = build_engine([source], clock, store=store)

        outcome = await coordinator.initialize()

        assert outcome.from_store is True
        assert outcome.snapshot is stored
        assert source.calls == 0

    @pytest.mark.asyncio
    async def test_stale_stored_snapshot_is_refreshed(self, clock):
        store = LocalRateStore(clock=clock)
        await store.save(make_snapshot({"EGP": 30.5}, fetched_at=NOW - timedelta(hours=3)))
        source = FakeSource("primary", {"EGP": 31})
        _, coordinator = build_engine([source], clock, store=store)

        snapshot = await coordinator.get_snapshot()

        assert snapshot.rate_for("EGP") == Decimal("31")
        assert source.calls == 1

    @pytest.mark.asyncio
    async def test_stale_stored_snapshot_is_served_when_upstream_fails(self, clock):
        store = LocalRateStore(clock=clock)
        stored = make_snapshot({"EGP": 30.5}, fetched_at=NOW - timedelta(hours=3))
        await store.save(stored)
        _, coordinator = build_engine([FakeSource("primary", error=RuntimeError("down"))], clock, store=store)

        snapshot = await coordinator.get_snapshot()

        assert snapshot is stored


@pytest.mark.asyncio
async def test_status(clock):
    _, coordinator = build_engine([FakeSource("primary", {"EGP": 30.5})], clock)
    await coordinator.get_snapshot()
    clock.advance(minutes=5)

    status = coordinator.status()

    assert status["state"] == "FRESH"
    assert status["source"] == "primary"
    assert status["age_seconds"] == 300
    assert status["rates_count"] == 2
    assert status["store_backend"] == "local"
    assert status["last_error"] is None

"""Tests for the CachedQueryService machinery."""

from __future__ import annotations

import asyncio
import logging
import time

import pytest

from gitscribe.config import CacheConfig
from gitscribe.events import GitEvent, InMemoryEventBus
from gitscribe.exceptions import FetchError, ServiceDisposedError
from gitscribe.services.base import CachedQueryService

NO_DEBOUNCE = CacheConfig(debounce_seconds=0)


class EchoService(CachedQueryService[str, str]):
    """Keys are paths; results are whatever the fetcher returns."""

    name = "echo"
    path_events = (GitEvent.FILES_STAGED,)
    flush_events = (GitEvent.COMMIT_CREATED,)

    def _key_path(self, key: str) -> str | None:
        return key


class RecordingFetcher:
    """Async fetcher returning ``"<key>#<call number>"``.

    When ``gate`` is set, every call blocks until the gate opens.
    """

    def __init__(self, *, gate: asyncio.Event | None = None) -> None:
        self.calls: list[str] = []
        self.gate = gate

    async def __call__(self, key: str) -> str:
        self.calls.append(key)
        number = len(self.calls)
        if self.gate is not None:
            await self.gate.wait()
        return f"{key}#{number}"


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TestGet:
    """Tests for fetching and caching."""

    @pytest.mark.asyncio
    async def test_result_is_cached(self) -> None:
        fetcher = RecordingFetcher()
        service = EchoService(fetcher, config=NO_DEBOUNCE)

        assert await service.get("a") == "a#1"
        assert await service.get("a") == "a#1"

        stats = service.cache_stats()
        assert fetcher.calls == ["a"]
        assert (stats.hits, stats.misses, stats.fetches) == (1, 1, 1)
        assert service.peek("a") == "a#1"

    @pytest.mark.asyncio
    async def test_use_cache_false_refetches(self) -> None:
        fetcher = RecordingFetcher()
        service = EchoService(fetcher, config=NO_DEBOUNCE)

        await service.get("a")
        assert await service.get("a", use_cache=False) == "a#2"
        assert service.peek("a") == "a#2"

    @pytest.mark.asyncio
    async def test_sync_fetcher_accepted(self) -> None:
        service = EchoService(str.upper, config=NO_DEBOUNCE)

        assert await service.get("abc") == "ABC"

    @pytest.mark.asyncio
    async def test_missing_fetcher_yields_none(self) -> None:
        service = EchoService(config=NO_DEBOUNCE)

        assert await service.get("a") is None
        assert service.cache_stats().fetches == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [RuntimeError("git exploded"), FetchError("git exited 128", key="a", service="echo")],
    )
    async def test_fetch_failure_yields_none_and_is_not_cached(
        self, caplog: pytest.LogCaptureFixture, error: Exception
    ) -> None:
        attempts: list[str] = []

        def failing(key: str) -> str:
            attempts.append(key)
            raise error

        service = EchoService(failing, config=NO_DEBOUNCE)

        with caplog.at_level(logging.WARNING):
            assert await service.get("a") is None
        assert await service.get("a") is None

        assert attempts == ["a", "a"]
        assert service.cache_stats().failures == 2
        assert "fetch_failed" in caplog.text

    @pytest.mark.asyncio
    async def test_disabled_cache_always_fetches(self) -> None:
        fetcher = RecordingFetcher()
        service = EchoService(fetcher, config=CacheConfig(debounce_seconds=0, enabled=False))

        await service.get("a")
        await service.get("a")

        assert fetcher.calls == ["a", "a"]
        assert not service.is_cached("a")


class TestSingleFlight:
    @pytest.mark.asyncio
    async def test_concurrent_gets_share_one_fetch(self) -> None:
        gate = asyncio.Event()
        fetcher = RecordingFetcher(gate=gate)
        service = EchoService(fetcher, config=NO_DEBOUNCE)

        first = asyncio.create_task(service.get("a"))
        second = asyncio.create_task(service.get("a"))
        await asyncio.sleep(0)
        gate.set()

        assert await asyncio.gather(first, second) == ["a#1", "a#1"]
        assert fetcher.calls == ["a"]

    @pytest.mark.asyncio
    async def test_different_keys_fetch_independently(self) -> None:
        fetcher = RecordingFetcher()
        service = EchoService(fetcher, config=NO_DEBOUNCE)

        results = await asyncio.gather(service.get("a"), service.get("b"))

        assert sorted(results) == ["a#1", "b#2"] or sorted(results) == ["a#2", "b#1"]
        assert sorted(fetcher.calls) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_blocking_sync_fetcher_does_not_serialise_keys(self) -> None:
        def slow_git(key: str) -> str:
            time.sleep(0.3)
            return key.upper()

        service = EchoService(slow_git, config=NO_DEBOUNCE)
        loop = asyncio.get_running_loop()

        started = loop.time()
        results = await asyncio.gather(service.get("a"), service.get("b"))
        elapsed = loop.time() - started

        assert results == ["A", "B"]
        assert elapsed < 0.55

    @pytest.mark.asyncio
    async def test_slow_key_does_not_block_other_keys(self) -> None:
        gate = asyncio.Event()

        async def fetch(key: str) -> str:
            if key == "slow":
                await gate.wait()
            return key

        service = EchoService(fetch, config=NO_DEBOUNCE)

        slow = asyncio.create_task(service.get("slow"))
        await asyncio.sleep(0)

        assert await asyncio.wait_for(service.get("fast"), timeout=1) == "fast"
        assert not slow.done()

        gate.set()
        assert await slow == "slow"
        assert service.is_cached("fast") and service.is_cached("slow")

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_cancel_shared_fetch(self) -> None:
        gate = asyncio.Event()
        fetcher = RecordingFetcher(gate=gate)
        service = EchoService(fetcher, config=NO_DEBOUNCE)

        doomed = asyncio.create_task(service.get("a"))
        survivor = asyncio.create_task(service.get("a"))
        await asyncio.sleep(0)
        doomed.cancel()
        gate.set()

        assert await survivor == "a#1"
        assert service.peek("a") == "a#1"


class TestDebounce:
    """A burst of debounced requests collapses into one fetch."""

    @pytest.mark.asyncio
    async def test_burst_collapses(self) -> None:
        fetcher = RecordingFetcher()
        service = EchoService(fetcher, config=CacheConfig(debounce_seconds=0.05))

        results = await asyncio.gather(*(service.get("a") for _ in range(5)))

        assert results == ["a#1"] * 5
        assert fetcher.calls == ["a"]

    @pytest.mark.asyncio
    async def test_new_request_rearms_window(self) -> None:
        fetcher = RecordingFetcher()
        service = EchoService(fetcher, config=CacheConfig(debounce_seconds=0.3))

        first = asyncio.create_task(service.get("a"))
        await asyncio.sleep(0.15)
        second = asyncio.create_task(service.get("a"))
        await asyncio.sleep(0.2)

        # The original window would have fired by now
        assert fetcher.calls == []

        assert await asyncio.gather(first, second) == ["a#1", "a#1"]
        assert fetcher.calls == ["a"]

    @pytest.mark.asyncio
    async def test_undebounced_request_fires_pending_fetch(self) -> None:
        fetcher = RecordingFetcher()
        service = EchoService(fetcher, config=CacheConfig(debounce_seconds=10))

        waiting = asyncio.create_task(service.get("a"))
        await asyncio.sleep(0)

        result = await asyncio.wait_for(service.get("a", debounce=False), timeout=1)

        assert result == "a#1"
        assert await asyncio.wait_for(waiting, timeout=1) == "a#1"


class TestInvalidation:
    """Invalidated results are delivered but never cached."""

    @pytest.mark.asyncio
    async def test_invalidate_removes_entry(self) -> None:
        service = EchoService(RecordingFetcher(), config=NO_DEBOUNCE)
        await service.get("a")

        assert service.invalidate("a") is True
        assert service.invalidate("a") is False
        assert not service.is_cached("a")

    @pytest.mark.asyncio
    async def test_result_of_invalidated_fetch_is_discarded(self) -> None:
        gate = asyncio.Event()
        fetcher = RecordingFetcher(gate=gate)
        service = EchoService(fetcher, config=NO_DEBOUNCE)

        stale = asyncio.create_task(service.get("a"))
        await asyncio.sleep(0)
        service.invalidate("a")
        gate.set()

        assert await stale == "a#1"
        assert not service.is_cached("a")
        assert service.cache_stats().discarded == 1

    @pytest.mark.asyncio
    async def test_get_after_invalidate_starts_fresh_fetch(self) -> None:
        gate = asyncio.Event()
        fetcher = RecordingFetcher(gate=gate)
        service = EchoService(fetcher, config=NO_DEBOUNCE)

        stale = asyncio.create_task(service.get("a"))
        await asyncio.sleep(0)
        service.invalidate("a")
        fresh = asyncio.create_task(service.get("a"))
        await asyncio.sleep(0)
        gate.set()

        assert await stale == "a#1"
        assert await fresh == "a#2"
        assert service.peek("a") == "a#2"

    @pytest.mark.asyncio
    async def test_invalidate_all_discards_running_fetches(self) -> None:
        gate = asyncio.Event()
        fetcher = RecordingFetcher(gate=gate)
        service = EchoService(fetcher, config=NO_DEBOUNCE)
        gate.set()
        await service.get("a")
        await service.get("b")
        gate.clear()

        running = asyncio.create_task(service.get("c"))
        await asyncio.sleep(0)

        assert service.invalidate_all() == 2
        gate.set()
        await running

        assert service.cache_stats().total_entries == 0

    @pytest.mark.asyncio
    async def test_invalidation_bookkeeping_is_released(self) -> None:
        gate = asyncio.Event()
        service = EchoService(RecordingFetcher(gate=gate), config=NO_DEBOUNCE)

        for n in range(100):
            service.invalidate(f"never-fetched-{n}")
        running = asyncio.create_task(service.get("a"))
        await asyncio.sleep(0)
        service.invalidate("a")
        gate.set()
        await running

        assert service._tickets == {}
        assert not service.is_cached("a")

    @pytest.mark.asyncio
    async def test_invalidate_path_normalises(self) -> None:
        service = EchoService(RecordingFetcher(), config=NO_DEBOUNCE)
        await service.get("src/app.py")
        await service.get("src/other.py")

        assert service.invalidate_path("src/./app.py") == 1
        assert not service.is_cached("src/app.py")
        assert service.is_cached("src/other.py")


class TestExpiry:
    @pytest.mark.asyncio
    async def test_ttl(self) -> None:
        clock = FakeClock()
        fetcher = RecordingFetcher()
        service = EchoService(
            fetcher, config=CacheConfig(debounce_seconds=0, ttl_seconds=10), clock=clock
        )

        await service.get("a")
        clock.now = 9.0
        assert await service.get("a") == "a#1"

        clock.now = 10.5
        assert await service.get("a") == "a#2"

    @pytest.mark.asyncio
    async def test_clear_expired(self) -> None:
        clock = FakeClock()
        service = EchoService(RecordingFetcher(), config=NO_DEBOUNCE, clock=clock)
        await service.get("old")
        clock.now = 5.0
        await service.get("new")

        assert service.clear_expired(max_age=3) == 1
        assert service.cache_stats().total_entries == 1
        assert service.clear_expired() == 0


class TestEvents:
    @pytest.mark.asyncio
    async def test_path_event_invalidates_matching_keys(
        self, event_bus: InMemoryEventBus
    ) -> None:
        service = EchoService(RecordingFetcher(), event_bus=event_bus, config=NO_DEBOUNCE)
        await service.get("a.py")
        await service.get("b.py")

        event_bus.publish(GitEvent.FILES_STAGED.value, {"paths": ["a.py"]})

        assert not service.is_cached("a.py")
        assert service.is_cached("b.py")

    @pytest.mark.asyncio
    async def test_flush_event_invalidates_everything(
        self, event_bus: InMemoryEventBus
    ) -> None:
        service = EchoService(RecordingFetcher(), event_bus=event_bus, config=NO_DEBOUNCE)
        await service.get("a.py")

        event_bus.publish(GitEvent.COMMIT_CREATED.value)

        assert service.cache_stats().total_entries == 0

    def test_dispose_unsubscribes(self, event_bus: InMemoryEventBus) -> None:
        service = EchoService(event_bus=event_bus)
        assert event_bus.handler_count() == 2

        service.dispose()

        assert event_bus.handler_count() == 0


class TestTracking:
    @pytest.mark.asyncio
    async def test_enable_fetches_and_tracks(self) -> None:
        fetcher = RecordingFetcher()
        service = EchoService(fetcher, config=NO_DEBOUNCE)
        await service.get("a")

        assert await service.enable("a") == "a#2"
        assert service.is_active("a")
        assert service.active_keys == frozenset({"a"})

    @pytest.mark.asyncio
    async def test_toggle(self) -> None:
        service = EchoService(RecordingFetcher(), config=NO_DEBOUNCE)

        assert await service.toggle("a") is True
        assert await service.toggle("a") is False
        assert not service.is_active("a")
        # Disabling leaves the entry to expire naturally
        assert service.is_cached("a")

    @pytest.mark.asyncio
    async def test_stats_report_active_entries(self) -> None:
        service = EchoService(RecordingFetcher(), config=NO_DEBOUNCE)
        await service.enable("a")
        await service.get("b")

        data = service.cache_stats().to_dict()

        assert data["service"] == "echo"
        assert data["active_keys"] == 1
        assert {(e["key"], e["is_active"]) for e in data["entries"]} == {
            ("a", True),
            ("b", False),
        }


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_dispose_releases_waiters(self) -> None:
        service = EchoService(RecordingFetcher(), config=CacheConfig(debounce_seconds=10))

        waiting = asyncio.create_task(service.get("a"))
        await asyncio.sleep(0)
        service.dispose()

        assert await waiting is None
        assert service.is_disposed

    @pytest.mark.asyncio
    async def test_dispose_cancels_running_fetch(self) -> None:
        gate = asyncio.Event()
        service = EchoService(RecordingFetcher(gate=gate), config=NO_DEBOUNCE)

        waiting = asyncio.create_task(service.get("a"))
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        service.dispose()

        assert await waiting is None

    @pytest.mark.asyncio
    async def test_use_after_dispose_raises(self) -> None:
        service = EchoService(RecordingFetcher(), config=NO_DEBOUNCE)
        service.dispose()
        service.dispose()

        with pytest.raises(ServiceDisposedError) as exc_info:
            await service.get("a")
        assert exc_info.value.service == "echo"

    @pytest.mark.asyncio
    async def test_async_context_manager(self) -> None:
        async with EchoService(RecordingFetcher(), config=NO_DEBOUNCE) as service:
            assert await service.get("a") == "a#1"

        assert service.is_disposed

"""CachedQueryService base class.

Every query family (blame, diff, branch listing) wraps an injected fetcher
with the same machinery:

- a keyed store of timestamped results with a per-service TTL;
- single flight: all concurrent ``get`` calls for one key share one future,
  so at most one fetch per key is in flight while other keys proceed;
- debounce: a debounced ``get`` (re)arms a per-key ``loop.call_later``
  timer, so a burst of calls collapses into one fetch fired after the burst;
- tickets: every running fetch holds a ticket that ``invalidate`` and
  ``invalidate_all`` mark stale. A result is stored only if its ticket is
  still fresh, so an invalidated result is never cached. Callers already
  waiting still receive it. Tickets live only while their fetch runs;
- plain-function fetchers run in a worker thread, so a blocking git call
  for one key never stalls the event loop or other keys.
"""

from __future__ import annotations

import asyncio
import inspect
import os
import time
from abc import ABC
from collections.abc import Awaitable, Callable, Hashable
from dataclasses import dataclass
from typing import Any, ClassVar, Generic, TypeVar

from gitscribe.config import CacheConfig
from gitscribe.events import EventBus, EventHandler, GitEvent, paths_from_payload
from gitscribe.exceptions import ServiceDisposedError
from gitscribe.logging import get_logger

__all__ = [
    "CacheEntry",
    "CacheEntryInfo",
    "CacheStats",
    "CachedQueryService",
    "Fetcher",
]

logger = get_logger(__name__)

# =============================================================================
# Type Variables
# =============================================================================

K = TypeVar("K", bound=Hashable)
R = TypeVar("R")

#: Fetcher signature: key -> parsed result, raw git text, or None.
#: Coroutine functions are awaited; plain functions run in a worker thread.
Fetcher = Callable[[K], Any]

Clock = Callable[[], float]


def _is_async_callable(obj: Any) -> bool:
    return inspect.iscoroutinefunction(obj) or inspect.iscoroutinefunction(
        getattr(obj, "__call__", None)
    )

# =============================================================================
# Value Objects
# =============================================================================


@dataclass(frozen=True, slots=True)
class CacheEntry(Generic[R]):
    """A stored query result.

    Attributes:
        result: The parsed result (None when git reported nothing).
        revision: Revision the result was computed against, if any.
        timestamp: Clock reading when the result was stored.
    """

    result: R | None
    revision: str | None
    timestamp: float

    def age(self, now: float) -> float:
        return now - self.timestamp


@dataclass(frozen=True, slots=True)
class CacheEntryInfo:
    key: str
    age_seconds: float
    is_active: bool
    revision: str | None = None


@dataclass(frozen=True, slots=True)
class CacheStats:
    """Snapshot of a service's cache state and counters."""

    service: str
    total_entries: int
    active_keys: int
    pending_fetches: int
    hits: int
    misses: int
    fetches: int
    failures: int
    discarded: int
    entries: tuple[CacheEntryInfo, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "service": self.service,
            "total_entries": self.total_entries,
            "active_keys": self.active_keys,
            "pending_fetches": self.pending_fetches,
            "hits": self.hits,
            "misses": self.misses,
            "fetches": self.fetches,
            "failures": self.failures,
            "discarded": self.discarded,
            "entries": [
                {
                    "key": e.key,
                    "age_seconds": e.age_seconds,
                    "is_active": e.is_active,
                    "revision": e.revision,
                }
                for e in self.entries
            ],
        }


@dataclass(slots=True, eq=False)
class _FetchTicket:
    """Held by one running fetch; marked stale when its key is invalidated."""

    stale: bool = False


@dataclass(slots=True)
class _PendingFetch:
    future: asyncio.Future[Any]
    timer: asyncio.TimerHandle | None = None
    task: asyncio.Task[None] | None = None

    @property
    def launched(self) -> bool:
        return self.task is not None


# =============================================================================
# Base Service
# =============================================================================


class CachedQueryService(ABC, Generic[K, R]):
    """Cache, debounce, and invalidation around one query family.

    Subclasses set :attr:`name`, the event tuples, and override
    :meth:`_coerce` to turn raw fetcher output into ``R``.

    Type Parameters:
        K: Hashable query key.
        R: Parsed result type.

    Args:
        fetcher: Callable producing the result for a key. May be None, in
            which case every fetch logs a warning and yields None.
        event_bus: Bus to subscribe invalidation handlers on.
        config: Cache timings; defaults to :meth:`default_config`.
        clock: Monotonic clock, injectable for tests.
    """

    #: Service name used in logs and stats
    name: ClassVar[str] = "cache"

    #: Events whose payload names paths to invalidate
    path_events: ClassVar[tuple[GitEvent, ...]] = ()

    #: Events that invalidate every entry
    flush_events: ClassVar[tuple[GitEvent, ...]] = ()

    def __init__(
        self,
        fetcher: Fetcher[K] | None = None,
        *,
        event_bus: EventBus | None = None,
        config: CacheConfig | None = None,
        clock: Clock = time.monotonic,
    ) -> None:
        self._fetcher = fetcher
        self._bus = event_bus
        self._config = config or self.default_config()
        self._clock = clock
        self._log = logger.bind(service=self.name)

        self._store: dict[K, CacheEntry[R]] = {}
        self._pending: dict[K, _PendingFetch] = {}
        self._tickets: dict[K, set[_FetchTicket]] = {}
        self._active: set[K] = set()
        self._background: set[asyncio.Task[Any]] = set()
        self._subscriptions: list[tuple[str, EventHandler]] = []
        self._disposed = False

        self._hits = 0
        self._misses = 0
        self._fetches = 0
        self._failures = 0
        self._discarded = 0

        self._subscribe_events()

    @classmethod
    def default_config(cls) -> CacheConfig:
        return CacheConfig()

    @property
    def config(self) -> CacheConfig:
        return self._config

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def get(
        self,
        key: K,
        *,
        use_cache: bool = True,
        debounce: bool = True,
    ) -> R | None:
        """Return the result for ``key``, fetching it if needed.

        Args:
            key: Query identity.
            use_cache: Return a fresh stored result without fetching.
            debounce: Delay the fetch by the debounce window, re-arming the
                window if a debounced fetch for the key is already waiting.

        Returns:
            The result, or None when the fetch failed or no fetcher is set.

        Raises:
            ServiceDisposedError: If the service has been disposed.
        """
        self._ensure_open()

        if use_cache and self._config.enabled:
            entry = self._lookup(key)
            if entry is not None:
                self._hits += 1
                return entry.result
        self._misses += 1

        pending = self._pending.get(key)
        if pending is None:
            pending = self._schedule(key, debounce)
        elif not pending.launched:
            self._rearm(key, pending, debounce)

        return await asyncio.shield(pending.future)

    def peek(self, key: K) -> R | None:
        """Return a fresh stored result without fetching."""
        entry = self._lookup(key)
        return entry.result if entry is not None else None

    def is_cached(self, key: K) -> bool:
        return self._lookup(key) is not None

    # -------------------------------------------------------------------------
    # Invalidation
    # -------------------------------------------------------------------------

    def invalidate(self, key: K) -> bool:
        """Drop ``key`` so the next ``get`` fetches fresh data.

        A fetch already running for the key is detached: its callers still
        get its result, but the result is not stored. A debounced fetch that
        has not started yet stays attached, since it will read fresh data.

        Returns:
            True if a stored entry was removed.
        """
        for ticket in self._tickets.get(key, ()):
            ticket.stale = True
        removed = self._store.pop(key, None) is not None

        pending = self._pending.get(key)
        if pending is not None and pending.launched:
            del self._pending[key]

        if removed:
            self._log.debug("cache_invalidated", key=self._describe(key))
        return removed

    def invalidate_all(self) -> int:
        """Drop every entry; running fetches are detached.

        Returns:
            Number of stored entries removed.
        """
        for tickets in self._tickets.values():
            for ticket in tickets:
                ticket.stale = True
        count = len(self._store)
        self._store.clear()
        for key, pending in list(self._pending.items()):
            if pending.launched:
                del self._pending[key]
        self._log.debug("cache_invalidated_all", entries=count)
        return count

    def invalidate_path(self, path: str) -> int:
        """Invalidate every key whose ``path`` matches ``path``."""
        target = os.path.normpath(path)
        keys = [
            key
            for key in {*self._store, *self._pending, *self._tickets}
            if (key_path := self._key_path(key)) is not None
            and os.path.normpath(key_path) == target
        ]
        for key in keys:
            self.invalidate(key)
        return len(keys)

    def clear_expired(self, max_age: float | None = None) -> int:
        """Remove entries older than ``max_age`` (defaults to the TTL)."""
        limit = self._config.ttl_seconds if max_age is None else max_age
        now = self._clock()
        expired = [k for k, e in self._store.items() if e.age(now) > limit]
        for key in expired:
            del self._store[key]
        if expired:
            self._log.debug("cache_expired_cleared", entries=len(expired))
        return len(expired)

    # -------------------------------------------------------------------------
    # Active tracking
    # -------------------------------------------------------------------------

    async def enable(self, key: K) -> R | None:
        """Start tracking ``key`` and fetch it (debounced)."""
        self._ensure_open()
        self._active.add(key)
        self._log.debug("tracking_enabled", key=self._describe(key))
        return await self.get(key, use_cache=False)

    def disable(self, key: K) -> None:
        """Stop tracking ``key``; its cached entry is left to expire."""
        if key in self._active:
            self._active.discard(key)
            self._log.debug("tracking_disabled", key=self._describe(key))

    async def toggle(self, key: K) -> bool:
        """Flip tracking for ``key``; returns the new state."""
        if self.is_active(key):
            self.disable(key)
            return False
        await self.enable(key)
        return True

    def is_active(self, key: K) -> bool:
        return key in self._active

    @property
    def active_keys(self) -> frozenset[K]:
        return frozenset(self._active)

    # -------------------------------------------------------------------------
    # Stats & lifecycle
    # -------------------------------------------------------------------------

    def cache_stats(self) -> CacheStats:
        now = self._clock()
        return CacheStats(
            service=self.name,
            total_entries=len(self._store),
            active_keys=len(self._active),
            pending_fetches=len(self._pending),
            hits=self._hits,
            misses=self._misses,
            fetches=self._fetches,
            failures=self._failures,
            discarded=self._discarded,
            entries=tuple(
                CacheEntryInfo(
                    key=self._describe(key),
                    age_seconds=entry.age(now),
                    is_active=key in self._active,
                    revision=entry.revision,
                )
                for key, entry in self._store.items()
            ),
        )

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    def dispose(self) -> None:
        """Cancel pending work, unsubscribe handlers, and clear all state.

        Callers waiting on a cancelled fetch receive None.
        """
        if self._disposed:
            return
        self._disposed = True

        for pending in self._pending.values():
            if pending.timer is not None:
                pending.timer.cancel()
            if pending.task is not None:
                pending.task.cancel()
            if not pending.future.done():
                pending.future.set_result(None)
        self._pending.clear()

        for task in self._background:
            task.cancel()

        if self._bus is not None:
            for event, handler in self._subscriptions:
                self._bus.unsubscribe(event, handler)
        self._subscriptions.clear()

        self._store.clear()
        self._tickets.clear()
        self._active.clear()
        self._log.debug("service_disposed")

    async def __aenter__(self) -> CachedQueryService[K, R]:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        tasks = [p.task for p in self._pending.values() if p.task is not None]
        tasks.extend(self._background)
        self.dispose()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # -------------------------------------------------------------------------
    # Subclass hooks
    # -------------------------------------------------------------------------

    def _coerce(self, key: K, raw: Any) -> R | None:
        """Convert fetcher output into the result type."""
        return raw

    def _revision_of(self, key: K) -> str | None:
        return None

    def _key_path(self, key: K) -> str | None:
        return getattr(key, "path", None)

    def _describe(self, key: K) -> str:
        return str(key)

    def _on_path_event(self, payload: Any) -> None:
        for path in paths_from_payload(payload):
            self.invalidate_path(path)

    def _on_flush_event(self, payload: Any) -> None:
        self.invalidate_all()

    def _extra_subscriptions(self) -> list[tuple[GitEvent, EventHandler]]:
        return []

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _ensure_open(self) -> None:
        if self._disposed:
            raise ServiceDisposedError(self.name)

    def _subscribe_events(self) -> None:
        if self._bus is None:
            return
        wiring: list[tuple[GitEvent, EventHandler]] = [
            *((event, self._on_path_event) for event in self.path_events),
            *((event, self._on_flush_event) for event in self.flush_events),
            *self._extra_subscriptions(),
        ]
        for event, handler in wiring:
            self._bus.subscribe(event.value, handler)
            self._subscriptions.append((event.value, handler))

    def _lookup(self, key: K) -> CacheEntry[R] | None:
        entry = self._store.get(key)
        if entry is None:
            return None
        if entry.age(self._clock()) > self._config.ttl_seconds:
            del self._store[key]
            self._log.debug("cache_expired", key=self._describe(key))
            return None
        return entry

    def _schedule(self, key: K, debounce: bool) -> _PendingFetch:
        loop = asyncio.get_running_loop()
        pending = _PendingFetch(future=loop.create_future())
        self._pending[key] = pending
        if debounce and self._config.debounce_seconds > 0:
            pending.timer = loop.call_later(
                self._config.debounce_seconds, self._launch, key, pending
            )
        else:
            self._launch(key, pending)
        return pending

    def _rearm(self, key: K, pending: _PendingFetch, debounce: bool) -> None:
        if pending.timer is not None:
            pending.timer.cancel()
            pending.timer = None
        if debounce and self._config.debounce_seconds > 0:
            loop = asyncio.get_running_loop()
            pending.timer = loop.call_later(
                self._config.debounce_seconds, self._launch, key, pending
            )
        else:
            self._launch(key, pending)

    def _launch(self, key: K, pending: _PendingFetch) -> None:
        pending.timer = None
        if self._disposed or pending.future.done():
            return
        ticket = self._open_ticket(key)
        pending.task = asyncio.get_running_loop().create_task(
            self._run_fetch(key, pending, ticket)
        )

    async def _call_fetcher(self, fetcher: Fetcher[K], key: K) -> Any:
        """Await ``fetcher``; plain functions run in a worker thread."""
        if _is_async_callable(fetcher):
            return await fetcher(key)
        raw = await asyncio.to_thread(fetcher, key)
        if inspect.isawaitable(raw):
            raw = await raw
        return raw

    async def _run_fetch(
        self, key: K, pending: _PendingFetch, ticket: _FetchTicket
    ) -> None:
        described = self._describe(key)
        result: R | None = None
        succeeded = False
        try:
            if self._fetcher is None:
                self._log.warning("fetcher_missing", key=described)
            else:
                self._fetches += 1
                raw = await self._call_fetcher(self._fetcher, key)
                result = self._coerce(key, raw)
                succeeded = True
        except asyncio.CancelledError:
            if not pending.future.done():
                pending.future.set_result(None)
            raise
        except Exception as e:
            self._failures += 1
            self._log.warning(
                "fetch_failed",
                key=described,
                error=str(e),
                error_type=type(e).__name__,
            )
        finally:
            self._close_ticket(key, ticket)
            if self._pending.get(key) is pending:
                del self._pending[key]

        if succeeded:
            self._store_if_current(key, result, ticket)
        if not pending.future.done():
            pending.future.set_result(result)

    def _open_ticket(self, key: K) -> _FetchTicket:
        """Register a fetch of ``key`` that starts now."""
        ticket = _FetchTicket()
        self._tickets.setdefault(key, set()).add(ticket)
        return ticket

    def _close_ticket(self, key: K, ticket: _FetchTicket) -> None:
        tickets = self._tickets.get(key)
        if tickets is None:
            return
        tickets.discard(ticket)
        if not tickets:
            del self._tickets[key]

    def _store_if_current(self, key: K, result: R | None, ticket: _FetchTicket) -> bool:
        """Store ``result`` unless ``key`` was invalidated since ``ticket`` opened."""
        if self._disposed or ticket.stale:
            self._discarded += 1
            self._log.debug("fetch_result_discarded", key=self._describe(key))
            return False
        if not self._config.enabled:
            return False
        self._store[key] = CacheEntry(
            result=result,
            revision=self._revision_of(key),
            timestamp=self._clock(),
        )
        return True

    def _spawn(self, coro: Awaitable[Any]) -> None:
        """Run ``coro`` in the background, keeping a reference until done."""
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

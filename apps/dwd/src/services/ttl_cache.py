from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Generic, Hashable, Optional, TypeVar

logger = logging.getLogger("nexus.dwd.cache")

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    value: V
    created_at: float


def make_cache_key(*parts: Any) -> str:
    """Join key parts with ``:`` in the given order; ``None`` becomes ``""``."""
    return ":".join("" if part is None else str(part) for part in parts)


def _retrieve_exception(task: asyncio.Future) -> None:
    if not task.cancelled():
        task.exception()


class TtlCache(Generic[K, V]):
    """Async get-or-compute cache with per-call time-to-live.

    Entries are never mutated; a fresh computation replaces an expired one.
    Concurrent misses for the same key share one in-flight computation, and
    a failed computation is never stored.
    """

    def __init__(self, *, name: str = "cache", time_func: Callable[[], float] = time.monotonic) -> None:
        self._name = name
        self._time_func = time_func
        self._entries: Dict[K, CacheEntry[V]] = {}
        self._inflight: Dict[K, asyncio.Future] = {}
        self._lock = asyncio.Lock()

    async def get_or_compute(self, key: K, ttl: float, compute: Callable[[], Awaitable[V]]) -> V:
        async with self._lock:
            entry = self._live_entry(key, ttl)
            if entry is not None:
                logger.debug("%s hit for %s", self._name, key)
                return entry.value
            task = self._inflight.get(key)
            if task is None:
                logger.debug("%s miss for %s", self._name, key)
                task = asyncio.ensure_future(self._populate(key, compute))
                task.add_done_callback(_retrieve_exception)
                self._inflight[key] = task
            else:
                logger.debug("%s joining in-flight computation for %s", self._name, key)
        # a cancelled caller must not cancel the computation other callers share
        return await asyncio.shield(task)

    def get(self, key: K, ttl: float) -> Optional[V]:
        entry = self._live_entry(key, ttl)
        return entry.value if entry is not None else None

    def invalidate(self, key: K) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    async def _populate(self, key: K, compute: Callable[[], Awaitable[V]]) -> V:
        try:
            value = await compute()
            self._entries[key] = CacheEntry(value=value, created_at=self._time_func())
            return value
        finally:
            self._inflight.pop(key, None)

    def _live_entry(self, key: K, ttl: float) -> Optional[CacheEntry[V]]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._time_func() - entry.created_at < ttl:
            return entry
        self._entries.pop(key, None)
        return None

# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""In-memory dataset cache (bounded, TTL).

Synopsis:
    Implements the application :class:`CachePort` with one bounded TTL map per
    logical dataset. Entries expire a fixed time after they were written; when
    a dataset is full the least-recently-written entry is evicted.

Design:
    * ``OrderedDict`` kept in write order: a put moves the key to the end, so
      the first item is always the oldest write.
    * A ``threading.RLock`` guards each map. Critical sections are pure
      in-memory work and never span an ``await``.
    * ``get_or_load`` has no single-flight: concurrent misses may both run
      the loader and the last write wins.
    * ``None`` loader results are returned but not cached, so a transient
      "no data" answer does not stick for a whole TTL.

Layer:
    infrastructure/caching
"""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from collections.abc import Awaitable, Callable, Hashable, Iterable, Mapping
from contextlib import suppress
from dataclasses import dataclass
from typing import Any, TypeVar

from dart_enrichment.application.interfaces.cache_port import (
    COMPANY_PROFILES,
    DISCLOSURE_SEARCH,
    FINANCIAL_STATEMENTS,
    MISS,
    REGISTRY,
    CachePort,
)
from dart_enrichment.config.settings import CacheSettings
from dart_enrichment.infrastructure.observability.metrics_dart import get_cache_events_total

__all__ = ["BoundedTTLCache", "DatasetPolicy", "InMemoryDatasetCache"]

T = TypeVar("T")


@dataclass(frozen=True)
class DatasetPolicy:
    """TTL and capacity for one dataset."""

    ttl_s: float
    max_size: int

    def __post_init__(self) -> None:
        if self.ttl_s <= 0:
            raise ValueError("ttl_s must be > 0")
        if self.max_size < 1:
            raise ValueError("max_size must be >= 1")


@dataclass(frozen=True)
class _Entry:
    value: Any
    inserted_at: float


class BoundedTTLCache:
    """Expire-after-write map with a hard entry bound."""

    def __init__(
        self,
        name: str,
        policy: DatasetPolicy,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self.policy = policy
        self._clock = clock
        self._entries: OrderedDict[Hashable, _Entry] = OrderedDict()
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            self._purge_expired(self._clock())
            return len(self._entries)

    def get(self, key: Hashable) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return MISS
            if self._is_expired(entry, self._clock()):
                del self._entries[key]
                self.record_event("expire")
                return MISS
            return entry.value

    def put(self, key: Hashable, value: Any) -> None:
        with self._lock:
            now = self._clock()
            self._entries[key] = _Entry(value=value, inserted_at=now)
            self._entries.move_to_end(key)
            if len(self._entries) > self.policy.max_size:
                self._purge_expired(now)
            while len(self._entries) > self.policy.max_size:
                self._entries.popitem(last=False)
                self.record_event("evict")

    def evict(self, key: Hashable) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def _is_expired(self, entry: _Entry, now: float) -> bool:
        return now - entry.inserted_at >= self.policy.ttl_s

    def _purge_expired(self, now: float) -> None:
        # Write order means expired entries form a prefix.
        while self._entries:
            key, entry = next(iter(self._entries.items()))
            if not self._is_expired(entry, now):
                break
            del self._entries[key]
            self.record_event("expire")

    def record_event(self, event: str) -> None:
        """Count a cache event (hit, miss, load, evict, expire)."""
        with suppress(Exception):
            get_cache_events_total().labels(self.name, event).inc()


class InMemoryDatasetCache(CachePort):
    """:class:`CachePort` backed by one :class:`BoundedTTLCache` per dataset."""

    def __init__(
        self,
        policies: Mapping[str, DatasetPolicy],
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._datasets: dict[str, BoundedTTLCache] = {
            name: BoundedTTLCache(name, policy, clock=clock) for name, policy in policies.items()
        }

    @classmethod
    def from_settings(
        cls,
        settings: CacheSettings,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> InMemoryDatasetCache:
        """Build the cache with the standard datasets from settings."""
        return cls(
            {
                COMPANY_PROFILES: DatasetPolicy(
                    settings.company_profiles_ttl_s, settings.company_profiles_max_size
                ),
                DISCLOSURE_SEARCH: DatasetPolicy(
                    settings.disclosure_search_ttl_s, settings.disclosure_search_max_size
                ),
                FINANCIAL_STATEMENTS: DatasetPolicy(
                    settings.financial_statements_ttl_s, settings.financial_statements_max_size
                ),
                REGISTRY: DatasetPolicy(settings.registry_ttl_s, settings.registry_max_size),
            },
            clock=clock,
        )

    @property
    def datasets(self) -> Iterable[str]:
        """Configured dataset names."""
        return tuple(self._datasets)

    def size(self, dataset: str) -> int:
        """Number of live entries in ``dataset``."""
        return len(self._dataset(dataset))

    def get(self, dataset: str, key: Hashable) -> Any:
        """Return the cached value or :data:`MISS`."""
        cache = self._dataset(dataset)
        value = cache.get(key)
        cache.record_event("miss" if value is MISS else "hit")
        return value

    def put(self, dataset: str, key: Hashable, value: Any) -> None:
        """Store ``value`` under ``key``."""
        self._dataset(dataset).put(key, value)

    def evict(self, dataset: str, key: Hashable) -> None:
        """Drop ``key`` from ``dataset`` if present."""
        self._dataset(dataset).evict(key)

    def clear(self, dataset: str) -> None:
        """Drop every entry of ``dataset``."""
        self._dataset(dataset).clear()

    async def get_or_load(
        self,
        dataset: str,
        key: Hashable,
        loader: Callable[[], Awaitable[T]],
    ) -> T:
        """Read-through lookup.

        Args:
            dataset: Dataset name.
            key: Entry key within the dataset.
            loader: Zero-arg coroutine factory invoked on a miss.

        Returns:
            The cached value or the freshly loaded one.

        Raises:
            KeyError: If ``dataset`` is not configured.
            Exception: Whatever ``loader`` raises; nothing is cached then.
        """
        cached = self.get(dataset, key)
        if cached is not MISS:
            return cached  # type: ignore[no-any-return]

        value = await loader()
        self._dataset(dataset).record_event("load")
        if value is not None:
            self.put(dataset, key, value)
        return value

    def _dataset(self, dataset: str) -> BoundedTTLCache:
        try:
            return self._datasets[dataset]
        except KeyError as exc:
            raise KeyError(f"Unknown cache dataset {dataset!r}.") from exc

# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""Cache Port (Application Layer).

Purpose:
    Contract for the dataset-partitioned read-through cache that fronts the
    DART transport. Each logical dataset has its own TTL and capacity.

Layer:
    application/interfaces
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Hashable
from typing import Any, Final, Protocol, TypeVar

T = TypeVar("T")


class _Miss:
    """Sentinel type returned by :meth:`CachePort.get` on a miss."""

    _instance: _Miss | None = None

    def __new__(cls) -> _Miss:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISS"

    def __bool__(self) -> bool:
        return False


MISS: Final[Any] = _Miss()

# Dataset names.
COMPANY_PROFILES: Final[str] = "company_profiles"
DISCLOSURE_SEARCH: Final[str] = "disclosure_search"
FINANCIAL_STATEMENTS: Final[str] = "financial_statements"
REGISTRY: Final[str] = "registry"


class CachePort(Protocol):
    """Dataset-partitioned in-process cache.

    ``get``/``put``/``evict``/``clear`` never block on I/O. Implementations
    raise ``KeyError`` for datasets they were not configured with.
    """

    def get(self, dataset: str, key: Hashable) -> Any:
        """Return the cached value or :data:`MISS`."""

    def put(self, dataset: str, key: Hashable, value: Any) -> None:
        """Store ``value`` under ``key``, evicting if the dataset is full."""

    def evict(self, dataset: str, key: Hashable) -> None:
        """Drop ``key`` if present."""

    def clear(self, dataset: str) -> None:
        """Drop every entry of ``dataset``."""

    async def get_or_load(
        self,
        dataset: str,
        key: Hashable,
        loader: Callable[[], Awaitable[T]],
    ) -> T:
        """Return the cached value, or await ``loader`` and cache its result.

        A loader exception propagates and nothing is cached.
        """

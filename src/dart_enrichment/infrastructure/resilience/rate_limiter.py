# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""Async fixed-window rate limiter with bounded waits.

Semantics:
    * Time is divided into windows of ``period_s`` seconds; each window grants
      ``limit`` permits.
    * A caller that finds the current window exhausted reserves a permit in a
      future window and sleeps until it opens, provided that wait does not
      exceed ``timeout_s``. Otherwise ``acquire`` returns False immediately and
      reserves nothing.
    * Unused permits do not carry over between windows.

The internal lock only guards bookkeeping; callers sleep outside of it, so
one waiting caller never blocks another that could proceed.
"""

from __future__ import annotations

import asyncio
import math
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field


@dataclass
class AsyncRateLimiter:
    """Process-local limiter shared by every outbound DART call."""

    limit: int
    period_s: float
    timeout_s: float
    clock: Callable[[], float] = time.monotonic
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    _window: int = -1
    _permits: int = 0
    _origin: float | None = None
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    def __post_init__(self) -> None:
        if self.limit < 1:
            raise ValueError("limit must be >= 1")
        if self.period_s <= 0:
            raise ValueError("period_s must be > 0")
        if self.timeout_s < 0:
            raise ValueError("timeout_s must be >= 0")

    async def acquire(self) -> bool:
        """Wait for a permit.

        Returns:
            bool: True once a permit is held, False if none could be granted
            within ``timeout_s``.
        """
        async with self._lock:
            wait = self._reserve(self.clock())
        if wait is None:
            return False
        if wait > 0:
            await self.sleep(wait)
        return True

    @property
    def available(self) -> int:
        """Permits left in the current window (negative when reserved ahead)."""
        self._refresh(self.clock())
        return self._permits

    def _refresh(self, now: float) -> None:
        if self._origin is None:
            self._origin = now
            self._window = 0
            self._permits = self.limit
            return
        window = int((now - self._origin) // self.period_s)
        if window > self._window:
            elapsed = window - self._window
            self._permits = min(self.limit, self._permits + elapsed * self.limit)
            self._window = window

    def _reserve(self, now: float) -> float | None:
        self._refresh(now)
        if self._permits > 0:
            self._permits -= 1
            return 0.0

        assert self._origin is not None
        next_window_at = self._origin + (self._window + 1) * self.period_s
        windows_ahead = math.ceil((1 - self._permits) / self.limit)
        wait = (next_window_at - now) + (windows_ahead - 1) * self.period_s
        if wait > self.timeout_s:
            return None
        self._permits -= 1
        return wait

# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""Minimal async circuit breaker (in-memory).

State machine:
    - CLOSED -> count failures; when threshold reached, go OPEN.
    - OPEN   -> fail-fast until recovery timeout expires; then HALF-OPEN.
    - HALF-OPEN -> allow limited calls; on success -> CLOSED; on failure -> OPEN.

Only exceptions matching ``counts_as_failure`` trip the breaker, so a 4xx
(caller error) does not take the upstream out of rotation.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field


class CircuitOpenError(RuntimeError):
    """Raised when the breaker rejects a call without executing it."""

    def __init__(self, state: str) -> None:
        super().__init__(f"circuit_{state.lower()}")
        self.state = state


def _always(_: BaseException) -> bool:
    return True


@dataclass
class CircuitBreaker:
    """Simple circuit breaker suitable for HTTP client protection."""

    failure_threshold: int
    recovery_timeout_s: float
    half_open_max_calls: int
    counts_as_failure: Callable[[BaseException], bool] = _always
    clock: Callable[[], float] = time.monotonic

    _state: str = "CLOSED"  # CLOSED|OPEN|HALF_OPEN
    _failures: int = 0
    _opened_at: float = 0.0
    _half_open_calls: int = 0
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    @property
    def state(self) -> str:
        """Current breaker state."""
        return self._state

    @asynccontextmanager
    async def guard(
        self,
        counts_as_failure: Callable[[BaseException], bool] | None = None,
    ) -> AsyncIterator[None]:
        """Guard an async call with the breaker.

        Args:
            counts_as_failure: Per-call failure predicate; overrides the
                instance default when given.

        Raises:
            CircuitOpenError: If the breaker is open or the half-open probe
                budget is spent.
        """
        async with self._lock:
            now = self.clock()
            if self._state == "OPEN":
                if now - self._opened_at >= self.recovery_timeout_s:
                    self._state = "HALF_OPEN"
                    self._half_open_calls = 0
                else:
                    raise CircuitOpenError("OPEN")
            if self._state == "HALF_OPEN":
                if self._half_open_calls >= self.half_open_max_calls:
                    raise CircuitOpenError("HALF_OPEN")
                self._half_open_calls += 1

        try:
            yield
        except Exception as exc:
            is_failure = counts_as_failure or self.counts_as_failure
            async with self._lock:
                if is_failure(exc):
                    self._record_failure()
                elif self._state == "HALF_OPEN":
                    # Caller errors do not settle the probe; release its slot.
                    self._half_open_calls = max(0, self._half_open_calls - 1)
            raise
        else:
            async with self._lock:
                self._state = "CLOSED"
                self._failures = 0

    def _record_failure(self) -> None:
        if self._state == "HALF_OPEN":
            self._state = "OPEN"
            self._opened_at = self.clock()
            return
        self._failures += 1
        if self._failures >= self.failure_threshold:
            self._state = "OPEN"
            self._opened_at = self.clock()

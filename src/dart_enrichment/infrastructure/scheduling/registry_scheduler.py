# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""Registry sync scheduler.

Purpose:
    Keep the local registry populated: sync once on startup when the table is
    empty, then on a cron schedule, plus on manual triggers.

Behavior:
    * ``trigger`` never blocks; it returns the in-flight task, and concurrent
      triggers share a single run.
    * Sync failures are logged and never escape into the ticker loop.
    * A disabled scheduler starts nothing; manual triggers still work.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from contextlib import suppress
from datetime import UTC, datetime

from dart_enrichment.application.use_cases.registry.sync_registry import (
    RegistrySyncResult,
    SyncRegistryUseCase,
)
from dart_enrichment.config.settings import SchedulerSettings
from dart_enrichment.infrastructure.scheduling.cron import CronSchedule

logger = logging.getLogger(__name__)

TRIGGER_STARTUP = "startup"
TRIGGER_SCHEDULED = "scheduled"
TRIGGER_MANUAL = "manual"


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


class RegistrySyncScheduler:
    """Cron-driven, coalescing runner for :class:`SyncRegistryUseCase`.

    Args:
        use_case: Registry sync use case.
        schedule: Parsed cron schedule.
        enabled: When False, :meth:`start` is a no-op.
        eager_on_empty: Trigger a sync at startup if the registry is empty.
        clock: Returns the current aware datetime.
        sleep: Awaitable sleep used by the ticker.
    """

    def __init__(
        self,
        *,
        use_case: SyncRegistryUseCase,
        schedule: CronSchedule,
        enabled: bool = True,
        eager_on_empty: bool = True,
        clock: Callable[[], datetime] = _utc_now,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._use_case = use_case
        self._schedule = schedule
        self._enabled = enabled
        self._eager_on_empty = eager_on_empty
        self._clock = clock
        self._sleep = sleep
        self._ticker: asyncio.Task[None] | None = None
        self._inflight: asyncio.Task[RegistrySyncResult | None] | None = None
        self._next_fire: datetime | None = None

    @classmethod
    def from_settings(
        cls,
        use_case: SyncRegistryUseCase,
        settings: SchedulerSettings,
    ) -> RegistrySyncScheduler:
        """Build a scheduler from :class:`SchedulerSettings`."""
        return cls(
            use_case=use_case,
            schedule=CronSchedule.parse(settings.cron, settings.timezone),
            enabled=settings.enabled,
            eager_on_empty=settings.eager_on_empty,
        )

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def is_running(self) -> bool:
        return self._ticker is not None and not self._ticker.done()

    @property
    def next_fire_time(self) -> datetime | None:
        return self._next_fire

    async def start(self) -> None:
        """Run the eager check and start the ticker (idempotent)."""
        if not self._enabled:
            logger.info("dart.registry_scheduler.disabled")
            return
        if self.is_running:
            return

        if self._eager_on_empty:
            try:
                empty = await self._use_case.registry_is_empty()
            except Exception:  # noqa: BLE001
                logger.exception("dart.registry_scheduler.empty_check_failed")
            else:
                if empty:
                    self.trigger(TRIGGER_STARTUP)

        self._ticker = asyncio.create_task(self._run(), name="registry-sync-ticker")
        logger.info(
            "dart.registry_scheduler.started",
            extra={"cron": self._schedule.expression, "timezone": str(self._schedule.tz)},
        )

    def trigger(self, trigger: str = TRIGGER_MANUAL) -> asyncio.Task[RegistrySyncResult | None]:
        """Start a sync unless one is already running, and return its task."""
        if self._inflight is not None and not self._inflight.done():
            logger.info("dart.registry_scheduler.coalesced", extra={"trigger": trigger})
            return self._inflight
        self._inflight = asyncio.create_task(self._guarded(trigger), name=f"registry-sync:{trigger}")
        return self._inflight

    async def stop(self) -> None:
        """Cancel the ticker and any in-flight sync."""
        tasks = [t for t in (self._ticker, self._inflight) if t is not None and not t.done()]
        for task in tasks:
            task.cancel()
        for task in tasks:
            with suppress(asyncio.CancelledError):
                await task
        self._ticker = None
        self._next_fire = None
        if tasks:
            logger.info("dart.registry_scheduler.stopped")

    async def _guarded(self, trigger: str) -> RegistrySyncResult | None:
        try:
            return await self._use_case.execute(trigger)
        except Exception:  # noqa: BLE001
            logger.exception("dart.registry_scheduler.sync_failed", extra={"trigger": trigger})
            return None

    async def _run(self) -> None:
        while True:
            now = self._clock()
            try:
                self._next_fire = self._schedule.next_after(now)
            except ValueError:
                logger.error(
                    "dart.registry_scheduler.no_fire_time",
                    extra={"cron": self._schedule.expression},
                )
                return
            delay = max(0.0, (self._next_fire - now).total_seconds())
            await self._sleep(delay)
            self.trigger(TRIGGER_SCHEDULED)

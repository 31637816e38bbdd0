# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""Use case: full registry synchronization.

Scope:
    * Download the compressed registry feed, decode it and replace the local
      snapshot in one transaction.
    * A populated registry is never touched: the sync is a no-op.

Behavior:
    * All-or-nothing: any failure (transport, decode, upstream status, empty
      feed) leaves the existing table exactly as it was and propagates.
    * In-process triggers are serialized; the emptiness check is repeated
      inside the replacing transaction so a concurrent writer elsewhere also
      short-circuits us.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from dataclasses import dataclass

from dart_enrichment.application.interfaces.cache_port import REGISTRY, CachePort
from dart_enrichment.application.uow import UnitOfWorkFactory
from dart_enrichment.domain.entities.registry_feed import RegistryFeed
from dart_enrichment.domain.exceptions.dart import (
    DartError,
    EmptyUpstreamPayload,
    UpstreamUnavailable,
)
from dart_enrichment.domain.interfaces.gateways.dart_gateway import DartGateway
from dart_enrichment.domain.interfaces.repositories.registry_repository import (
    RegistryRepository,
)
from dart_enrichment.infrastructure.observability.metrics_dart import (
    get_registry_records,
    get_registry_sync_runs_total,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistrySyncResult:
    """Outcome of one sync run."""

    trigger: str
    replaced: bool
    records: int = 0
    skipped_records: int = 0
    strategy: str | None = None
    degraded: bool = False

    @property
    def outcome(self) -> str:
        """``synced`` when the table was replaced, otherwise ``skipped``."""
        return "synced" if self.replaced else "skipped"


class SyncRegistryUseCase:
    """Replace the local registry snapshot from the upstream feed.

    Args:
        gateway: DART gateway providing the parsed registry download.
        uow_factory: Factory returning a fresh UnitOfWork per transaction.
        cache: Optional cache whose ``registry`` dataset is cleared after a
            successful replace.
    """

    def __init__(
        self,
        *,
        gateway: DartGateway,
        uow_factory: UnitOfWorkFactory,
        cache: CachePort | None = None,
    ) -> None:
        self._gateway = gateway
        self._uow_factory = uow_factory
        self._cache = cache
        self._lock = asyncio.Lock()

    async def registry_is_empty(self) -> bool:
        """Return True when no registry record is stored."""
        async with self._uow_factory() as tx:
            repo: RegistryRepository = tx.get_repository(RegistryRepository)
            return await repo.count() == 0

    async def execute(self, trigger: str = "manual") -> RegistrySyncResult:
        """Run one sync.

        Returns:
            RegistrySyncResult: ``replaced`` is False when the registry was
            already populated.

        Raises:
            DartError: Any classified failure; the stored snapshot is unchanged.
        """
        async with self._lock:
            try:
                result = await self._run(trigger)
            except DartError as exc:
                self._count(trigger, "error")
                logger.error(
                    "dart.registry_sync.failed",
                    extra={"trigger": trigger, "error_code": exc.code, "reason": exc.message},
                )
                raise
            self._count(trigger, result.outcome)
            return result

    async def _run(self, trigger: str) -> RegistrySyncResult:
        if not await self.registry_is_empty():
            logger.info("dart.registry_sync.skipped_populated", extra={"trigger": trigger})
            return RegistrySyncResult(trigger=trigger, replaced=False)

        logger.info("dart.registry_sync.start", extra={"trigger": trigger})
        feed = await self._gateway.download_registry()
        self._validate(feed)

        async with self._uow_factory() as tx:
            repo: RegistryRepository = tx.get_repository(RegistryRepository)
            if await repo.count() > 0:
                logger.info(
                    "dart.registry_sync.populated_concurrently",
                    extra={"trigger": trigger},
                )
                return RegistrySyncResult(trigger=trigger, replaced=False)
            inserted = await repo.replace_all(feed.records)
            await tx.commit()

        if self._cache is not None:
            self._cache.clear(REGISTRY)
        with suppress(Exception):
            get_registry_records().set(inserted)

        logger.info(
            "dart.registry_sync.success",
            extra={
                "trigger": trigger,
                "records": inserted,
                "skipped_records": feed.skipped,
                "strategy": feed.strategy,
                "degraded": feed.degraded,
            },
        )
        return RegistrySyncResult(
            trigger=trigger,
            replaced=True,
            records=inserted,
            skipped_records=feed.skipped,
            strategy=feed.strategy,
            degraded=feed.degraded,
        )

    @staticmethod
    def _validate(feed: RegistryFeed) -> None:
        if feed.status is not None and not feed.is_success:
            raise UpstreamUnavailable(
                "DART registry feed reported a non-success status.",
                details={"status": feed.status, "upstream_message": feed.message},
            )
        if not feed.records:
            raise EmptyUpstreamPayload(
                "DART registry feed contained no valid records.",
                details={"skipped": feed.skipped, "strategy": feed.strategy},
            )

    @staticmethod
    def _count(trigger: str, outcome: str) -> None:
        with suppress(Exception):
            get_registry_sync_runs_total().labels(trigger, outcome).inc()

# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""Runtime composition root.

Synopsis:
    Build every long-lived collaborator once (engine, cache, client, gateway,
    use cases, bus, consumer, scheduler) and hand them out as a single
    :class:`Runtime`. Both the FastAPI lifespan and the CLI go through
    :func:`build_runtime`, so the wiring lives in exactly one place.

Lifecycle:
    runtime = build_runtime()
    await runtime.start()      # schema (optional), consumer, scheduler
    ...
    await runtime.aclose()     # reverse order
"""

from __future__ import annotations

from dataclasses import dataclass

import httpx
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from dart_enrichment.adapters.consumers.partner_company_consumer import PartnerCompanyConsumer
from dart_enrichment.adapters.gateways.dart_gateway import CachedDartGateway
from dart_enrichment.adapters.uow.sqlalchemy_uow import sqlalchemy_uow_factory
from dart_enrichment.application.interfaces.message_bus import MessageBus
from dart_enrichment.application.use_cases.enrichment.enrich_partner_company import (
    EnrichPartnerCompanyUseCase,
)
from dart_enrichment.application.use_cases.registry.lookup_registry import (
    RegistryLookupService,
)
from dart_enrichment.application.use_cases.registry.sync_registry import SyncRegistryUseCase
from dart_enrichment.config.settings import (
    CacheSettings,
    MessagingSettings,
    SchedulerSettings,
    Settings,
    get_cache_settings,
    get_messaging_settings,
    get_scheduler_settings,
    get_settings,
)
from dart_enrichment.infrastructure.caching.memory_cache import InMemoryDatasetCache
from dart_enrichment.infrastructure.database.session import (
    create_schema,
    dispose_engine,
    get_engine,
    get_sessionmaker,
    init_engine_and_sessionmaker,
)
from dart_enrichment.infrastructure.external_apis.dart.client import DartClient
from dart_enrichment.infrastructure.external_apis.dart.settings import (
    DartSettings,
    get_dart_settings,
)
from dart_enrichment.infrastructure.logging.logger import get_json_logger
from dart_enrichment.infrastructure.messaging.in_memory_bus import InMemoryMessageBus
from dart_enrichment.infrastructure.scheduling.registry_scheduler import RegistrySyncScheduler

logger = get_json_logger(__name__)


@dataclass
class Runtime:
    """Wired service components."""

    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    cache: InMemoryDatasetCache
    client: DartClient
    gateway: CachedDartGateway
    sync_registry: SyncRegistryUseCase
    registry_lookup: RegistryLookupService
    enrich_partner: EnrichPartnerCompanyUseCase
    bus: MessageBus
    consumer: PartnerCompanyConsumer
    scheduler: RegistrySyncScheduler
    owns_engine: bool = True
    started: bool = False

    async def start(self, *, consume: bool = True, schedule: bool = True) -> None:
        """Start background activity.

        Args:
            consume: Subscribe the partner-company consumer to the bus.
            schedule: Start the registry sync scheduler.
        """
        if self.started:
            return
        if self.settings.create_schema_on_startup:
            await create_schema(self.engine)
        if consume:
            await self.consumer.subscribe(self.bus)
        if schedule:
            await self.scheduler.start()
        self.started = True
        logger.info(
            "runtime.started",
            extra={"service": self.settings.service_name, "consume": consume, "schedule": schedule},
        )

    async def aclose(self) -> None:
        """Stop background work and release every resource (reverse order)."""
        await self.scheduler.stop()
        await self.bus.close()
        await self.client.aclose()
        if self.owns_engine:
            await dispose_engine()
        self.started = False
        logger.info("runtime.stopped", extra={"service": self.settings.service_name})


def build_runtime(
    *,
    settings: Settings | None = None,
    dart_settings: DartSettings | None = None,
    cache_settings: CacheSettings | None = None,
    scheduler_settings: SchedulerSettings | None = None,
    messaging_settings: MessagingSettings | None = None,
    engine: AsyncEngine | None = None,
    http: httpx.AsyncClient | None = None,
    bus: MessageBus | None = None,
) -> Runtime:
    """Compose the service.

    Args:
        settings: Process settings; loaded from the environment if omitted.
        dart_settings: DART transport settings.
        cache_settings: Per-dataset cache policies.
        scheduler_settings: Registry sync schedule.
        messaging_settings: Topic and consumer group names.
        engine: Pre-built async engine (tests); the global engine otherwise.
        http: Shared httpx client for the DART transport.
        bus: Message bus; an in-process bus if omitted.

    Returns:
        Runtime: Unstarted runtime.
    """
    settings = settings or get_settings()
    dart_settings = dart_settings or get_dart_settings()
    cache_settings = cache_settings or get_cache_settings()
    scheduler_settings = scheduler_settings or get_scheduler_settings()
    messaging_settings = messaging_settings or get_messaging_settings()

    owns_engine = engine is None
    if engine is None:
        init_engine_and_sessionmaker(settings)
        engine = get_engine()
        session_factory = get_sessionmaker()
    else:
        session_factory = async_sessionmaker(
            bind=engine, expire_on_commit=False, class_=AsyncSession
        )
    uow_factory = sqlalchemy_uow_factory(session_factory)

    cache = InMemoryDatasetCache.from_settings(cache_settings)
    client = DartClient(dart_settings, http=http)
    gateway = CachedDartGateway(client, cache)

    sync_registry = SyncRegistryUseCase(gateway=gateway, uow_factory=uow_factory, cache=cache)
    enrich_partner = EnrichPartnerCompanyUseCase(gateway=gateway, uow_factory=uow_factory)
    bus = bus or InMemoryMessageBus()

    return Runtime(
        settings=settings,
        engine=engine,
        session_factory=session_factory,
        cache=cache,
        client=client,
        gateway=gateway,
        sync_registry=sync_registry,
        registry_lookup=RegistryLookupService(uow_factory=uow_factory, cache=cache),
        enrich_partner=enrich_partner,
        bus=bus,
        consumer=PartnerCompanyConsumer(
            use_case=enrich_partner,
            topic=messaging_settings.partner_topic,
            group=messaging_settings.consumer_group,
        ),
        scheduler=RegistrySyncScheduler.from_settings(sync_registry, scheduler_settings),
        owns_engine=owns_engine,
    )


def get_runtime(request: Request) -> Runtime:
    """FastAPI dependency returning the runtime built by the lifespan."""
    runtime: Runtime | None = getattr(request.app.state, "runtime", None)
    if runtime is None:
        raise RuntimeError("Runtime not initialized (lifespan has not run).")
    return runtime

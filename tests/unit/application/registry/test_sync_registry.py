from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import pytest

from dart_enrichment.application.interfaces.cache_port import REGISTRY
from dart_enrichment.application.uow import UnitOfWorkFactory
from dart_enrichment.application.use_cases.registry.sync_registry import SyncRegistryUseCase
from dart_enrichment.domain.entities.registry_feed import RegistryFeed
from dart_enrichment.domain.entities.registry_record import RegistryRecord
from dart_enrichment.domain.exceptions.dart import (
    EmptyUpstreamPayload,
    FeedParseError,
    UpstreamUnavailable,
)
from dart_enrichment.domain.interfaces.repositories.registry_repository import (
    RegistryRepository,
)
from dart_enrichment.infrastructure.caching.memory_cache import InMemoryDatasetCache

if TYPE_CHECKING:
    from conftest import FakeDartGateway

FEED = RegistryFeed(
    records=(
        RegistryRecord("00126380", "삼성전자", listing_code="005930"),
        RegistryRecord("00164779", "SK하이닉스", listing_code="000660"),
    ),
    status="000",
    skipped=1,
    strategy="result_list",
)


async def _count(uow_factory: UnitOfWorkFactory) -> int:
    async with uow_factory() as tx:
        return await tx.get_repository(RegistryRepository).count()


async def _seed(uow_factory: UnitOfWorkFactory) -> None:
    async with uow_factory() as tx:
        await tx.get_repository(RegistryRepository).replace_all(
            [RegistryRecord("00000001", "Seeded Co")]
        )
        await tx.commit()


@pytest.mark.asyncio
async def test_sync_populates_empty_registry(
    fake_gateway: FakeDartGateway,
    uow_factory: UnitOfWorkFactory,
) -> None:
    fake_gateway.registry = FEED
    use_case = SyncRegistryUseCase(gateway=fake_gateway, uow_factory=uow_factory)

    assert await use_case.registry_is_empty()
    result = await use_case.execute(trigger="startup")

    assert result.replaced is True
    assert result.outcome == "synced"
    assert result.records == 2
    assert result.skipped_records == 1
    assert result.strategy == "result_list"
    assert await _count(uow_factory) == 2
    assert not await use_case.registry_is_empty()


@pytest.mark.asyncio
async def test_sync_is_noop_when_registry_populated(
    fake_gateway: FakeDartGateway,
    uow_factory: UnitOfWorkFactory,
) -> None:
    await _seed(uow_factory)
    fake_gateway.registry = FEED
    use_case = SyncRegistryUseCase(gateway=fake_gateway, uow_factory=uow_factory)

    result = await use_case.execute()

    assert result.replaced is False
    assert result.outcome == "skipped"
    assert fake_gateway.calls == []
    assert await _count(uow_factory) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("feed", "error"),
    [
        (UpstreamUnavailable("down"), UpstreamUnavailable),
        (FeedParseError("garbled"), FeedParseError),
        (RegistryFeed(records=(), status="000"), EmptyUpstreamPayload),
        (
            RegistryFeed(records=FEED.records, status="020", message="limit exceeded"),
            UpstreamUnavailable,
        ),
    ],
)
async def test_sync_failures_leave_table_untouched(
    fake_gateway: FakeDartGateway,
    uow_factory: UnitOfWorkFactory,
    feed: RegistryFeed | Exception,
    error: type[Exception],
) -> None:
    fake_gateway.registry = feed
    use_case = SyncRegistryUseCase(gateway=fake_gateway, uow_factory=uow_factory)

    with pytest.raises(error):
        await use_case.execute()

    assert await _count(uow_factory) == 0


@pytest.mark.asyncio
async def test_successful_sync_clears_registry_cache(
    fake_gateway: FakeDartGateway,
    uow_factory: UnitOfWorkFactory,
    cache: InMemoryDatasetCache,
) -> None:
    cache.put(REGISTRY, "code:00126380", None)
    cache.put(REGISTRY, "search:0:20:삼성", ())
    fake_gateway.registry = FEED
    use_case = SyncRegistryUseCase(gateway=fake_gateway, uow_factory=uow_factory, cache=cache)

    await use_case.execute()

    assert cache.size(REGISTRY) == 0


@pytest.mark.asyncio
async def test_concurrent_triggers_download_once(
    fake_gateway: FakeDartGateway,
    uow_factory: UnitOfWorkFactory,
) -> None:
    fake_gateway.registry = FEED
    use_case = SyncRegistryUseCase(gateway=fake_gateway, uow_factory=uow_factory)

    first, second = await asyncio.gather(use_case.execute(), use_case.execute())

    assert sorted([first.replaced, second.replaced]) == [False, True]
    assert fake_gateway.calls.count(("registry", None)) == 1
    assert await _count(uow_factory) == 2

from __future__ import annotations

import pytest
import pytest_asyncio

from dart_enrichment.application.interfaces.cache_port import REGISTRY
from dart_enrichment.application.uow import UnitOfWorkFactory
from dart_enrichment.application.use_cases.registry.lookup_registry import RegistryLookupService
from dart_enrichment.domain.entities.registry_record import RegistryRecord
from dart_enrichment.domain.exceptions.dart import DartNotFound
from dart_enrichment.domain.interfaces.repositories.registry_repository import (
    RegistryRepository,
)
from dart_enrichment.infrastructure.caching.memory_cache import InMemoryDatasetCache


@pytest_asyncio.fixture
async def service(
    uow_factory: UnitOfWorkFactory,
    cache: InMemoryDatasetCache,
) -> RegistryLookupService:
    async with uow_factory() as tx:
        await tx.get_repository(RegistryRepository).replace_all(
            [
                RegistryRecord("00126380", "삼성전자", listing_code="005930"),
                RegistryRecord("00126371", "삼성전기", listing_code="009150"),
                RegistryRecord("00434003", "삼성비상장"),
            ]
        )
        await tx.commit()
    return RegistryLookupService(uow_factory=uow_factory, cache=cache)


@pytest.mark.asyncio
async def test_find_by_entity_code_caches_record(
    service: RegistryLookupService,
    cache: InMemoryDatasetCache,
) -> None:
    record = await service.find_by_entity_code(" 00126380 ")
    assert record.legal_name == "삼성전자"
    assert cache.get(REGISTRY, "code:00126380") == record


@pytest.mark.asyncio
async def test_find_by_entity_code_missing_or_blank(service: RegistryLookupService) -> None:
    with pytest.raises(DartNotFound):
        await service.find_by_entity_code("99999999")
    with pytest.raises(DartNotFound):
        await service.find_by_entity_code("   ")


@pytest.mark.asyncio
async def test_find_by_listing_code(service: RegistryLookupService) -> None:
    record = await service.find_by_listing_code("009150")
    assert record is not None and record.entity_code == "00126371"
    assert await service.find_by_listing_code("000000") is None
    assert await service.find_by_listing_code("") is None


@pytest.mark.asyncio
async def test_search_by_name_clamps_limit_and_filters(service: RegistryLookupService) -> None:
    assert len(await service.search_by_name("삼성")) == 3
    assert len(await service.search_by_name("삼성", limit=0)) == 1
    listed = await service.search_by_name("삼성", listed_only=True, limit=500)
    assert {r.entity_code for r in listed} == {"00126380", "00126371"}
    assert await service.search_by_name("  ") == []


@pytest.mark.asyncio
async def test_search_results_are_served_from_cache(
    service: RegistryLookupService,
    cache: InMemoryDatasetCache,
) -> None:
    first = await service.search_by_name("전자")
    cache.put(REGISTRY, "search:0:20:전자", ())
    assert [r.entity_code for r in first] == ["00126380"]
    assert await service.search_by_name("전자") == []

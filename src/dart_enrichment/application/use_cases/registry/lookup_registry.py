# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""Registry lookups.

Purpose:
    Read-side queries over the local registry snapshot, fronted by the
    ``registry`` cache dataset (cleared on every successful sync).

Layer:
    application/use_cases
"""

from __future__ import annotations

from dart_enrichment.application.interfaces.cache_port import REGISTRY, CachePort
from dart_enrichment.application.uow import UnitOfWorkFactory
from dart_enrichment.domain.entities.registry_record import (
    RegistryRecord,
    normalize_entity_code,
)
from dart_enrichment.domain.exceptions.dart import DartNotFound
from dart_enrichment.domain.interfaces.repositories.registry_repository import (
    RegistryRepository,
)

MIN_SEARCH_LIMIT = 1
MAX_SEARCH_LIMIT = 100


class RegistryLookupService:
    """Cached registry queries.

    Args:
        uow_factory: Factory returning a fresh UnitOfWork per query.
        cache: Dataset cache; entries live in the ``registry`` dataset.
    """

    def __init__(self, *, uow_factory: UnitOfWorkFactory, cache: CachePort) -> None:
        self._uow_factory = uow_factory
        self._cache = cache

    async def find_by_entity_code(self, entity_code: str) -> RegistryRecord:
        """Return the registry record for ``entity_code``.

        Raises:
            DartNotFound: If the code is blank or not in the registry.
        """
        code = normalize_entity_code(entity_code)
        if code is None:
            raise DartNotFound("Entity code must not be blank.")

        async def _load() -> RegistryRecord | None:
            async with self._uow_factory() as tx:
                repo: RegistryRepository = tx.get_repository(RegistryRepository)
                return await repo.get(code)

        record = await self._cache.get_or_load(REGISTRY, f"code:{code}", _load)
        if record is None:
            raise DartNotFound(
                "Entity code not found in the registry.",
                details={"entity_code": code},
            )
        return record

    async def find_by_listing_code(self, listing_code: str) -> RegistryRecord | None:
        """Return the record carrying ``listing_code``, or None."""
        code = (listing_code or "").strip()
        if not code:
            return None

        async def _load() -> RegistryRecord | None:
            async with self._uow_factory() as tx:
                repo: RegistryRepository = tx.get_repository(RegistryRepository)
                return await repo.get_by_listing_code(code)

        return await self._cache.get_or_load(REGISTRY, f"listing:{code}", _load)

    async def search_by_name(
        self,
        fragment: str,
        *,
        listed_only: bool = False,
        limit: int = 20,
    ) -> list[RegistryRecord]:
        """Return records whose legal name contains ``fragment``.

        ``limit`` is clamped to ``[1, 100]``; a blank fragment yields ``[]``.
        """
        needle = (fragment or "").strip()
        if not needle:
            return []
        bounded = max(MIN_SEARCH_LIMIT, min(MAX_SEARCH_LIMIT, limit))

        async def _load() -> tuple[RegistryRecord, ...]:
            async with self._uow_factory() as tx:
                repo: RegistryRepository = tx.get_repository(RegistryRepository)
                rows = await repo.search_by_name(needle, listed_only=listed_only, limit=bounded)
            return tuple(rows)

        key = f"search:{int(listed_only)}:{bounded}:{needle}"
        return list(await self._cache.get_or_load(REGISTRY, key, _load))

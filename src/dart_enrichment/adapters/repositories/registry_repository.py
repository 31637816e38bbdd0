# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""
SQLAlchemy registry repository.

Purpose:
    Persist and query the registry snapshot (``dart_corp_codes``).

Layer:
    adapters/repositories

Notes:
    ``replace_all`` deletes and inserts inside the caller's transaction, so
    readers see either the old snapshot or the new one.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Final

from sqlalchemy import delete, insert, select

from dart_enrichment.adapters.repositories.base_repository import BaseRepository
from dart_enrichment.domain.entities.registry_record import RegistryRecord
from dart_enrichment.domain.enums.dart import MarketSegment
from dart_enrichment.infrastructure.database.models.dart import DartCorpCode

_INSERT_CHUNK: Final[int] = 1000


def _to_domain(row: DartCorpCode) -> RegistryRecord:
    return RegistryRecord(
        entity_code=row.corp_code,
        legal_name=row.corp_name,
        english_name=row.corp_eng_name,
        listing_code=row.stock_code,
        last_modified_date=row.modify_date,
        market_segment=MarketSegment.parse(row.corp_cls),
    )


class RegistryRepository(BaseRepository[DartCorpCode]):
    """Registry snapshot repository."""

    async def count(self) -> int:
        """Return the number of stored registry records."""
        return await self.count_rows(DartCorpCode)

    async def replace_all(self, records: Sequence[RegistryRecord]) -> int:
        """Delete the snapshot and bulk-insert ``records`` in chunks."""
        await self._session.execute(delete(DartCorpCode))
        rows = [
            {
                "corp_code": r.entity_code,
                "corp_name": r.legal_name,
                "corp_eng_name": r.english_name,
                "stock_code": r.listing_code,
                "modify_date": r.last_modified_date,
                "corp_cls": r.market_segment.value if r.market_segment else None,
            }
            for r in records
        ]
        for start in range(0, len(rows), _INSERT_CHUNK):
            await self._session.execute(insert(DartCorpCode), rows[start : start + _INSERT_CHUNK])
        return len(rows)

    async def get(self, entity_code: str) -> RegistryRecord | None:
        """Return the record for ``entity_code``, if any."""
        row = await self.fetch_optional(
            select(DartCorpCode).where(DartCorpCode.corp_code == entity_code)
        )
        return _to_domain(row) if row is not None else None

    async def get_by_listing_code(self, listing_code: str) -> RegistryRecord | None:
        """Return the record carrying ``listing_code``, if any."""
        row = await self.fetch_optional(
            select(DartCorpCode)
            .where(DartCorpCode.stock_code == listing_code)
            .order_by(DartCorpCode.corp_code.asc())
        )
        return _to_domain(row) if row is not None else None

    async def search_by_name(
        self,
        fragment: str,
        *,
        listed_only: bool = False,
        limit: int = 20,
    ) -> list[RegistryRecord]:
        """Return records whose legal name contains ``fragment``, ordered by name."""
        stmt = select(DartCorpCode).where(DartCorpCode.corp_name.contains(fragment))
        if listed_only:
            stmt = stmt.where(DartCorpCode.stock_code.is_not(None))
        stmt = stmt.order_by(DartCorpCode.corp_name.asc(), DartCorpCode.corp_code.asc()).limit(
            limit
        )
        return [_to_domain(row) for row in await self.fetch_all(stmt)]

# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""
SQLAlchemy disclosure repository.

Layer:
    adapters/repositories

Notes:
    Receipts are insert-only; there is deliberately no update path.
"""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import select

from dart_enrichment.adapters.repositories.base_repository import BaseRepository
from dart_enrichment.domain.entities.disclosure import DisclosureRecord
from dart_enrichment.domain.enums.dart import MarketSegment
from dart_enrichment.infrastructure.database.models.dart import DisclosureRow


def _to_domain(row: DisclosureRow) -> DisclosureRecord:
    return DisclosureRecord(
        receipt_number=row.receipt_no,
        entity_code=row.corp_code,
        report_name=row.report_name,
        receipt_date=row.receipt_date,
        corp_name=row.corp_name,
        listing_code=row.stock_code,
        market_segment=MarketSegment.parse(row.corp_cls),
        submitter=row.submitter_name,
        remark=row.remark,
    )


class DisclosureRepository(BaseRepository[DisclosureRow]):
    """Disclosure receipt repository."""

    async def existing_receipts(self, receipt_numbers: Iterable[str]) -> set[str]:
        """Return the subset of ``receipt_numbers`` already stored."""
        wanted = list(dict.fromkeys(receipt_numbers))
        if not wanted:
            return set()
        res = await self._session.execute(
            select(DisclosureRow.receipt_no).where(DisclosureRow.receipt_no.in_(wanted))
        )
        return set(res.scalars().all())

    async def exists(self, receipt_number: str) -> bool:
        """Return True if a receipt with this number is stored."""
        return bool(await self.existing_receipts([receipt_number]))

    async def add(self, record: DisclosureRecord) -> None:
        """Insert a new receipt."""
        self._session.add(
            DisclosureRow(
                receipt_no=record.receipt_number,
                corp_code=record.entity_code,
                corp_name=record.corp_name,
                stock_code=record.listing_code,
                corp_cls=record.market_segment.value if record.market_segment else None,
                report_name=record.report_name,
                submitter_name=record.submitter,
                receipt_date=record.receipt_date,
                remark=record.remark,
                created_at=self.utc_now(),
            )
        )
        await self._session.flush()

    async def list_for_entity(self, entity_code: str) -> list[DisclosureRecord]:
        """Return stored receipts for ``entity_code``, newest first."""
        stmt = (
            select(DisclosureRow)
            .where(DisclosureRow.corp_code == entity_code)
            .order_by(DisclosureRow.receipt_date.desc(), DisclosureRow.receipt_no.desc())
        )
        return [_to_domain(row) for row in await self.fetch_all(stmt)]

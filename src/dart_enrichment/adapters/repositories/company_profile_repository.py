# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""
SQLAlchemy company profile repository.

Layer:
    adapters/repositories
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import select

from dart_enrichment.adapters.repositories.base_repository import BaseRepository
from dart_enrichment.domain.entities.company_profile import CompanyProfile
from dart_enrichment.domain.enums.dart import MarketSegment
from dart_enrichment.infrastructure.database.models.dart import CompanyProfileRow


def _columns(profile: CompanyProfile) -> dict[str, Any]:
    """Map the mutable profile fields onto their column names."""
    return {
        "corp_name": profile.legal_name,
        "corp_name_eng": profile.english_name,
        "stock_code": profile.listing_code,
        "ceo_name": profile.executive_name,
        "corp_cls": profile.market_segment.value if profile.market_segment else None,
        "jurisdiction_number": profile.jurisdiction_number,
        "business_number": profile.business_number,
        "address": profile.address,
        "homepage_url": profile.homepage_url,
        "ir_url": profile.ir_url,
        "phone_number": profile.phone_number,
        "fax_number": profile.fax_number,
        "industry_code": profile.industry_code,
        "established_date": profile.founding_date,
        "accounting_month": profile.fiscal_month,
    }


def _to_domain(row: CompanyProfileRow) -> CompanyProfile:
    return CompanyProfile(
        entity_code=row.corp_code,
        legal_name=row.corp_name,
        english_name=row.corp_name_eng,
        listing_code=row.stock_code,
        executive_name=row.ceo_name,
        market_segment=MarketSegment.parse(row.corp_cls),
        jurisdiction_number=row.jurisdiction_number,
        business_number=row.business_number,
        address=row.address,
        homepage_url=row.homepage_url,
        ir_url=row.ir_url,
        phone_number=row.phone_number,
        fax_number=row.fax_number,
        industry_code=row.industry_code,
        founding_date=row.established_date,
        fiscal_month=row.accounting_month,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class CompanyProfileRepository(BaseRepository[CompanyProfileRow]):
    """Company profile repository."""

    async def get(self, entity_code: str) -> CompanyProfile | None:
        """Return the stored profile for ``entity_code``, if any."""
        row = await self._get_row(entity_code)
        return _to_domain(row) if row is not None else None

    async def upsert(self, profile: CompanyProfile, *, now: datetime) -> bool:
        """Insert or overwrite the profile keyed by entity code."""
        row = await self._get_row(profile.entity_code)
        if row is None:
            self._session.add(
                CompanyProfileRow(
                    corp_code=profile.entity_code,
                    created_at=now,
                    updated_at=now,
                    **_columns(profile),
                )
            )
            await self._session.flush()
            return True

        for column, value in _columns(profile).items():
            setattr(row, column, value)
        row.updated_at = now
        await self._session.flush()
        return False

    async def _get_row(self, entity_code: str) -> CompanyProfileRow | None:
        return await self.fetch_optional(
            select(CompanyProfileRow).where(CompanyProfileRow.corp_code == entity_code)
        )

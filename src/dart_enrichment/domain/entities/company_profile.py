# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""Company profile entity.

Purpose:
    Upstream company overview for a single entity code. The enrichment
    orchestrator upserts one profile per entity; it is the anchor row that
    disclosures reference.

Layer:
    domain
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import date, datetime

from dart_enrichment.domain.enums.dart import MarketSegment
from dart_enrichment.domain.exceptions.dart import RecordMappingError

#: Fields overwritten in place whenever a fresher profile is fetched.
MUTABLE_PROFILE_FIELDS: tuple[str, ...] = (
    "legal_name",
    "english_name",
    "listing_code",
    "executive_name",
    "market_segment",
    "jurisdiction_number",
    "business_number",
    "address",
    "homepage_url",
    "ir_url",
    "phone_number",
    "fax_number",
    "industry_code",
    "founding_date",
    "fiscal_month",
)


@dataclass(frozen=True)
class CompanyProfile:
    """Company overview as returned by the upstream ``company.json`` endpoint.

    ``created_at`` and ``updated_at`` are only populated for profiles read
    back from the store.
    """

    entity_code: str
    legal_name: str
    english_name: str | None = None
    listing_code: str | None = None
    executive_name: str | None = None
    market_segment: MarketSegment | None = None
    jurisdiction_number: str | None = None
    business_number: str | None = None
    address: str | None = None
    homepage_url: str | None = None
    ir_url: str | None = None
    phone_number: str | None = None
    fax_number: str | None = None
    industry_code: str | None = None
    founding_date: date | None = None
    fiscal_month: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        """Validate the anchor fields."""
        code = (self.entity_code or "").strip()
        if not code:
            raise RecordMappingError("CompanyProfile.entity_code must not be empty.")
        object.__setattr__(self, "entity_code", code)
        if not (self.legal_name or "").strip():
            raise RecordMappingError(
                "CompanyProfile.legal_name must not be empty.",
                details={"entity_code": code},
            )

    def mutable_values(self) -> dict[str, object]:
        """Return the overwritable fields as a mapping."""
        names = {f.name for f in fields(self)}
        return {name: getattr(self, name) for name in MUTABLE_PROFILE_FIELDS if name in names}
